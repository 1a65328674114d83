"""Check for containers running in privileged mode."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from clusterlint.checks.registry import Check, Diagnostic, Kind, Severity, register
from clusterlint.kube.objects import Objects


def _is_privileged(container: Mapping[str, Any]) -> bool:
    return bool((container.get("securityContext") or {}).get("privileged"))


class PrivilegedContainerCheck(Check):
    """Warns about pods with containers or init containers in privileged mode."""

    name = "privileged-containers"
    groups = ("security",)
    description = "Checks if there are pods with containers in privileged mode"

    def run(self, objects: Objects) -> list[Diagnostic]:
        diagnostics = []
        for pod in objects.pods or []:
            spec = pod.get("spec") or {}
            diagnostics.extend(self._check_privileged(spec.get("containers"), pod))
            diagnostics.extend(self._check_privileged(spec.get("initContainers"), pod))
        return diagnostics

    @staticmethod
    def _check_privileged(
        containers: Iterable[Mapping[str, Any]] | None, pod: Mapping[str, Any]
    ) -> list[Diagnostic]:
        metadata = pod.get("metadata") or {}
        return [
            Diagnostic(
                severity=Severity.WARNING,
                message=(
                    f"Privileged container '{container.get('name', '')}' found. "
                    "Please ensure that the image is from a trusted source."
                ),
                kind=Kind.POD,
                object=metadata,
                owners=list(metadata.get("ownerReferences") or []),
            )
            for container in containers or ()
            if _is_privileged(container)
        ]


register(PrivilegedContainerCheck())