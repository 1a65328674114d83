"""Check for containers that may run as the root user."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from clusterlint.checks.registry import Check, Diagnostic, Kind, Severity, register
from clusterlint.kube.objects import Objects


def _may_run_as_root(security_context: Optional[Mapping[str, Any]]) -> bool:
    return not (security_context or {}).get("runAsNonRoot")


class NonRootUserCheck(Check):
    """Warns about containers that neither they nor their pod forbid to run as root."""

    name = "non-root-user"
    groups = ("security",)
    description = "Checks if there are pods which run as root user"

    def run(self, objects: Objects) -> list[Diagnostic]:
        diagnostics = []
        for pod in objects.pods or []:
            spec = pod.get("spec") or {}
            metadata = pod.get("metadata") or {}
            if not _may_run_as_root(spec.get("securityContext")):
                continue
            containers = [*(spec.get("containers") or []), *(spec.get("initContainers") or [])]
            for container in containers:
                if not _may_run_as_root(container.get("securityContext")):
                    continue
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.WARNING,
                        message=(
                            f"Container `{container.get('name', '')}` can run as root user. "
                            "Please ensure that the image is from a trusted source."
                        ),
                        kind=Kind.POD,
                        object=metadata,
                        owners=list(metadata.get("ownerReferences") or []),
                    )
                )
        return diagnostics


register(NonRootUserCheck())