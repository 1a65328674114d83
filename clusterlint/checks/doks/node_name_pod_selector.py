"""Check for pods that select nodes by host name."""

from __future__ import annotations

from clusterlint.checks.registry import Check, Diagnostic, Kind, Severity, register
from clusterlint.kube.objects import Objects

LABEL_HOSTNAME = "kubernetes.io/hostname"


class PodSelectorCheck(Check):
    """Warns about pods whose node selector uses the host name label."""

    name = "node-name-pod-selector"
    groups = ("doks",)
    description = (
        "Checks if there are pods which use kubernetes.io/hostname label in the node selector."
    )

    def run(self, objects: Objects) -> list[Diagnostic]:
        diagnostics = []
        for pod in objects.pods or []:
            node_selector = (pod.get("spec") or {}).get("nodeSelector") or {}
            if LABEL_HOSTNAME in node_selector:
                metadata = pod.get("metadata") or {}
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.WARNING,
                        message="Avoid node name label for node selector.",
                        kind=Kind.POD,
                        object=metadata,
                        owners=list(metadata.get("ownerReferences") or []),
                    )
                )
        return diagnostics


register(PodSelectorCheck())