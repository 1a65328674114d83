"""Check for custom labels and taints set directly on nodes."""

from __future__ import annotations

from clusterlint.checks.registry import Check, Diagnostic, Kind, Severity, register
from clusterlint.kube.objects import Objects

_KUBERNETES_PREFIX = "kubernetes.io/"
_DOKS_PREFIX = "doks.digitalocean.com/"


def is_kubernetes_label(key: str) -> bool:
    """Tell whether a label lives in a kubernetes.io subdomain."""
    return _KUBERNETES_PREFIX in key


def is_doks_label(key: str) -> bool:
    """Tell whether a label is set by DOKS or its cloud controller."""
    return key.startswith(_DOKS_PREFIX) or key == "region"


class NodeLabelsTaintsCheck(Check):
    """Warns about node labels and taints that an upgrade would lose."""

    name = "node-labels-and-taints"
    groups = ("doks",)
    description = "Checks that nodes do not have custom labels or taints configured."

    def run(self, objects: Objects) -> list[Diagnostic]:
        diagnostics = []
        for node in objects.nodes or []:
            metadata = node.get("metadata") or {}
            custom_labels = sorted(
                key
                for key in metadata.get("labels") or {}
                if not is_kubernetes_label(key) and not is_doks_label(key)
            )
            if custom_labels:
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.WARNING,
                        message=(
                            "Custom node labels will be lost if node is replaced or upgraded. "
                            "Add custom labels on node pools instead."
                        ),
                        kind=Kind.NODE,
                        object=metadata,
                        details=f"Custom node labels: [{' '.join(custom_labels)}]",
                    )
                )
            # DOKS never sets taints itself, so every taint on a node is custom.
            taints = (node.get("spec") or {}).get("taints") or []
            custom_taints = [t.get("key", "") for t in taints]
            if custom_taints:
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.WARNING,
                        message="Custom node taints will be lost if node is replaced or upgraded.",
                        kind=Kind.NODE,
                        object=metadata,
                        details=f"Custom node taints: [{' '.join(custom_taints)}]",
                    )
                )
        return diagnostics


register(NodeLabelsTaintsCheck())