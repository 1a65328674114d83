"""Check that pods using DigitalOcean block storage are owned by a StatefulSet."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from clusterlint.checks.registry import Check, Diagnostic, Kind, Severity, register
from clusterlint.kube.objects import Objects

DO_CSI_DRIVER = "dobs.csi.digitalocean.com"
LEGACY_CSI_DRIVER = "com.digitalocean.csi.dobs"
DO_BLOCK_STORAGE_NAME = "do-block-storage"


def is_do_csi(referrer: Optional[str]) -> bool:
    """Tell whether a driver or provisioner name is the DigitalOcean CSI driver."""
    return referrer in (DO_CSI_DRIVER, LEGACY_CSI_DRIVER)


def owned_by_stateful_set(references: Optional[Iterable[Mapping[str, Any]]]) -> bool:
    """Tell whether any owner reference points at a StatefulSet."""
    return any(ref.get("kind") == "StatefulSet" for ref in references or ())


def _metadata(obj: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return (obj or {}).get("metadata") or {}


def _get_pvc(
    claims: Optional[Iterable[Mapping[str, Any]]], name: str, namespace: str
) -> Optional[Mapping[str, Any]]:
    for claim in claims or ():
        meta = _metadata(claim)
        if meta.get("name", "") == name and meta.get("namespace", "") == namespace:
            return claim
    return None


def _get_storage_class(
    classes: Optional[Iterable[Mapping[str, Any]]], name: Optional[str]
) -> Optional[Mapping[str, Any]]:
    if name is None:
        return None
    for storage_class in classes or ():
        if _metadata(storage_class).get("name", "") == name:
            return storage_class
    return None


def is_dobs_volume(volume: Mapping[str, Any], namespace: str, objects: Objects) -> bool:
    """Tell whether a pod volume is backed by DigitalOcean block storage."""
    claim_source = volume.get("persistentVolumeClaim")
    if claim_source is not None:
        claim = _get_pvc(
            objects.persistent_volume_claims, claim_source.get("claimName", ""), namespace
        )
        if claim is None:
            return False
        class_name = (claim.get("spec") or {}).get("storageClassName")
        default_class = objects.default_storage_class or {}
        if class_name is None and is_do_csi(default_class.get("provisioner")):
            return True
        storage_class = _get_storage_class(objects.storage_classes, class_name)
        if storage_class is not None and is_do_csi(storage_class.get("provisioner")):
            return True

    csi = volume.get("csi")
    if csi is not None and is_do_csi(csi.get("driver")):
        return True
    return False


class DobsPodOwnerCheck(Check):
    """Warns about pods with DOBS volumes that no StatefulSet owns."""

    name = "dobs-pod-owner"
    groups = ("doks",)
    description = "Checks if pods referencing dobs volumes are owned by a stateful set."

    def run(self, objects: Objects) -> list[Diagnostic]:
        # A pod appears once for every DOBS volume it mounts.
        dobs_pods = [
            pod
            for pod in objects.pods or []
            for volume in (pod.get("spec") or {}).get("volumes") or []
            if is_dobs_volume(volume, _metadata(pod).get("namespace", ""), objects)
        ]
        diagnostics = []
        for pod in dobs_pods:
            metadata = pod.get("metadata") or {}
            owners = metadata.get("ownerReferences")
            if owners and owned_by_stateful_set(owners):
                continue
            diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    message="Pod referencing DOBS volumes must be owned by StatefulSet",
                    kind=Kind.POD,
                    object=metadata,
                    owners=list(owners or []),
                )
            )
        return diagnostics


register(DobsPodOwnerCheck())