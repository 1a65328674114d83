import pytest

from clusterlint.checks.doks.node_name_pod_selector import PodSelectorCheck
from clusterlint.checks.registry import Diagnostic, Kind, Severity, get
from clusterlint.kube.objects import Objects


def _empty():
    return Objects(pods=[])


def _invalid_pod():
    return Objects(
        pods=[
            {
                "metadata": {"name": "pod_foo", "namespace": "k8s"},
                "spec": {"nodeSelector": {"kubernetes.io/hostname": "foo"}},
            }
        ]
    )


def _expected_warnings(objects):
    pod = objects.pods[0]
    return [
        Diagnostic(
            severity=Severity.WARNING,
            message="Avoid node name label for node selector.",
            kind=Kind.POD,
            object=pod["metadata"],
            owners=list(pod["metadata"].get("ownerReferences") or []),
        )
    ]


def test_pod_selector_check_meta():
    check = PodSelectorCheck()
    assert check.name == "node-name-pod-selector"
    assert check.groups == ("doks",)
    assert "kubernetes.io/hostname" in check.description


def test_pod_selector_check_registration():
    assert get("node-name-pod-selector") == PodSelectorCheck()


@pytest.mark.parametrize(
    "objects, expected",
    [
        (_empty(), []),
        (_invalid_pod(), _expected_warnings(_invalid_pod())),
    ],
    ids=["no node name selector", "node name used in node selector"],
)
def test_node_name_error(objects, expected):
    assert PodSelectorCheck().run(objects) == expected


def test_other_selectors_are_fine():
    objects = Objects(
        pods=[
            {
                "metadata": {"name": "pod_bar", "namespace": "k8s"},
                "spec": {"nodeSelector": {"doks.digitalocean.com/node-pool": "pool"}},
            }
        ]
    )
    assert PodSelectorCheck().run(objects) == []


def test_owner_references_are_reported():
    owners = [{"apiVersion": "apps/v1", "kind": "ReplicaSet", "name": "web"}]
    objects = _invalid_pod()
    objects.pods[0]["metadata"]["ownerReferences"] = owners
    (diagnostic,) = PodSelectorCheck().run(objects)
    assert diagnostic.owners == owners