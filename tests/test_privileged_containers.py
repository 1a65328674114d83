import pytest

from clusterlint.checks import registry
from clusterlint.checks.registry import Diagnostic, Kind, Severity
from clusterlint.checks.security.privileged_containers import PrivilegedContainerCheck
from clusterlint.kube.objects import Objects


def init_pod():
    return Objects(
        pods=[
            {
                "kind": "Pod",
                "apiVersion": "v1",
                "metadata": {"name": "pod_foo", "namespace": "k8s"},
            }
        ]
    )


def _with_spec(spec):
    objs = init_pod()
    objs.pods[0]["spec"] = spec
    return objs


def container_privileged(privileged):
    return _with_spec(
        {"containers": [{"name": "bar", "securityContext": {"privileged": privileged}}]}
    )


def container_security_context_nil():
    return _with_spec({"containers": [{"name": "bar"}]})


def container_privileged_nil():
    return _with_spec({"containers": [{"name": "bar", "securityContext": {}}]})


def init_container_privileged(privileged):
    return _with_spec(
        {"initContainers": [{"name": "bar", "securityContext": {"privileged": privileged}}]}
    )


def init_container_security_context_nil():
    return _with_spec({"initContainers": [{"name": "bar"}]})


def init_container_privileged_nil():
    return _with_spec({"initContainers": [{"name": "bar", "securityContext": {}}]})


def warnings():
    return [
        Diagnostic(
            severity=Severity.WARNING,
            message=(
                "Privileged container 'bar' found. "
                "Please ensure that the image is from a trusted source."
            ),
            kind=Kind.POD,
            object={"name": "pod_foo", "namespace": "k8s"},
            owners=[],
        )
    ]


def test_meta():
    check = PrivilegedContainerCheck()
    assert check.name == "privileged-containers"
    assert list(check.groups) == ["security"]
    assert check.description


def test_registration():
    assert registry.get("privileged-containers") == PrivilegedContainerCheck()


@pytest.mark.parametrize(
    "objs, expected",
    [
        (init_pod(), []),
        (container_privileged(True), warnings()),
        (container_security_context_nil(), []),
        (container_privileged_nil(), []),
        (container_privileged(False), []),
        (init_container_privileged(True), warnings()),
        (init_container_security_context_nil(), []),
        (init_container_privileged_nil(), []),
        (init_container_privileged(False), []),
    ],
    ids=[
        "no pods",
        "pod with container in privileged mode",
        "pod with container.SecurityContext = nil",
        "pod with container.SecurityContext.Privileged = nil",
        "pod with container in regular mode",
        "pod with init container in privileged mode",
        "pod with initContainer.SecurityContext = nil",
        "pod with initContainer.SecurityContext.Privileged = nil",
        "pod with init container in regular mode",
    ],
)
def test_privileged_container_warning(objs, expected):
    assert PrivilegedContainerCheck().run(objs) == expected


def test_containers_and_init_containers_both_reported():
    objs = _with_spec(
        {
            "containers": [{"name": "app", "securityContext": {"privileged": True}}],
            "initContainers": [{"name": "setup", "securityContext": {"privileged": True}}],
        }
    )
    messages = [d.message for d in PrivilegedContainerCheck().run(objs)]
    assert messages == [
        "Privileged container 'app' found. Please ensure that the image is from a trusted source.",
        "Privileged container 'setup' found. Please ensure that the image is from a trusted source.",
    ]


def test_owner_references_are_carried():
    objs = container_privileged(True)
    owner = {"apiVersion": "apps/v1", "kind": "ReplicaSet", "name": "rs"}
    objs.pods[0]["metadata"]["ownerReferences"] = [owner]
    (diagnostic,) = PrivilegedContainerCheck().run(objs)
    assert diagnostic.owners == [owner]