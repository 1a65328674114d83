import pytest

from clusterlint.checks.doks.webhook_timeout import WebhookTimeoutCheck
from clusterlint.checks.registry import Diagnostic, Kind, Severity, get
from clusterlint.kube.objects import Objects

WEBHOOK_SERVICE = {"service": {"namespace": "webhook", "name": "webhook-service"}}


def webhook_timeout_test_objects(client_config, timeout_seconds, num_nodes):
    def webhook(name):
        entry = {"name": name, "clientConfig": client_config}
        if timeout_seconds is not None:
            entry["timeoutSeconds"] = timeout_seconds
        return entry

    return Objects(
        system_namespace={
            "kind": "Namespace",
            "apiVersion": "v1",
            "metadata": {"name": "kube-system", "labels": {"doks_test_key": "bar"}},
        },
        namespaces=[
            {
                "kind": "Namespace",
                "apiVersion": "v1",
                "metadata": {"name": "kube-system", "labels": {"doks_test_key": "bar"}},
            },
            {
                "kind": "Namespace",
                "apiVersion": "v1",
                "metadata": {"name": "webhook", "labels": {"doks_test_key": "xyzzy"}},
            },
        ],
        mutating_webhook_configurations=[
            {
                "kind": "MutatingWebhookConfiguration",
                "apiVersion": "v1beta1",
                "metadata": {"name": "mwc_foo"},
                "webhooks": [webhook("mw_foo")],
            }
        ],
        validating_webhook_configurations=[
            {
                "kind": "ValidatingWebhookConfiguration",
                "apiVersion": "v1beta1",
                "metadata": {"name": "vwc_foo"},
                "webhooks": [webhook("vw_foo")],
            }
        ],
        nodes=[{} for _ in range(num_nodes)],
    )


def webhook_timeout_errors():
    return [
        Diagnostic(
            severity=Severity.ERROR,
            message="Validating webhook with a TimeoutSeconds value smaller than 1 second or greater than 29 seconds will block upgrades.",
            kind=Kind.VALIDATING_WEBHOOK_CONFIGURATION,
            object={"name": "vwc_foo"},
            owners=[],
        ),
        Diagnostic(
            severity=Severity.ERROR,
            message="Mutating webhook with a TimeoutSeconds value smaller than 1 second or greater than 29 seconds will block upgrades.",
            kind=Kind.MUTATING_WEBHOOK_CONFIGURATION,
            object={"name": "mwc_foo"},
            owners=[],
        ),
    ]


def test_registration():
    check = get("admission-controller-webhook-timeout")
    assert check == WebhookTimeoutCheck()
    assert check.groups == ("doks",)
    assert check.description


def test_no_webhook_configurations():
    objs = Objects(mutating_webhook_configurations=[], validating_webhook_configurations=[])
    assert WebhookTimeoutCheck().run(objs) == []


@pytest.mark.parametrize(
    "timeout,expect_errors",
    [(10, False), (29, False), (30, True), (31, True), (None, False), (0, True), (1, False)],
)
def test_webhook_timeout(timeout, expect_errors):
    objs = webhook_timeout_test_objects(WEBHOOK_SERVICE, timeout, 2)
    result = WebhookTimeoutCheck().run(objs)
    assert result == (webhook_timeout_errors() if expect_errors else [])


def test_each_offending_webhook_is_reported():
    objs = webhook_timeout_test_objects(WEBHOOK_SERVICE, 45, 2)
    config = objs.mutating_webhook_configurations[0]
    config["webhooks"].append({"name": "mw_bar", "timeoutSeconds": 60})
    result = WebhookTimeoutCheck().run(objs)
    assert len(result) == 3
    assert [d.kind for d in result].count(Kind.MUTATING_WEBHOOK_CONFIGURATION) == 2