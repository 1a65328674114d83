"""Check for admission webhooks that can break upgrades or node replacement."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from clusterlint.checks.registry import Check, Diagnostic, Kind, Severity, register
from clusterlint.kube.objects import Objects

_APISERVER_SERVICE_NAME = "kubernetes"
_NAMESPACE_DEFAULT = "default"
_FAILURE_POLICY_IGNORE = "Ignore"

_RISKY_VERSIONS = frozenset({"*", "v1", "v1beta1", "v1beta2"})
_RISKY_GROUPS = frozenset({"", "*", "apps"})


def api_versions(versions: Optional[Iterable[str]]) -> bool:
    """Tell whether any of the API versions is one that core or apps resources use."""
    return any(version in _RISKY_VERSIONS for version in versions or ())


def applicable(rules: Optional[Iterable[Mapping[str, Any]]]) -> bool:
    """Tell whether the rules cover core/v1 or apps/v1, v1beta1 or v1beta2 resources."""
    for rule in rules or ():
        if not api_versions(rule.get("apiVersions")):
            continue
        groups = rule.get("apiGroups") or []
        if not groups:
            return True
        if any(group in _RISKY_GROUPS for group in groups):
            return True
    return False


def match(labels: Mapping[str, str], requirement: Mapping[str, Any]) -> bool:
    """Tell whether labels satisfy one label selector requirement."""
    key = requirement.get("key", "")
    operator = requirement.get("operator", "")
    values = requirement.get("values") or []
    if operator == "Exists":
        return key in labels
    if operator == "DoesNotExist":
        return key not in labels
    if operator == "In":
        return key in labels and labels[key] in values
    if operator == "NotIn":
        return key not in labels or labels[key] not in values
    return False


def selector_matches_namespace(
    selector: Optional[Mapping[str, Any]], namespace: Optional[Mapping[str, Any]]
) -> bool:
    """Tell whether a namespace selector selects the given namespace.

    An absent or empty selector selects every namespace.
    """
    selector = selector or {}
    match_labels = selector.get("matchLabels") or {}
    match_expressions = selector.get("matchExpressions") or []
    if not match_labels and not match_expressions:
        return True
    labels = ((namespace or {}).get("metadata") or {}).get("labels") or {}
    for key, value in match_labels.items():
        if labels.get(key) != value or key not in labels:
            return False
    return all(match(labels, requirement) for requirement in match_expressions)


def _find_namespace(objects: Objects, name: str) -> Optional[dict[str, Any]]:
    found = None
    for namespace in objects.namespaces or []:
        if (namespace.get("metadata") or {}).get("name") == name:
            found = namespace
    return found


def _is_problematic(webhook: Mapping[str, Any], objects: Objects) -> bool:
    if not applicable(webhook.get("rules")):
        return False
    if webhook.get("failurePolicy") == _FAILURE_POLICY_IGNORE:
        return False
    service = (webhook.get("clientConfig") or {}).get("service")
    if service is None:
        # Targets outside the cluster are fine.
        return False
    service_namespace = service.get("namespace", "")
    if (
        service_namespace == _NAMESPACE_DEFAULT
        and service.get("name", "") == _APISERVER_SERVICE_NAME
    ):
        return False
    selector = webhook.get("namespaceSelector")
    if not selector_matches_namespace(selector, objects.system_namespace):
        return False
    own_namespace = _find_namespace(objects, service_namespace)
    if (
        own_namespace is not None
        and not selector_matches_namespace(selector, own_namespace)
        and len(objects.nodes or []) > 1
    ):
        # Webhooks that skip their own namespace are fine on multi-node clusters.
        return False
    return True


class WebhookReplacementCheck(Check):
    """Reports webhook configurations that may block upgrades or node replacement."""

    name = "admission-controller-webhook-replacement"
    groups = ("doks",)
    description = (
        "Check for admission control webhooks that could cause problems "
        "during upgrades or node replacement"
    )

    def run(self, objects: Objects) -> list[Diagnostic]:
        diagnostics = []
        sources = (
            (
                objects.validating_webhook_configurations,
                Kind.VALIDATING_WEBHOOK_CONFIGURATION,
                "Validating",
            ),
            (
                objects.mutating_webhook_configurations,
                Kind.MUTATING_WEBHOOK_CONFIGURATION,
                "Mutating",
            ),
        )
        for configs, kind, label in sources:
            for config in configs or []:
                webhooks = config.get("webhooks") or []
                # One diagnostic per configuration, however many webhooks match.
                if any(_is_problematic(webhook, objects) for webhook in webhooks):
                    metadata = config.get("metadata") or {}
                    diagnostics.append(
                        Diagnostic(
                            severity=Severity.ERROR,
                            message=(
                                f"{label} webhook is configured in such a way that it "
                                "may be problematic during upgrades."
                            ),
                            kind=kind,
                            object=metadata,
                            owners=list(metadata.get("ownerReferences") or []),
                        )
                    )
        return diagnostics


register(WebhookReplacementCheck())