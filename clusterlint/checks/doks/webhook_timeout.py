"""Check for admission webhooks whose timeout blocks upgrades."""

from __future__ import annotations

from clusterlint.checks.registry import Check, Diagnostic, Kind, Severity, register
from clusterlint.kube.objects import Objects

_MIN_TIMEOUT = 1
_MAX_TIMEOUT = 29


class WebhookTimeoutCheck(Check):
    """Reports webhooks with a timeout below 1 second or above 29 seconds."""

    name = "admission-controller-webhook-timeout"
    groups = ("doks",)
    description = (
        "Check for admission control webhooks that have exceeded a timeout of 30 seconds."
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
                metadata = config.get("metadata") or {}
                for webhook in config.get("webhooks") or []:
                    timeout = webhook.get("timeoutSeconds")
                    # An unset timeout is left alone: newer servers default it.
                    if timeout is None or _MIN_TIMEOUT <= timeout <= _MAX_TIMEOUT:
                        continue
                    diagnostics.append(
                        Diagnostic(
                            severity=Severity.ERROR,
                            message=(
                                f"{label} webhook with a TimeoutSeconds value smaller than "
                                "1 second or greater than 29 seconds will block upgrades."
                            ),
                            kind=kind,
                            object=metadata,
                            owners=list(metadata.get("ownerReferences") or []),
                        )
                    )
        return diagnostics


register(WebhookTimeoutCheck())