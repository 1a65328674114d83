"""Running a set of checks against a cluster."""

from __future__ import annotations

import dataclasses
import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from clusterlint.checks.registry import Check, Diagnostic, Severity
from clusterlint.kube.object_filter import ObjectFilter
from clusterlint.kube.objects import Objects

_NO_CHECKS = (
    "No checks to run. Are you sure that you provided the right names "
    "for groups and checks?"
)


@dataclass
class CheckResult:
    """The diagnostics found and how long each check took, in seconds."""

    diagnostics: list[Diagnostic] = field(default_factory=list)
    durations: dict[str, float] = field(default_factory=dict)


def _run_one(check: Check, objects: Objects) -> tuple[list[Diagnostic], float]:
    start = time.perf_counter()
    try:
        found = check.run(objects)
    except Exception as exc:
        raise RuntimeError(
            f"Recovered from panic in check '{check.name}': {traceback.format_exc()}"
        ) from exc
    elapsed = time.perf_counter() - start
    # Fill in the check name here so that checks stay consistent.
    return [dataclasses.replace(d, check=check.name) for d in found or []], elapsed


def filter_severity(
    level: Optional[Union[Severity, str]], diagnostics: list[Diagnostic]
) -> list[Diagnostic]:
    """Keep only diagnostics of the given severity; no level keeps them all."""
    if not level:
        return diagnostics
    return [d for d in diagnostics if d.severity == level]


def run(
    client: Any,
    checks: Iterable[Check],
    severity: Optional[Union[Severity, str]] = None,
    object_filter: Optional[ObjectFilter] = None,
) -> CheckResult:
    """Fetch the cluster's objects and run the checks on them in parallel."""
    objects = client.fetch_objects(object_filter or ObjectFilter())

    selected = list(checks)
    if not selected:
        raise ValueError(_NO_CHECKS)

    with ThreadPoolExecutor(max_workers=len(selected)) as pool:
        futures = [(check, pool.submit(_run_one, check, objects)) for check in selected]

    diagnostics: list[Diagnostic] = []
    durations: dict[str, float] = {}
    for check, future in futures:
        found, elapsed = future.result()
        diagnostics.extend(found)
        durations[check.name] = elapsed

    return CheckResult(diagnostics=filter_severity(severity, diagnostics), durations=durations)