"""A check that checks nothing."""

from __future__ import annotations

from clusterlint.checks.registry import Check, Diagnostic, register
from clusterlint.kube.objects import Objects


class NoopCheck(Check):
    """Does not check anything and never finds a problem."""

    name = "noop"
    groups = ()
    description = "Does not check anything. Returns no errors."

    def run(self, objects: Objects) -> list[Diagnostic]:
        return []


register(NoopCheck())