"""Diagnostics, the check interface and the registry of known checks."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Optional

if TYPE_CHECKING:
    from clusterlint.kube.objects import Objects


class Severity(str, Enum):
    """How serious a diagnostic is."""

    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"

    def __str__(self) -> str:
        return self.value


class Kind(str, Enum):
    """The kind of Kubernetes object a diagnostic is about."""

    POD = "pod"
    NODE = "node"
    VALIDATING_WEBHOOK_CONFIGURATION = "validating webhook configuration"
    MUTATING_WEBHOOK_CONFIGURATION = "mutating webhook configuration"

    def __str__(self) -> str:
        return self.value


@dataclass
class Diagnostic:
    """A problem a check found in one object."""

    severity: Severity
    message: str
    kind: Kind
    object: Optional[dict[str, Any]] = None
    owners: list[dict[str, Any]] = field(default_factory=list)
    details: str = ""
    check: str = ""

    def __str__(self) -> str:
        meta = self.object or {}
        namespace = meta.get("namespace") or ""
        name = meta.get("name") or ""
        return f"[{self.severity}] {namespace}/{self.kind}/{name}: {self.message}"


class Check(ABC):
    """A lint check that runs over the objects of a cluster."""

    name: str = ""
    groups: tuple[str, ...] = ()
    description: str = ""

    @abstractmethod
    def run(self, objects: "Objects") -> list[Diagnostic]:
        """Return the diagnostics this check finds in the objects."""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Check):
            return NotImplemented
        return type(self) is type(other) and self.name == other.name

    def __hash__(self) -> int:
        return hash((type(self), self.name))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class CheckNotFoundError(LookupError):
    """A check or group of checks is not registered."""


_lock = threading.RLock()
_checks: dict[str, Check] = {}
_groups: dict[str, list[Check]] = {}


def contains(items: Iterable[str], name: str) -> bool:
    """Tell whether any item, stripped of surrounding whitespace, equals name."""
    return any(item.strip() == name for item in items)


def register(check: Check) -> None:
    """Add a check to the registry; names must be non-empty and unique."""
    with _lock:
        name = check.name
        if not name:
            raise ValueError("checks must have non-empty names")
        if name in _checks:
            raise ValueError(f'check named "{name}" already exists')
        _checks[name] = check
        for group in check.groups:
            _groups.setdefault(group, []).append(check)


def list_checks() -> list[Check]:
    """Return every registered check."""
    with _lock:
        return list(_checks.values())


def list_groups() -> list[str]:
    """Return the names of all groups that have checks."""
    with _lock:
        return list(_groups)


def get_group(name: str) -> list[Check]:
    """Return the checks in one group, or an empty list for an unknown group."""
    with _lock:
        return list(_groups.get(name, ()))


def get_groups(groups: Iterable[str]) -> list[Check]:
    """Return the checks of every named group; each group must exist."""
    with _lock:
        result: list[Check] = []
        for group in groups:
            if group not in _groups:
                raise CheckNotFoundError(f"Group {group} not found")
            result.extend(_groups[group])
        return result


def get(name: str) -> Check:
    """Return the check registered under name."""
    with _lock:
        try:
            return _checks[name]
        except KeyError:
            raise CheckNotFoundError(f"Check not found: {name}") from None