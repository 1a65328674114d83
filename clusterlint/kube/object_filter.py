"""Namespace filtering for the objects fetched from a cluster."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

_NAMESPACE_FIELD = "metadata.namespace"


def _escape_value(value: str) -> str:
    """Escape a field selector value the way the API server expects."""
    return value.replace("\\", "\\\\").replace(",", "\\,").replace("=", "\\=")


@dataclass(frozen=True)
class ObjectFilter:
    """Namespaces to include or exclude while fetching objects."""

    include_namespace: str = ""
    exclude_namespace: str = ""

    def namespace_options(self, opts: Mapping[str, Any]) -> dict[str, Any]:
        """Return a copy of the list options with a namespace field selector added."""
        result = dict(opts)
        if self.include_namespace:
            result["fieldSelector"] = (
                f"{_NAMESPACE_FIELD}={_escape_value(self.include_namespace)}"
            )
        if self.exclude_namespace:
            result["fieldSelector"] = (
                f"{_NAMESPACE_FIELD}!={_escape_value(self.exclude_namespace)}"
            )
        return result


def new_object_filter(include_namespace: str, exclude_namespace: str) -> ObjectFilter:
    """Build a filter, refusing to include and exclude at the same time."""
    if include_namespace and exclude_namespace:
        raise ValueError("cannot specify both include and exclude namespace conditions")
    return ObjectFilter(include_namespace, exclude_namespace)