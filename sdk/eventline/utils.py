"""Helpers for normalizing caller-supplied events."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping


def stringify_keys(event: Mapping[Any, Any]) -> dict[str, Any]:
    """Return a new dict with every top-level key converted to ``str``."""
    return {str(key): value for key, value in event.items()}


def isoify_dates(value: Any) -> Any:
    """Replace ``date``/``datetime`` values with ISO-8601 strings.

    Mappings, lists and tuples are walked recursively; other values are
    returned unchanged. A new container is built, the input is not mutated.
    """
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {key: isoify_dates(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [isoify_dates(item) for item in value]
    return value
