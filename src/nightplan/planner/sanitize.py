"""Bounded copies of untrusted survey trees before they reach a prompt."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from itertools import islice
from typing import Any, Optional

MAX_DEPTH = 4
MAX_ARRAY_ITEMS = 50
MAX_TOP_LEVEL_STRING = 1000
MAX_NESTED_STRING = 500

_DROP = object()


@dataclass(frozen=True)
class SanitizeLimits:
    """Caps applied while copying a tree of JSON-like values."""

    max_depth: int = MAX_DEPTH
    max_array_items: int = MAX_ARRAY_ITEMS
    max_top_level_string: int = MAX_TOP_LEVEL_STRING
    max_nested_string: int = MAX_NESTED_STRING


DEFAULT_LIMITS = SanitizeLimits()


def sanitize_tree(
    data: Optional[Mapping[str, Any]],
    limits: SanitizeLimits = DEFAULT_LIMITS,
) -> Optional[dict[str, Any]]:
    """
    Return a bounded deep copy of ``data``.

    The root mapping is depth 0; containers nested deeper than ``max_depth`` are dropped.
    Strings directly under the root are cut to ``max_top_level_string`` characters, strings
    anywhere deeper to ``max_nested_string``. Sequences keep at most ``max_array_items``
    entries. ``None`` and callables are dropped, dates become ISO strings, and any other
    non-JSON value is dropped.
    """

    if not isinstance(data, Mapping):
        return None
    return _copy_mapping(data, 0, limits)


def _copy_mapping(value: Mapping[Any, Any], depth: int, limits: SanitizeLimits) -> dict[str, Any]:
    copied: dict[str, Any] = {}
    for key, entry in value.items():
        cleaned = _copy_value(entry, depth + 1, limits)
        if cleaned is not _DROP:
            copied[str(key)] = cleaned
    return copied


def _copy_value(value: Any, depth: int, limits: SanitizeLimits) -> Any:
    if value is None or callable(value):
        return _DROP
    if isinstance(value, str):
        cap = limits.max_top_level_string if depth <= 1 else limits.max_nested_string
        return value[:cap]
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        if depth > limits.max_depth:
            return _DROP
        return _copy_mapping(value, depth, limits)
    if isinstance(value, (list, tuple)):
        if depth > limits.max_depth:
            return _DROP
        items = []
        for entry in islice(value, limits.max_array_items):
            cleaned = _copy_value(entry, depth + 1, limits)
            if cleaned is not _DROP:
                items.append(cleaned)
        return items
    return _DROP


def sanitize_survey_data(data: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    """Apply the default survey caps (depth 4, 50 items, 1000/500 characters)."""

    return sanitize_tree(data, DEFAULT_LIMITS)


__all__ = [
    "MAX_ARRAY_ITEMS",
    "MAX_DEPTH",
    "MAX_NESTED_STRING",
    "MAX_TOP_LEVEL_STRING",
    "SanitizeLimits",
    "sanitize_survey_data",
    "sanitize_tree",
]
