"""Metadata filters expressed as a small tagged union.

Every filter kind is evaluated by :func:`matches`, so callers never need to
inspect whether a value is a regex, a list or a callable themselves.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence, Union

_ARRAY_TYPES = (list, tuple, set, frozenset)


@dataclass(slots=True, frozen=True)
class Equality:
    key: str
    value: Any


@dataclass(slots=True, frozen=True)
class Pattern:
    key: str
    regex: re.Pattern[str]


@dataclass(slots=True, frozen=True)
class ArrayContains:
    key: str
    value: Any


@dataclass(slots=True, frozen=True)
class Predicate:
    fn: Callable[[Mapping[str, Any]], bool]


MetadataFilter = Union[Equality, Pattern, ArrayContains, Predicate]


def matches(meta: Mapping[str, Any] | None, filters: Iterable[MetadataFilter]) -> bool:
    """Return True when ``meta`` satisfies every filter (AND semantics)."""
    meta = meta or {}
    return all(_match_one(meta, item) for item in filters)


def _match_one(meta: Mapping[str, Any], item: MetadataFilter) -> bool:
    if isinstance(item, Predicate):
        return bool(item.fn(meta))
    if item.key not in meta:
        return False
    actual = meta[item.key]
    if isinstance(item, Equality):
        if isinstance(actual, _ARRAY_TYPES) and not isinstance(item.value, _ARRAY_TYPES):
            return item.value in actual
        return actual == item.value
    if isinstance(item, Pattern):
        values = actual if isinstance(actual, _ARRAY_TYPES) else [actual]
        return any(item.regex.search(str(value)) for value in values)
    if isinstance(item, ArrayContains):
        return isinstance(actual, _ARRAY_TYPES) and item.value in actual
    raise TypeError(f"Unsupported metadata filter: {item!r}")


def filters_from_mapping(mapping: Mapping[str, Any]) -> list[MetadataFilter]:
    """Translate the ``{key: value}`` shorthand into explicit filters."""
    converted: list[MetadataFilter] = []
    for key, value in mapping.items():
        if isinstance(value, re.Pattern):
            converted.append(Pattern(key, value))
        else:
            converted.append(Equality(key, value))
    return converted


def build_filters(
    filters: Mapping[str, Any] | Sequence[MetadataFilter] | MetadataFilter | None = None,
    filter: Callable[[Mapping[str, Any]], bool] | None = None,
) -> list[MetadataFilter]:
    built: list[MetadataFilter] = []
    if isinstance(filters, Mapping):
        built.extend(filters_from_mapping(filters))
    elif isinstance(filters, (Equality, Pattern, ArrayContains, Predicate)):
        built.append(filters)
    elif filters is not None:
        built.extend(filters)
    if filter is not None:
        built.append(Predicate(filter))
    return built


__all__ = [
    "Equality",
    "Pattern",
    "ArrayContains",
    "Predicate",
    "MetadataFilter",
    "matches",
    "filters_from_mapping",
    "build_filters",
]
