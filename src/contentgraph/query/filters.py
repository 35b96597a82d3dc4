"""
Filter predicates for queries.

A predicate takes an entry and returns a bool. ``Query.where`` calls are
AND-combined; use ``or_`` inside a single predicate for alternatives.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from contentgraph.content.entry import Entry
from contentgraph.references.detector import is_reference, to_reference

Predicate = Callable[[Entry], bool]

_MISSING = object()


def get_field(entry: Entry, field: str, default: Any = None) -> Any:
    """Read a possibly dotted field path (``seo.title``) from entry data."""
    value: Any = entry.data
    for part in field.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return default
        value = value[part]
    return value


def _matches(value: Any, expected: Any) -> bool:
    # A reference field compares by target id when given a plain string
    if isinstance(expected, str) and is_reference(value):
        return to_reference(value).id == expected
    return value == expected


def where_equals(field: str, value: Any) -> Predicate:
    """Field equals value. Reference fields match on the target id."""

    def predicate(entry: Entry) -> bool:
        return _matches(get_field(entry, field, _MISSING), value)

    return predicate


def where_in(field: str, values: Iterable[Any]) -> Predicate:
    """Field equals any of values."""
    candidates = list(values)

    def predicate(entry: Entry) -> bool:
        actual = get_field(entry, field, _MISSING)
        return any(_matches(actual, candidate) for candidate in candidates)

    return predicate


def where_contains(field: str, text: Any, case_sensitive: bool = True) -> Predicate:
    """String field contains text, or list field contains the item."""

    def predicate(entry: Entry) -> bool:
        actual = get_field(entry, field)
        if isinstance(actual, str):
            if case_sensitive:
                return str(text) in actual
            return str(text).lower() in actual.lower()
        if isinstance(actual, (list, tuple)):
            if not case_sensitive and isinstance(text, str):
                return any(
                    isinstance(item, str) and item.lower() == text.lower() for item in actual
                )
            return any(_matches(item, text) for item in actual)
        return False

    return predicate


def where_exists(field: str) -> Predicate:
    """Field is present and not None."""

    def predicate(entry: Entry) -> bool:
        return get_field(entry, field) is not None

    return predicate


def where_references(field: str, collection: str, entry_id: str) -> Predicate:
    """Field holds a reference (or a sequence including one) to collection/id."""

    def predicate(entry: Entry) -> bool:
        value = get_field(entry, field)
        items = value if isinstance(value, (list, tuple)) else [value]
        for item in items:
            ref = to_reference(item)
            if ref is not None and ref.key == (collection, entry_id):
                return True
        return False

    return predicate


def and_(*predicates: Predicate) -> Predicate:
    def predicate(entry: Entry) -> bool:
        return all(p(entry) for p in predicates)

    return predicate


def or_(*predicates: Predicate) -> Predicate:
    def predicate(entry: Entry) -> bool:
        return any(p(entry) for p in predicates)

    return predicate


def not_(inner: Predicate) -> Predicate:
    def predicate(entry: Entry) -> bool:
        return not inner(entry)

    return predicate


def apply_filters(entries: Iterable[Entry], filters: Iterable[Predicate]) -> list[Entry]:
    """Keep entries passing every filter, in registration order.

    Evaluation stops at the first failing predicate for each entry.
    """
    filters = list(filters)
    return [entry for entry in entries if all(f(entry) for f in filters)]
