"""
Sorting utilities for queries.

Comparators take two entries and return a negative, zero or positive int.
Missing (None) values always sort after defined values, whatever the
direction. Chained comparators fall through on ties; Python's stable sort
keeps input order when every comparator ties.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from functools import cmp_to_key
from typing import Any, Union

from contentgraph.content.entry import Entry
from contentgraph.core.errors import QueryError
from contentgraph.query.filters import get_field

Comparator = Callable[[Entry, Entry], int]

DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class SortConfig:
    """Declarative sort on one field."""

    field: str
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.direction not in DIRECTIONS:
            raise QueryError(f"Invalid sort direction: {self.direction!r}")


SortSpec = Union[Comparator, SortConfig, Mapping[str, str]]


def _compare_values(a: Any, b: Any) -> int:
    if isinstance(a, str) and isinstance(b, str):
        a_key, b_key = a.casefold(), b.casefold()
        if a_key != b_key:
            return -1 if a_key < b_key else 1
        return -1 if a < b else 1 if a > b else 0
    try:
        return -1 if a < b else 1 if a > b else 0
    except TypeError:
        a_str, b_str = str(a), str(b)
        return -1 if a_str < b_str else 1 if a_str > b_str else 0


def _nulls_last(a: Any, b: Any, direction: str) -> int:
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    result = _compare_values(a, b)
    return result if direction == "asc" else -result


def sort_by(field: str, direction: str = "asc") -> Comparator:
    """Compare entries on a data field."""
    if direction not in DIRECTIONS:
        raise QueryError(f"Invalid sort direction: {direction!r}")

    def compare(a: Entry, b: Entry) -> int:
        return _nulls_last(get_field(a, field), get_field(b, field), direction)

    return compare


def to_datetime(value: Any) -> datetime | None:
    """Coerce a date-like value; unparseable values count as missing."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed
    return None


def sort_by_date(field: str = "publishDate", direction: str = "desc") -> Comparator:
    """Compare entries on a date field, most recent first by default."""
    if direction not in DIRECTIONS:
        raise QueryError(f"Invalid sort direction: {direction!r}")

    def compare(a: Entry, b: Entry) -> int:
        return _nulls_last(
            to_datetime(get_field(a, field)), to_datetime(get_field(b, field)), direction
        )

    return compare


def sort_by_title(direction: str = "asc") -> Comparator:
    return sort_by("title", direction)


def sort_by_order(direction: str = "asc") -> Comparator:
    return sort_by("order", direction)


def sort_by_multiple(*comparators: Comparator) -> Comparator:
    """Chain comparators: the first non-zero result wins."""

    def compare(a: Entry, b: Entry) -> int:
        for comparator in comparators:
            result = comparator(a, b)
            if result != 0:
                return result
        return 0

    return compare


def create_sort_fn(spec: SortSpec) -> Comparator:
    """Turn a comparator, SortConfig or ``{field, direction}`` mapping into a comparator."""
    if isinstance(spec, SortConfig):
        return sort_by(spec.field, spec.direction)
    if isinstance(spec, Mapping):
        if "field" not in spec:
            raise QueryError(f"Sort mapping needs a 'field' key: {dict(spec)!r}")
        return sort_by(str(spec["field"]), str(spec.get("direction", "asc")))
    if callable(spec):
        return spec
    raise QueryError(f"Invalid sort spec: {spec!r}")


def apply_sorting(entries: Iterable[Entry], sorts: Iterable[SortSpec]) -> list[Entry]:
    """Sort entries with the chained comparators in a single stable pass."""
    comparators = [create_sort_fn(spec) for spec in sorts]
    entries = list(entries)
    if not comparators:
        return entries
    return sorted(entries, key=cmp_to_key(sort_by_multiple(*comparators)))
