"""
Query module.

Provides the fluent query builder, filter predicates, comparators and
relation lookups.
"""

from contentgraph.query.builder import Query, QueryResult
from contentgraph.query.filters import (
    and_,
    not_,
    or_,
    where_contains,
    where_equals,
    where_exists,
    where_in,
    where_references,
)
from contentgraph.query.relations import RelationResolver
from contentgraph.query.sorting import (
    SortConfig,
    sort_by,
    sort_by_date,
    sort_by_multiple,
    sort_by_order,
    sort_by_title,
)

__all__ = [
    "Query",
    "QueryResult",
    "RelationResolver",
    # Filters
    "where_equals",
    "where_contains",
    "where_in",
    "where_exists",
    "where_references",
    "and_",
    "or_",
    "not_",
    # Sorting
    "SortConfig",
    "sort_by",
    "sort_by_date",
    "sort_by_title",
    "sort_by_order",
    "sort_by_multiple",
]
