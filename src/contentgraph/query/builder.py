"""
Query builder.

Fluent API for querying one or more collections:

    result = await (
        graph.query("blog")
        .where(where_equals("status", "published"))
        .order_by(sort_by_date("publishDate", "desc"))
        .limit(10)
        .with_relations()
        .get()
    )

Builder methods return the builder. Each terminal call snapshots the
current state and executes immediately; nothing is memoized across calls.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from contentgraph.content.entry import Entry, format_key
from contentgraph.content.store import ContentStore
from contentgraph.core.errors import MissingCollectionError, QueryError
from contentgraph.graph.models import GraphOptions, RelationMap
from contentgraph.query.filters import Predicate, apply_filters
from contentgraph.query.relations import RelationResolver
from contentgraph.query.sorting import Comparator, SortSpec, apply_sorting, create_sort_fn

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Result of executing a query.

    Pagination fields are only set when a limit was given.
    """

    entries: list[Entry]
    total: int
    page: int | None = None
    page_size: int | None = None
    has_next: bool | None = None
    has_prev: bool | None = None
    relations: dict[str, RelationMap] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: dict[str, Any] = {
            "entries": [entry.to_dict() for entry in self.entries],
            "total": self.total,
        }
        if self.page_size is not None:
            result.update(
                page=self.page,
                page_size=self.page_size,
                has_next=self.has_next,
                has_prev=self.has_prev,
            )
        if self.relations is not None:
            result["relations"] = {key: m.to_dict() for key, m in self.relations.items()}
        return result


@dataclass(frozen=True)
class QueryState:
    """Frozen snapshot of a query taken at execution time."""

    collections: tuple[str, ...]
    filters: tuple[Predicate, ...] = ()
    sorts: tuple[Comparator, ...] = ()
    limit: int | None = None
    offset: int = 0
    include_relations: bool = False
    relation_depth: int | None = None


class Query:
    """Fluent query over content collections."""

    def __init__(
        self,
        store: ContentStore,
        relations: RelationResolver | None = None,
        collections: str | Iterable[str] | None = None,
    ):
        self.store = store
        self.relations = relations
        self._collections: tuple[str, ...] = ()
        self._filters: list[Predicate] = []
        self._sorts: list[Comparator] = []
        self._limit: int | None = None
        self._offset = 0
        self._include_relations = False
        self._relation_depth: int | None = None
        if collections is not None:
            self.from_(collections)

    def from_(self, collections: str | Iterable[str]) -> Query:
        """Set the collection(s) to query."""
        if isinstance(collections, str):
            self._collections = (collections,)
        else:
            self._collections = tuple(collections)
        return self

    def where(self, predicate: Predicate) -> Query:
        """Add a filter. Filters are AND-combined in registration order."""
        self._filters.append(predicate)
        return self

    def where_all(self, *predicates: Predicate) -> Query:
        self._filters.extend(predicates)
        return self

    def order_by(self, sort: SortSpec) -> Query:
        """Add a sort key. Earlier keys win; later keys break ties."""
        self._sorts.append(create_sort_fn(sort))
        return self

    def limit(self, n: int) -> Query:
        if n < 1:
            raise QueryError(f"limit must be >= 1, got {n}")
        self._limit = n
        return self

    def offset(self, n: int) -> Query:
        if n < 0:
            raise QueryError(f"offset must be >= 0, got {n}")
        self._offset = n
        return self

    def with_relations(self, include: bool = True, max_depth: int | None = None) -> Query:
        """Attach each result's relation map.

        A max_depth above 1 also includes indirect relations up to that depth.
        """
        self._include_relations = include
        if max_depth is not None:
            self._relation_depth = max_depth
        return self

    def snapshot(self) -> QueryState:
        return QueryState(
            collections=self._collections,
            filters=tuple(self._filters),
            sorts=tuple(self._sorts),
            limit=self._limit,
            offset=self._offset,
            include_relations=self._include_relations,
            relation_depth=self._relation_depth,
        )

    async def get(self) -> QueryResult:
        """Execute the query."""
        return await self._execute(self.snapshot())

    async def first(self) -> Entry | None:
        """First matching entry, or None."""
        result = await self._execute(replace(self.snapshot(), limit=1, include_relations=False))
        return result.entries[0] if result.entries else None

    async def all(self) -> list[Entry]:
        """Every matching entry, ignoring limit and offset."""
        result = await self._execute(
            replace(self.snapshot(), limit=None, offset=0, include_relations=False)
        )
        return result.entries

    async def count(self) -> int:
        result = await self._execute(replace(self.snapshot(), include_relations=False))
        return result.total

    async def _load_entries(self, collections: tuple[str, ...]) -> list[Entry]:
        listed = await asyncio.gather(
            *(self._list_collection(collection) for collection in collections)
        )
        missing = [c for c, entries in zip(collections, listed) if entries is None]
        if missing and len(missing) == len(collections):
            raise MissingCollectionError(", ".join(missing))
        return [entry for entries in listed if entries for entry in entries]

    async def _list_collection(self, collection: str) -> list[Entry] | None:
        try:
            return await self.store.list_entries(collection)
        except MissingCollectionError:
            logger.warning("Unknown collection in query: %s", collection)
            return None

    async def _execute(self, state: QueryState) -> QueryResult:
        if not state.collections:
            raise QueryError("Collection not specified")

        entries = await self._load_entries(state.collections)
        if state.filters:
            entries = apply_filters(entries, state.filters)

        total = len(entries)
        if state.sorts:
            entries = apply_sorting(entries, state.sorts)

        start = state.offset
        end = start + state.limit if state.limit is not None else total
        page_entries = entries[start:end]

        result = QueryResult(entries=page_entries, total=total)
        if state.limit is not None:
            result.page = state.offset // state.limit + 1
            result.page_size = state.limit
            result.has_next = end < total
            result.has_prev = state.offset > 0

        if state.include_relations:
            result.relations = await self._relations_for(page_entries, state.relation_depth)

        return result

    async def _relations_for(
        self, entries: list[Entry], depth: int | None
    ) -> dict[str, RelationMap]:
        if self.relations is None:
            raise QueryError("Query has no relation resolver; cannot include relations")

        options = self.relations.default_options
        if depth is not None and depth > 1:
            options = GraphOptions(
                include_indirect=True,
                max_indirect_depth=depth,
                parent_field=options.parent_field,
            )

        maps = await asyncio.gather(
            *(
                self.relations.get_relations(entry.collection, entry.id, options=options)
                for entry in entries
            )
        )
        return {format_key(entry.key): relation_map for entry, relation_map in zip(entries, maps)}


async def find(store: ContentStore, collection: str, entry_id: str) -> Entry | None:
    """Find an entry by id."""
    return await store.get_entry(collection, entry_id)


async def find_where(store: ContentStore, collection: str, predicate: Predicate) -> Entry | None:
    """First entry of a collection matching predicate."""
    return await Query(store, collections=collection).where(predicate).first()


async def find_all(
    store: ContentStore, collection: str, predicate: Predicate | None = None
) -> list[Entry]:
    """Every entry of a collection, optionally filtered."""
    query = Query(store, collections=collection)
    if predicate is not None:
        query.where(predicate)
    return await query.all()
