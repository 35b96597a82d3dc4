"""
Relation resolution.

High-level lookups of an entry's relations over the cached graph, with
optional hydration of each relation's ``entry``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from contentgraph.content.entry import Entry, EntryKey
from contentgraph.content.store import ContentStore
from contentgraph.core.errors import EntryNotFoundError
from contentgraph.graph.cache import GraphCache
from contentgraph.graph.models import GraphOptions, Relation, RelationMap, RelationType

logger = logging.getLogger(__name__)


def deduplicate_relations(relations: Iterable[Relation]) -> list[Relation]:
    """Keep the first relation for each (collection, id)."""
    seen: set[EntryKey] = set()
    result: list[Relation] = []
    for relation in relations:
        if relation.key in seen:
            continue
        seen.add(relation.key)
        result.append(relation)
    return result


class RelationResolver:
    """Query-time access to relation maps."""

    def __init__(
        self,
        cache: GraphCache,
        store: ContentStore,
        default_options: GraphOptions | None = None,
    ):
        self.cache = cache
        self.store = store
        self.default_options = default_options or GraphOptions()

    async def get_relations(
        self,
        collection: str,
        entry_id: str,
        types: Iterable[RelationType | str] | None = None,
        options: GraphOptions | None = None,
    ) -> RelationMap:
        """Get the relation map of an entry.

        Args:
            collection: Entry collection
            entry_id: Entry id
            types: Keep only these relation types (projection, not a rebuild)
            options: Graph options (defaults to the resolver's defaults)

        Returns:
            RelationMap copy owned by the caller

        Raises:
            EntryNotFoundError: If the entry does not exist
        """
        graph = await self.cache.get_or_build(options or self.default_options)
        relation_map = graph.get_relation_map(collection, entry_id)
        if relation_map is None:
            raise EntryNotFoundError(collection, entry_id)

        types = list(types) if types is not None else []
        if types:
            return relation_map.filter_types(types)
        return relation_map

    async def get_referenced_entries(
        self,
        collection: str,
        entry_id: str,
        field: str | None = None,
        target_collection: str | None = None,
        resolve: bool = False,
    ) -> list[Relation]:
        """Entries this entry references, optionally narrowed by field and target collection."""
        relation_map = await self.get_relations(collection, entry_id, [RelationType.REFERENCE])
        relations = relation_map.references
        if field:
            relations = [r for r in relations if r.field == field]
        if target_collection:
            relations = [r for r in relations if r.collection == target_collection]
        if resolve:
            await self.resolve_relations(relations)
        return relations

    async def get_referencing_entries(
        self,
        collection: str,
        entry_id: str,
        field: str | None = None,
        from_collection: str | None = None,
        resolve: bool = False,
    ) -> list[Relation]:
        """Entries referencing this entry, optionally narrowed by field and source collection."""
        relation_map = await self.get_relations(collection, entry_id, [RelationType.REFERENCED_BY])
        relations = relation_map.referenced_by
        if field:
            relations = [r for r in relations if r.field == field]
        if from_collection:
            relations = [r for r in relations if r.collection == from_collection]
        if resolve:
            await self.resolve_relations(relations)
        return relations

    async def get_all_related_entries(
        self,
        collection: str,
        entry_id: str,
        include_indirect: bool = False,
        max_depth: int | None = None,
        resolve: bool = False,
    ) -> list[Relation]:
        """References and back-references, plus indirect relations when asked.

        Deduplicated by identity; direct relations win over indirect ones.

        Args:
            include_indirect: Include indirect relations (builds the indirect graph)
            max_depth: Drop indirect relations deeper than this (None keeps all)
            resolve: Hydrate each relation's entry
        """
        options = self.default_options
        if include_indirect:
            options = GraphOptions(
                include_indirect=True,
                max_indirect_depth=max(options.max_indirect_depth, max_depth or 0),
                parent_field=options.parent_field,
            )
        relation_map = await self.get_relations(collection, entry_id, options=options)

        relations = relation_map.references + relation_map.referenced_by
        if include_indirect:
            relations += [
                r for r in relation_map.indirect
                if max_depth is None or (r.depth is not None and r.depth <= max_depth)
            ]

        relations = deduplicate_relations(relations)
        if resolve:
            await self.resolve_relations(relations)
        return relations

    async def resolve_relations(self, relations: Iterable[Relation]) -> None:
        """Hydrate ``entry`` on each relation in place.

        One fetch per unique (collection, id), issued concurrently. Missing
        targets and fetch errors are logged and leave ``entry`` as None.
        """
        pending = [r for r in relations if r.entry is None]
        keys = list(dict.fromkeys(r.key for r in pending))
        if not keys:
            return

        fetched = await asyncio.gather(*(self._fetch(key) for key in keys))
        by_key = dict(zip(keys, fetched))
        for relation in pending:
            relation.entry = by_key[relation.key]

    async def _fetch(self, key: EntryKey) -> Entry | None:
        try:
            entry = await self.store.get_entry(*key)
        except Exception as e:
            logger.warning("Failed to resolve %s/%s: %s", key[0], key[1], e)
            return None
        if entry is None:
            logger.warning("Relation target not found: %s/%s", key[0], key[1])
        return entry

    # Hierarchy

    async def get_parent(self, collection: str, entry_id: str, resolve: bool = False) -> Relation | None:
        relation_map = await self.get_relations(collection, entry_id)
        if relation_map.parent is not None and resolve:
            await self.resolve_relations([relation_map.parent])
        return relation_map.parent

    async def get_children(
        self,
        collection: str,
        entry_id: str,
        recursive: bool = False,
        resolve: bool = False,
    ) -> list[Relation]:
        """Direct children, or every descendant when recursive."""
        relation_map = await self.get_relations(collection, entry_id)
        relations = relation_map.descendants if recursive else relation_map.children
        if resolve:
            await self.resolve_relations(relations)
        return relations

    async def get_ancestors(
        self, collection: str, entry_id: str, resolve: bool = False
    ) -> list[Relation]:
        """Ancestors nearest first (breadcrumb trail reversed)."""
        relation_map = await self.get_relations(collection, entry_id)
        if resolve:
            await self.resolve_relations(relation_map.ancestors)
        return relation_map.ancestors

    async def get_siblings(
        self, collection: str, entry_id: str, resolve: bool = False
    ) -> list[Relation]:
        relation_map = await self.get_relations(collection, entry_id)
        if resolve:
            await self.resolve_relations(relation_map.siblings)
        return relation_map.siblings

    async def get_roots(self, collection: str) -> list[Entry]:
        """Entries of a collection with no parent."""
        graph = await self.cache.get_or_build(self.default_options)
        roots = [
            key for key in graph.entries_in(collection)
            if graph.hierarchy_index[key].parent is None
        ]
        entries = await asyncio.gather(*(self.store.get_entry(*key) for key in roots))
        return [entry for entry in entries if entry is not None]
