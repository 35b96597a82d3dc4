"""
Relationship graph construction.

Scans every entry of every collection once and derives:
- forward edges: references an entry holds
- backward edges: references held by other entries pointing at it
- hierarchy: parent/children adjacency from the parent field, plus
  ancestors, descendants and siblings
- indirect relations (optional): entries 2..max_indirect_depth hops away
  over forward and backward edges

Steps 2-4 are linear in the number of entries and fields. The indirect
pass is a bounded BFS per entry, so max_indirect_depth should stay small.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from contentgraph.content.entry import Entry, EntryKey
from contentgraph.content.store import ContentStore
from contentgraph.graph.models import (
    GraphOptions,
    HierarchyNode,
    Relation,
    RelationMap,
    RelationshipGraph,
    RelationType,
)
from contentgraph.references.detector import is_reference, is_reference_sequence, to_reference

logger = logging.getLogger(__name__)


def iter_references(data: Mapping[str, Any], prefix: str = "") -> Iterator[tuple[str, EntryKey]]:
    """Yield ``(field, target)`` for every reference held in data.

    Nested mappings produce dotted field paths (``seo.author``); mappings
    inside plain sequences keep the sequence's field path.
    """
    for key, value in data.items():
        field_path = f"{prefix}{key}"
        yield from _iter_value(value, field_path)


def _iter_value(value: Any, field_path: str) -> Iterator[tuple[str, EntryKey]]:
    if is_reference(value):
        yield field_path, to_reference(value).key
    elif is_reference_sequence(value):
        for item in value:
            yield field_path, to_reference(item).key
    elif isinstance(value, Mapping):
        yield from iter_references(value, prefix=f"{field_path}.")
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_value(item, field_path)


def parent_key(entry: Entry, parent_field: str) -> EntryKey | None:
    """Key of an entry's declared parent.

    A string parent is an id in the entry's own collection; a reference may
    point anywhere.
    """
    value = entry.data.get(parent_field)
    if isinstance(value, str) and value:
        return (entry.collection, value)
    ref = to_reference(value)
    if ref is not None:
        return ref.key
    return None


class GraphBuilder:
    """Builds a RelationshipGraph from a content store."""

    def __init__(self, store: ContentStore, options: GraphOptions | None = None):
        self.store = store
        self.options = options or GraphOptions()

    async def build(self) -> RelationshipGraph:
        """Run a full build.

        Store failures propagate: no partial graph is returned.
        """
        started = time.perf_counter()
        collections = await self.store.list_collections()
        listed = await asyncio.gather(*(self.store.list_entries(c) for c in collections))

        entries: dict[EntryKey, Entry] = {}
        for collection_entries in listed:
            for entry in collection_entries:
                entries[entry.key] = entry

        forward = self._build_forward_edges(entries)
        backward = self._build_backward_edges(forward)
        hierarchy = self._build_hierarchy(entries)

        maps: dict[EntryKey, RelationMap] = {}
        for key in entries:
            maps[key] = self._relation_map(key, forward, backward, hierarchy)

        if self.options.include_indirect and self.options.max_indirect_depth >= 2:
            adjacency = self._adjacency(entries, forward, backward)
            for key, relation_map in maps.items():
                relation_map.indirect = self._indirect_relations(key, relation_map, adjacency)

        graph = RelationshipGraph(
            total_entries=len(entries),
            collections=tuple(collections),
            forward_edges=_freeze_edges(forward),
            backward_edges=_freeze_edges(backward),
            hierarchy_index=MappingProxyType(hierarchy),
            relation_maps=MappingProxyType(maps),
            built_at=datetime.now(timezone.utc),
            options=self.options,
        )
        logger.debug(
            "Built relationship graph: %d entries, %d collections in %.3fs",
            graph.total_entries,
            len(graph.collections),
            time.perf_counter() - started,
        )
        return graph

    def _build_forward_edges(self, entries: dict[EntryKey, Entry]) -> dict[EntryKey, list[Relation]]:
        parent_field = self.options.parent_field
        forward: dict[EntryKey, list[Relation]] = {}

        for key, entry in entries.items():
            relations: list[Relation] = []
            seen: set[tuple[str, EntryKey]] = set()
            fields = {k: v for k, v in entry.data.items() if k != parent_field}

            for field_path, target in iter_references(fields):
                # No self loops
                if target == key or (field_path, target) in seen:
                    continue
                seen.add((field_path, target))
                if target not in entries:
                    logger.warning(
                        "Dangling reference %s/%s in %s/%s (field %s)",
                        target[0], target[1], key[0], key[1], field_path,
                    )
                relations.append(
                    Relation(
                        collection=target[0],
                        id=target[1],
                        type=RelationType.REFERENCE,
                        field=field_path,
                    )
                )
            forward[key] = relations

        return forward

    @staticmethod
    def _build_backward_edges(
        forward: dict[EntryKey, list[Relation]],
    ) -> dict[EntryKey, list[Relation]]:
        backward: dict[EntryKey, list[Relation]] = {}
        for source, relations in forward.items():
            for relation in relations:
                backward.setdefault(relation.key, []).append(
                    Relation(
                        collection=source[0],
                        id=source[1],
                        type=RelationType.REFERENCED_BY,
                        field=relation.field,
                    )
                )
        return backward

    def _build_hierarchy(self, entries: dict[EntryKey, Entry]) -> dict[EntryKey, HierarchyNode]:
        parents: dict[EntryKey, EntryKey | None] = {}
        children: dict[EntryKey, list[EntryKey]] = {key: [] for key in entries}

        for key, entry in entries.items():
            parent = parent_key(entry, self.options.parent_field)
            if parent is not None and (parent == key or parent not in entries):
                if parent != key:
                    logger.warning(
                        "Missing parent %s/%s for %s/%s", parent[0], parent[1], key[0], key[1]
                    )
                parent = None
            parents[key] = parent
            if parent is not None:
                children[parent].append(key)

        return {
            key: HierarchyNode(parent=parents[key], children=tuple(children[key]))
            for key in entries
        }

    def _relation_map(
        self,
        key: EntryKey,
        forward: dict[EntryKey, list[Relation]],
        backward: dict[EntryKey, list[Relation]],
        hierarchy: dict[EntryKey, HierarchyNode],
    ) -> RelationMap:
        node = hierarchy[key]
        parent = None
        siblings: list[Relation] = []
        if node.parent is not None:
            parent = _relation(node.parent, RelationType.PARENT, depth=1)
            siblings = [
                _relation(sibling, RelationType.SIBLING)
                for sibling in hierarchy[node.parent].children
                if sibling != key
            ]

        return RelationMap(
            collection=key[0],
            id=key[1],
            references=list(forward.get(key, [])),
            referenced_by=list(backward.get(key, [])),
            parent=parent,
            children=[_relation(child, RelationType.CHILD, depth=1) for child in node.children],
            siblings=siblings,
            ancestors=[
                _relation(k, RelationType.ANCESTOR, depth=d) for k, d in ancestors_of(key, hierarchy)
            ],
            descendants=[
                _relation(k, RelationType.DESCENDANT, depth=d)
                for k, d in descendants_of(key, hierarchy)
            ],
        )

    @staticmethod
    def _adjacency(
        entries: dict[EntryKey, Entry],
        forward: dict[EntryKey, list[Relation]],
        backward: dict[EntryKey, list[Relation]],
    ) -> dict[EntryKey, list[EntryKey]]:
        """Undirected neighbour lists over existing entries."""
        adjacency: dict[EntryKey, list[EntryKey]] = {}
        for key in entries:
            neighbours: dict[EntryKey, None] = {}
            for relation in forward.get(key, []) + backward.get(key, []):
                if relation.key in entries and relation.key != key:
                    neighbours[relation.key] = None
            adjacency[key] = list(neighbours)
        return adjacency

    def _indirect_relations(
        self,
        start: EntryKey,
        relation_map: RelationMap,
        adjacency: dict[EntryKey, list[EntryKey]],
    ) -> list[Relation]:
        """Bounded BFS from start, recording nodes first reached at hop >= 2."""
        max_depth = self.options.max_indirect_depth
        direct = {r.key for r in relation_map.all_relations()}
        visited = {start}
        queue: deque[tuple[EntryKey, int]] = deque([(start, 0)])
        found: list[Relation] = []

        while queue:
            key, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for neighbour in adjacency.get(key, ()):
                if neighbour in visited:
                    continue
                visited.add(neighbour)
                hop = depth + 1
                if hop >= 2 and neighbour not in direct:
                    found.append(_relation(neighbour, RelationType.INDIRECT, depth=hop))
                queue.append((neighbour, hop))

        return found


def ancestors_of(
    key: EntryKey, hierarchy: Mapping[EntryKey, HierarchyNode]
) -> list[tuple[EntryKey, int]]:
    """Walk the parent chain to the root, nearest first.

    Stops on a missing parent or on a cycle.
    """
    result: list[tuple[EntryKey, int]] = []
    visited = {key}
    node = hierarchy.get(key)
    depth = 0
    while node is not None and node.parent is not None and node.parent not in visited:
        depth += 1
        visited.add(node.parent)
        result.append((node.parent, depth))
        node = hierarchy.get(node.parent)
    return result


def descendants_of(
    key: EntryKey, hierarchy: Mapping[EntryKey, HierarchyNode]
) -> list[tuple[EntryKey, int]]:
    """BFS over children, breadth first, each entry visited once."""
    result: list[tuple[EntryKey, int]] = []
    visited = {key}
    queue: deque[tuple[EntryKey, int]] = deque([(key, 0)])
    while queue:
        current, depth = queue.popleft()
        node = hierarchy.get(current)
        if node is None:
            continue
        for child in node.children:
            if child in visited:
                continue
            visited.add(child)
            result.append((child, depth + 1))
            queue.append((child, depth + 1))
    return result


def _freeze_edges(
    edges: dict[EntryKey, list[Relation]],
) -> MappingProxyType[EntryKey, tuple[Relation, ...]]:
    # Own copies: relation maps hold the originals
    return MappingProxyType({k: tuple(r.copy() for r in v) for k, v in edges.items()})


def _relation(key: EntryKey, relation_type: RelationType, depth: int | None = None) -> Relation:
    return Relation(collection=key[0], id=key[1], type=relation_type, depth=depth)


async def build_relationship_graph(
    store: ContentStore, options: GraphOptions | None = None
) -> RelationshipGraph:
    """Build a relationship graph without caching."""
    return await GraphBuilder(store, options).build()
