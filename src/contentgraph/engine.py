"""
ContentGraph: the public entry point.

Wires a content store to the graph cache, relation resolver, reference
resolver and query builder. Each instance owns its own cache; nothing is
shared at module level.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from contentgraph.content.entry import Entry, Reference
from contentgraph.content.pages import PagePolicy
from contentgraph.content.store import ContentStore, FileContentStore
from contentgraph.core.config import Settings, get_paths, load_settings
from contentgraph.graph.cache import GraphCache
from contentgraph.graph.models import GraphOptions, Relation, RelationMap, RelationshipGraph, RelationType
from contentgraph.query.builder import Query, find, find_all, find_where
from contentgraph.query.filters import Predicate
from contentgraph.query.relations import RelationResolver
from contentgraph.references.resolver import ReferenceResolver, ResolverSettings


class ContentGraph:
    """Relationship graph and query engine over a content store."""

    def __init__(
        self,
        store: ContentStore,
        page_policy: PagePolicy | None = None,
        settings: Settings | None = None,
        cache: GraphCache | None = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.cache = cache or GraphCache(store)
        self.default_options = GraphOptions(
            include_indirect=self.settings.include_indirect,
            max_indirect_depth=self.settings.max_indirect_depth,
            parent_field=self.settings.parent_field,
        )
        self.relations = RelationResolver(self.cache, store, self.default_options)
        self.references = ReferenceResolver(
            store,
            page_policy=page_policy,
            settings=ResolverSettings(
                max_depth=self.settings.max_reference_depth,
                internal_prefix=self.settings.internal_prefix,
                title_field=self.settings.title_field,
            ),
        )

    @classmethod
    def from_site(cls, site_root: Path | None = None, include_drafts: bool | None = None) -> ContentGraph:
        """Build an engine over a site's content directory using its config."""
        paths = get_paths(site_root)
        settings = load_settings(paths.root)
        store = FileContentStore(
            paths.root,
            content_dir=settings.content_dir,
            include_drafts=settings.include_drafts if include_drafts is None else include_drafts,
        )
        return cls(store, settings=settings)

    def graph_options(
        self, include_indirect: bool | None = None, max_indirect_depth: int | None = None
    ) -> GraphOptions:
        """Default options with selected overrides."""
        return GraphOptions(
            include_indirect=(
                self.default_options.include_indirect if include_indirect is None else include_indirect
            ),
            max_indirect_depth=(
                self.default_options.max_indirect_depth
                if max_indirect_depth is None
                else max_indirect_depth
            ),
            parent_field=self.default_options.parent_field,
        )

    # Graph

    async def build_relationship_graph(self, options: GraphOptions | None = None) -> RelationshipGraph:
        """Build a fresh graph for options, replacing any cached one."""
        return await self.cache.rebuild(options or self.default_options)

    async def get_or_build_graph(self, options: GraphOptions | None = None) -> RelationshipGraph:
        return await self.cache.get_or_build(options or self.default_options)

    # Queries

    def query(self, collections: str | Iterable[str] | None = None) -> Query:
        return Query(self.store, relations=self.relations, collections=collections)

    async def find(self, collection: str, entry_id: str) -> Entry | None:
        return await find(self.store, collection, entry_id)

    async def find_where(self, collection: str, predicate: Predicate) -> Entry | None:
        return await find_where(self.store, collection, predicate)

    async def find_all(self, collection: str, predicate: Predicate | None = None) -> list[Entry]:
        return await find_all(self.store, collection, predicate)

    # Relations

    async def get_relations(
        self,
        collection: str,
        entry_id: str,
        types: Iterable[RelationType | str] | None = None,
    ) -> RelationMap:
        return await self.relations.get_relations(collection, entry_id, types)

    async def get_referenced_entries(self, collection: str, entry_id: str, **kwargs: Any) -> list[Relation]:
        return await self.relations.get_referenced_entries(collection, entry_id, **kwargs)

    async def get_referencing_entries(self, collection: str, entry_id: str, **kwargs: Any) -> list[Relation]:
        return await self.relations.get_referencing_entries(collection, entry_id, **kwargs)

    async def get_all_related_entries(self, collection: str, entry_id: str, **kwargs: Any) -> list[Relation]:
        return await self.relations.get_all_related_entries(collection, entry_id, **kwargs)

    async def resolve_relations(self, relations: Iterable[Relation]) -> None:
        await self.relations.resolve_relations(relations)

    async def get_parent(self, collection: str, entry_id: str, resolve: bool = False) -> Relation | None:
        return await self.relations.get_parent(collection, entry_id, resolve=resolve)

    async def get_children(self, collection: str, entry_id: str, **kwargs: Any) -> list[Relation]:
        return await self.relations.get_children(collection, entry_id, **kwargs)

    async def get_ancestors(self, collection: str, entry_id: str, resolve: bool = False) -> list[Relation]:
        return await self.relations.get_ancestors(collection, entry_id, resolve=resolve)

    async def get_siblings(self, collection: str, entry_id: str, resolve: bool = False) -> list[Relation]:
        return await self.relations.get_siblings(collection, entry_id, resolve=resolve)

    async def get_roots(self, collection: str) -> list[Entry]:
        return await self.relations.get_roots(collection)

    # References

    async def resolve_reference(self, ref: Reference | dict[str, str]) -> dict[str, Any] | None:
        return await self.references.resolve_reference(ref)

    async def process_data_for_references(self, data: Any, max_depth: int | None = None) -> Any:
        return await self.references.process_data_for_references(data, max_depth=max_depth)
