"""
Graph cache.

Holds one built graph per options fingerprint. Concurrent callers asking
for the same fingerprint while a build is running share that build
(single-flight). Failed builds are never cached.

There is no automatic invalidation: content is static for the life of the
process. Use ``rebuild`` or ``invalidate`` explicitly.
"""

from __future__ import annotations

import asyncio
import logging

from contentgraph.content.store import ContentStore
from contentgraph.graph.builder import GraphBuilder
from contentgraph.graph.models import GraphOptions, RelationshipGraph

logger = logging.getLogger(__name__)


class GraphCache:
    """Per-store cache of relationship graphs keyed by options fingerprint."""

    def __init__(self, store: ContentStore):
        self.store = store
        self._graphs: dict[str, RelationshipGraph] = {}
        self._in_flight: dict[str, asyncio.Task[RelationshipGraph]] = {}
        self._generations: dict[str, int] = {}

    def get_cached(self, options: GraphOptions | None = None) -> RelationshipGraph | None:
        return self._graphs.get((options or GraphOptions()).fingerprint())

    def cached_options(self) -> list[GraphOptions]:
        return [graph.options for graph in self._graphs.values()]

    async def get_or_build(self, options: GraphOptions | None = None) -> RelationshipGraph:
        """Return the cached graph for options, building it on a miss."""
        options = options or GraphOptions()
        fingerprint = options.fingerprint()

        graph = self._graphs.get(fingerprint)
        if graph is not None:
            logger.debug("Graph cache hit: %s", fingerprint)
            return graph

        task = self._in_flight.get(fingerprint)
        if task is None:
            logger.debug("Graph cache miss, building: %s", fingerprint)
            generation = self._generations.get(fingerprint, 0)
            task = asyncio.create_task(self._build(options, fingerprint, generation))
            self._in_flight[fingerprint] = task
        return await asyncio.shield(task)

    async def rebuild(self, options: GraphOptions | None = None) -> RelationshipGraph:
        """Discard any cached or in-flight graph for options and build a fresh one."""
        options = options or GraphOptions()
        self.invalidate(options)
        return await self.get_or_build(options)

    def invalidate(self, options: GraphOptions | None = None) -> None:
        """Drop the graph for options, or every graph when options is None.

        Builds already running for a dropped fingerprint still return to
        their callers but never land in the cache.
        """
        if options is None:
            fingerprints = set(self._graphs) | set(self._in_flight)
        else:
            fingerprints = {options.fingerprint()}

        for fingerprint in fingerprints:
            self._generations[fingerprint] = self._generations.get(fingerprint, 0) + 1
            self._graphs.pop(fingerprint, None)
            self._in_flight.pop(fingerprint, None)

    async def _build(
        self, options: GraphOptions, fingerprint: str, generation: int
    ) -> RelationshipGraph:
        try:
            graph = await GraphBuilder(self.store, options).build()
            if self._generations.get(fingerprint, 0) == generation:
                self._graphs[fingerprint] = graph
            else:
                logger.debug("Discarding stale graph build: %s", fingerprint)
            return graph
        finally:
            if self._in_flight.get(fingerprint) is asyncio.current_task():
                del self._in_flight[fingerprint]
