"""Tests for the graph cache."""

import asyncio

import pytest

from contentgraph.content.entry import Entry
from contentgraph.content.store import InMemoryContentStore
from contentgraph.graph.cache import GraphCache
from contentgraph.graph.models import GraphOptions


class CountingStore(InMemoryContentStore):
    """Counts collection listings, one per graph build."""

    def __init__(self, *args, fail_times: int = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.builds = 0
        self.fail_times = fail_times

    async def list_collections(self):
        self.builds += 1
        await asyncio.sleep(0)
        if self.fail_times:
            self.fail_times -= 1
            raise OSError("transient failure")
        return await super().list_collections()


@pytest.fixture
def counting_store():
    return CountingStore([Entry("blog", "a", {}), Entry("blog", "b", {})])


async def test_get_or_build_caches(counting_store):
    cache = GraphCache(counting_store)
    first = await cache.get_or_build()
    second = await cache.get_or_build()

    assert first is second
    assert counting_store.builds == 1
    assert cache.get_cached() is first


async def test_concurrent_callers_share_one_build(counting_store):
    cache = GraphCache(counting_store)
    graphs = await asyncio.gather(*(cache.get_or_build() for _ in range(5)))

    assert counting_store.builds == 1
    assert all(graph is graphs[0] for graph in graphs)


async def test_options_are_cached_separately(counting_store):
    cache = GraphCache(counting_store)
    plain = await cache.get_or_build(GraphOptions())
    indirect = await cache.get_or_build(GraphOptions(include_indirect=True))

    assert plain is not indirect
    assert counting_store.builds == 2
    assert len(cache.cached_options()) == 2


async def test_failed_build_is_not_cached():
    store = CountingStore([Entry("blog", "a", {})], fail_times=1)
    cache = GraphCache(store)

    with pytest.raises(OSError):
        await cache.get_or_build()
    assert cache.get_cached() is None

    graph = await cache.get_or_build()
    assert graph.total_entries == 1
    assert store.builds == 2


async def test_rebuild_replaces_cached_graph(counting_store):
    cache = GraphCache(counting_store)
    first = await cache.get_or_build()
    rebuilt = await cache.rebuild()

    assert rebuilt is not first
    assert cache.get_cached() is rebuilt
    assert counting_store.builds == 2


async def test_invalidate(counting_store):
    cache = GraphCache(counting_store)
    await cache.get_or_build(GraphOptions())
    await cache.get_or_build(GraphOptions(include_indirect=True))

    cache.invalidate(GraphOptions())
    assert cache.get_cached(GraphOptions()) is None
    assert cache.get_cached(GraphOptions(include_indirect=True)) is not None

    cache.invalidate()
    assert cache.cached_options() == []


async def test_engine_caches_per_instance(store):
    from contentgraph.engine import ContentGraph

    one, two = ContentGraph(store), ContentGraph(store)
    assert await one.get_or_build_graph() is await one.get_or_build_graph()
    assert await one.get_or_build_graph() is not await two.get_or_build_graph()


class GatedStore(InMemoryContentStore):
    """Holds every graph build in list_collections until released."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.builds = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def list_collections(self):
        self.builds += 1
        self.started.set()
        await self.release.wait()
        return await super().list_collections()


async def test_invalidate_during_build_is_not_undone():
    store = GatedStore([Entry("blog", "a", {})])
    cache = GraphCache(store)

    pending = asyncio.create_task(cache.get_or_build())
    await store.started.wait()
    cache.invalidate()
    store.release.set()

    graph = await pending
    assert graph.total_entries == 1
    assert cache.get_cached() is None
    assert cache.cached_options() == []


async def test_rebuild_during_build_starts_a_fresh_build():
    store = GatedStore([Entry("blog", "a", {})])
    cache = GraphCache(store)

    pending = asyncio.create_task(cache.get_or_build())
    await store.started.wait()
    rebuilding = asyncio.create_task(cache.rebuild())
    await asyncio.sleep(0)
    store.release.set()

    stale = await pending
    rebuilt = await rebuilding
    assert rebuilt is not stale
    assert cache.get_cached() is rebuilt
    assert store.builds == 2
