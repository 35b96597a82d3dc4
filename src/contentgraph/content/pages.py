"""Page policy: which entries are independently addressable."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from contentgraph.content.entry import CollectionMeta, Entry


@runtime_checkable
class PagePolicy(Protocol):
    """Decides whether an entry gets its own page (and therefore a URL)."""

    def should_item_have_page(self, entry: Entry, meta: CollectionMeta) -> bool:
        ...


class DefaultPagePolicy:
    """An entry's own ``hasPage`` flag overrides the collection's ``itemsHasPage``."""

    def should_item_have_page(self, entry: Entry, meta: CollectionMeta) -> bool:
        has_page = entry.data.get("hasPage")
        if isinstance(has_page, bool):
            return has_page
        return meta.items_have_page


def should_collection_have_page(meta: CollectionMeta) -> bool:
    return meta.has_page
