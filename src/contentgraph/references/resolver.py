"""
Reference resolution.

Resolves reference values embedded anywhere in entry data into populated
objects, so that a post declaring ``author: {collection: authors, id: jane}``
can be rendered with the full author without a separate fetch.

Resolved objects are plain dicts carrying the target's data plus:
- ``_collection`` / ``_id``: identity of the resolved entry
- ``_resolved``: explicit marker; marked mappings are never reprocessed
- ``slug``: the entry id
- ``url``: ``/{collection}/{slug}``, only when the entry has its own page
- ``name`` / ``initials``: derived from the title field, when present

Resolution failures are never fatal: a missing target becomes ``None``
in place and a warning is logged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from contentgraph.content.entry import Reference
from contentgraph.content.pages import DefaultPagePolicy, PagePolicy
from contentgraph.references.detector import is_reference, is_reference_sequence, to_reference

if TYPE_CHECKING:
    from contentgraph.content.store import ContentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolverSettings:
    """Tunable rules for reference resolution."""

    max_depth: int = 3
    internal_prefix: str = "_"
    title_field: str = "title"
    resolved_marker: str = "_resolved"


def compute_initials(title: str) -> str:
    """First letter of each whitespace-separated word, upper-cased."""
    return "".join(word[0] for word in str(title).split()).upper()


class ReferenceResolver:
    """Fetches referenced entries and walks data structures to resolve them."""

    def __init__(
        self,
        store: ContentStore,
        page_policy: PagePolicy | None = None,
        settings: ResolverSettings | None = None,
    ):
        self.store = store
        self.page_policy = page_policy or DefaultPagePolicy()
        self.settings = settings or ResolverSettings()

    def is_resolved(self, value: Any) -> bool:
        return isinstance(value, Mapping) and value.get(self.settings.resolved_marker) is True

    async def resolve_reference(self, ref: Reference | Mapping[str, str]) -> dict[str, Any] | None:
        """Fetch the referenced entry and project it into a resolved dict.

        Args:
            ref: Reference or reference-shaped mapping

        Returns:
            Resolved dict, or None if the target does not exist
        """
        ref = to_reference(ref)
        if ref is None:
            return None

        try:
            entry = await self.store.get_entry(ref.collection, ref.id)
            if entry is None:
                logger.warning("Reference not found: %s/%s", ref.collection, ref.id)
                return None
            meta = await self.store.get_collection_meta(ref.collection)
            has_page = self.page_policy.should_item_have_page(entry, meta)
        except Exception as e:
            logger.warning("Error resolving reference %s/%s: %s", ref.collection, ref.id, e)
            return None

        resolved: dict[str, Any] = {
            **entry.data,
            "_collection": ref.collection,
            "_id": ref.id,
            self.settings.resolved_marker: True,
            "slug": entry.id,
        }

        if has_page:
            resolved["url"] = f"/{ref.collection}/{entry.id}"

        title = entry.data.get(self.settings.title_field)
        if title:
            resolved["name"] = title
            resolved["initials"] = compute_initials(title)

        return resolved

    async def process_data_for_references(
        self,
        data: Any,
        depth: int = 0,
        max_depth: int | None = None,
    ) -> Any:
        """Recursively resolve every reference found in data.

        Returns new structures; the input is never mutated. Work is bounded
        by ``max_depth``: at that depth data is returned unchanged.

        Args:
            data: Any value (mapping, sequence, reference, primitive)
            depth: Current recursion depth
            max_depth: Depth bound (defaults to settings.max_depth)

        Returns:
            Data with references replaced by resolved dicts (or None)
        """
        if max_depth is None:
            max_depth = self.settings.max_depth
        if depth >= max_depth or data is None:
            return data

        if is_reference(data):
            resolved = await self.resolve_reference(data)
            if resolved is None:
                return None
            return await self._process_mapping(resolved, depth + 1, max_depth)

        if is_reference_sequence(data):
            resolved_items = await asyncio.gather(
                *(self.resolve_reference(item) for item in data)
            )
            return list(
                await asyncio.gather(
                    *(
                        self._process_mapping(item, depth + 1, max_depth) if item is not None else _none()
                        for item in resolved_items
                    )
                )
            )

        if isinstance(data, (list, tuple)):
            return list(
                await asyncio.gather(
                    *(self.process_data_for_references(item, depth + 1, max_depth) for item in data)
                )
            )

        if isinstance(data, Mapping):
            if self.is_resolved(data):
                return data
            return await self._process_mapping(data, depth, max_depth)

        return data

    async def _process_mapping(
        self, data: Mapping[str, Any], depth: int, max_depth: int
    ) -> dict[str, Any]:
        """Process every value of a mapping one level deeper.

        Keys with the internal prefix pass through untouched.
        """
        prefix = self.settings.internal_prefix
        keys = list(data.keys())
        values = await asyncio.gather(
            *(
                _passthrough(data[key])
                if isinstance(key, str) and key.startswith(prefix)
                else self.process_data_for_references(data[key], depth + 1, max_depth)
                for key in keys
            )
        )
        return dict(zip(keys, values))


async def _passthrough(value: Any) -> Any:
    return value


async def _none() -> None:
    return None
