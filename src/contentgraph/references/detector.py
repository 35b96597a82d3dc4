"""
Reference detection.

A reference is a minimal pointer: a ``Reference`` instance, or a mapping
carrying exactly string-typed ``collection`` and ``id`` keys. Any extra key
disqualifies the mapping, so partially loaded or already resolved entries
are never mistaken for pointers.

These predicates are the only place reference shape is decided; the
resolver, graph builder and query filters all go through them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from contentgraph.content.entry import Reference

REFERENCE_KEYS = frozenset(("collection", "id"))


def is_reference(value: Any) -> bool:
    """Return True if value is a reference to another entry."""
    if isinstance(value, Reference):
        return True
    if not isinstance(value, Mapping) or len(value) != 2:
        return False
    return (
        value.keys() == REFERENCE_KEYS
        and isinstance(value["collection"], str)
        and isinstance(value["id"], str)
    )


def is_reference_sequence(value: Any) -> bool:
    """Return True if value is a non-empty list/tuple of references."""
    if not isinstance(value, (list, tuple)) or not value:
        return False
    return all(is_reference(item) for item in value)


def to_reference(value: Any) -> Reference | None:
    """Convert a reference-shaped value into a ``Reference``."""
    if isinstance(value, Reference):
        return value
    if is_reference(value):
        return Reference(collection=value["collection"], id=value["id"])
    return None


def tag_references(data: Any) -> Any:
    """Return a copy of data with reference-shaped mappings replaced by ``Reference``.

    Used at the loading boundary so that content parsed from files carries
    typed pointers.
    """
    ref = to_reference(data)
    if ref is not None:
        return ref
    if isinstance(data, list):
        return [tag_references(item) for item in data]
    if isinstance(data, tuple):
        return tuple(tag_references(item) for item in data)
    if isinstance(data, Mapping):
        return {key: tag_references(value) for key, value in data.items()}
    return data
