"""Reference detection and resolution."""

from contentgraph.references.detector import is_reference, is_reference_sequence, to_reference
from contentgraph.references.resolver import ReferenceResolver, ResolverSettings

__all__ = [
    "is_reference",
    "is_reference_sequence",
    "to_reference",
    "ReferenceResolver",
    "ResolverSettings",
]
