"""Composable metadata filters for search requests.

A filter is a small tree of predicates over a chunk's metadata map:

- ``Equals(key, value)``            exact match on one field
- ``ContainsSubstring(key, value)`` substring match on one field
- ``And(left, right)``              both sides must match

``matches`` interprets the tree. Backends that can push filters down to their
store may translate the tree instead (see ``vector_store.to_chroma_where``).
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
import re

from .schema import CONTENT_TYPE, SECTION_PATH, SOURCE_NAME, VERSION, SearchRequest

MIXED_CONTENT_TYPE = "mixed"

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class Equals:
    key: str
    value: str


@dataclass(frozen=True, slots=True)
class ContainsSubstring:
    key: str
    value: str


@dataclass(frozen=True, slots=True)
class And:
    left: "MetadataFilter"
    right: "MetadataFilter"


MetadataFilter = Equals | ContainsSubstring | And


def slugify(text: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to one hyphen, trim hyphens."""
    return _NON_ALPHANUMERIC.sub("-", text.lower()).strip("-")


def matches(metadata_filter: MetadataFilter | None, metadata: dict[str, str]) -> bool:
    """Evaluate a filter tree against one metadata map; `None` matches everything."""
    if metadata_filter is None:
        return True
    if isinstance(metadata_filter, Equals):
        return metadata.get(metadata_filter.key) == metadata_filter.value
    if isinstance(metadata_filter, ContainsSubstring):
        value = metadata.get(metadata_filter.key)
        return value is not None and metadata_filter.value in value
    if isinstance(metadata_filter, And):
        return matches(metadata_filter.left, metadata) and matches(metadata_filter.right, metadata)
    raise TypeError(f"Unsupported filter node: {metadata_filter!r}")


def flatten(metadata_filter: MetadataFilter | None) -> list[Equals | ContainsSubstring]:
    """Return the leaf predicates of an AND tree, left to right."""
    if metadata_filter is None:
        return []
    if isinstance(metadata_filter, And):
        return flatten(metadata_filter.left) + flatten(metadata_filter.right)
    return [metadata_filter]


def build_metadata_filter(request: SearchRequest) -> MetadataFilter | None:
    """Build the AND of whichever filter fields the request carries.

    Args:
        request: Validated search request.

    Returns:
        Filter tree, or `None` when the request sets no filters.
    """
    clauses: list[MetadataFilter] = []
    if request.source is not None:
        clauses.append(Equals(SOURCE_NAME, request.source))
    if request.version is not None:
        clauses.append(Equals(VERSION, request.version))
    if request.section_path is not None:
        clauses.append(ContainsSubstring(SECTION_PATH, slugify(request.section_path)))
    if request.content_type is not None and request.content_type.lower() != MIXED_CONTENT_TYPE:
        clauses.append(Equals(CONTENT_TYPE, request.content_type.lower()))

    if not clauses:
        return None
    return reduce(And, clauses)
