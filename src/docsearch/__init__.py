"""Hybrid retrieval, reranking and IR evaluation for crawled documentation."""

from .schema import (
    FusedResult,
    GoldenSetEntry,
    QueryType,
    RelevanceJudgment,
    ScoredCandidate,
    SearchRequest,
    SearchResult,
    SourceKind,
)

__all__ = [
    "FusedResult",
    "GoldenSetEntry",
    "QueryType",
    "RelevanceJudgment",
    "ScoredCandidate",
    "SearchRequest",
    "SearchResult",
    "SourceKind",
]
