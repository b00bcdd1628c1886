"""Shared pytest fixtures for docsearch unit tests."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from docsearch.schema import (
    FusedResult,
    GoldenSetEntry,
    IndexedChunk,
    QueryType,
    RelevanceJudgment,
    ScoredCandidate,
    SourceKind,
)


@pytest.fixture()
def sample_chunks() -> list[IndexedChunk]:
    return [
        IndexedChunk(
            chunk_id="C-routing",
            text="configure web routing with request mappings and path variables",
            source_url="https://docs.spring.io/web",
            section_path="web/routing",
            source_name="spring",
            version="6.1",
            content_type="prose",
        ),
        IndexedChunk(
            chunk_id="C-controller",
            text="@RestController public class GreetingController { @GetMapping }",
            source_url="https://docs.spring.io/web",
            section_path="web/rest-controllers",
            source_name="spring",
            version="6.1",
            content_type="code",
        ),
        IndexedChunk(
            chunk_id="C-hooks",
            text="react hooks let function components use state and effects",
            source_url="https://react.dev/reference",
            section_path="reference/hooks",
            source_name="react",
            version="19",
            content_type="prose",
        ),
    ]


@pytest.fixture()
def vector_candidates() -> list[ScoredCandidate]:
    return [
        ScoredCandidate(
            id="v1",
            text="vector one",
            score=0.9,
            source_kind=SourceKind.VECTOR,
            metadata={"source_url": "https://docs.example.com/a", "section_path": "guide/a"},
            vector=(1.0, 0.0),
        ),
        ScoredCandidate(
            id="v2",
            text="vector two",
            score=0.7,
            source_kind=SourceKind.VECTOR,
            metadata={"source_url": "https://docs.example.com/b", "section_path": "guide/b"},
            vector=(0.0, 1.0),
        ),
    ]


@pytest.fixture()
def keyword_candidates() -> list[ScoredCandidate]:
    return [
        ScoredCandidate(id="f1", text="keyword one", score=5.0, source_kind=SourceKind.KEYWORD),
        ScoredCandidate(id="f2", text="keyword two", score=3.0, source_kind=SourceKind.KEYWORD),
    ]


@pytest.fixture()
def fused_candidates() -> list[FusedResult]:
    return [
        FusedResult(
            id="A",
            text="text A",
            metadata={"source_url": "https://docs.spring.io/a", "section_path": "guide/a"},
            combined_score=0.7,
        ),
        FusedResult(
            id="B",
            text="text B",
            metadata={"source_url": "https://docs.spring.io/b", "section_path": "guide/b"},
            combined_score=0.8,
        ),
        FusedResult(
            id="C",
            text="text C",
            metadata={"source_url": "https://docs.spring.io/c", "section_path": "guide/c"},
            combined_score=0.6,
        ),
    ]


@pytest.fixture()
def golden_entry() -> GoldenSetEntry:
    return GoldenSetEntry(
        query="How do I configure routing?",
        query_type=QueryType.FACTUAL,
        judgments=(
            RelevanceJudgment("https://docs.spring.io/web#web/routing", 2),
            RelevanceJudgment("https://docs.spring.io/web#web/rest-controllers", 1),
        ),
    )


@pytest.fixture()
def mock_scorer() -> MagicMock:
    """Scorer whose `score_all` return value each test sets."""
    return MagicMock()
