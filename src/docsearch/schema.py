from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_MAX_RESULTS = 10

# Metadata keys shared with the ingestion side.
SOURCE_URL = "source_url"
SECTION_PATH = "section_path"
SOURCE_NAME = "source_name"
VERSION = "version"
CONTENT_TYPE = "content_type"


class SourceKind(str, Enum):
    """Which retrieval signal produced a candidate."""

    VECTOR = "vector"
    KEYWORD = "keyword"


@dataclass(slots=True)
class IndexedChunk:
    """Chunk record as stored by ingestion, with its citation metadata."""

    chunk_id: str
    text: str
    source_url: str = ""
    section_path: str = ""
    source_name: str = ""
    version: str = ""
    content_type: str = "prose"

    def metadata(self) -> dict[str, str]:
        return {
            SOURCE_URL: self.source_url,
            SECTION_PATH: self.section_path,
            SOURCE_NAME: self.source_name,
            VERSION: self.version,
            CONTENT_TYPE: self.content_type,
        }


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    """Candidate with its raw score from a single source (vector or keyword).

    `id` is stable across both sources so overlapping hits can be merged.
    Keyword hits usually carry no vector.
    """

    id: str
    text: str
    score: float
    source_kind: SourceKind
    metadata: dict[str, str] = field(default_factory=dict)
    vector: tuple[float, ...] | None = None


@dataclass(frozen=True, slots=True)
class FusedResult:
    """One entry per distinct candidate id after fusion."""

    id: str
    text: str
    metadata: dict[str, str]
    combined_score: float
    vector: tuple[float, ...] = ()


@dataclass(frozen=True, slots=True)
class SeparateCandidates:
    """Backend response carrying independently scored vector and keyword lists."""

    vector_results: list[ScoredCandidate]
    keyword_results: list[ScoredCandidate]


@dataclass(frozen=True, slots=True)
class RankedCandidates:
    """Backend response that is already a single ranked list."""

    results: list[ScoredCandidate]


BackendResponse = SeparateCandidates | RankedCandidates


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """Search query with optional metadata filters and a rerank score floor."""

    query: str
    max_results: int = DEFAULT_MAX_RESULTS
    source: str | None = None
    section_path: str | None = None
    version: str | None = None
    content_type: str | None = None
    min_score: float | None = None

    def __post_init__(self) -> None:
        if self.query is None or not self.query.strip():
            raise ValueError("Query must not be blank")
        if self.max_results < 1:
            raise ValueError("max_results must be at least 1")


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Reranked excerpt with citation metadata."""

    text: str
    retrieval_score: float
    source_url: str
    section_path: str
    rerank_score: float


class QueryType(str, Enum):
    """Classification of evaluation queries by intent."""

    FACTUAL = "FACTUAL"
    CONCEPTUAL = "CONCEPTUAL"
    CODE_LOOKUP = "CODE_LOOKUP"
    TROUBLESHOOTING = "TROUBLESHOOTING"


@dataclass(frozen=True, slots=True)
class RelevanceJudgment:
    """Graded relevance of one chunk: 0 not relevant, 1 partial, 2 highly relevant."""

    chunk_id: str
    grade: int

    def __post_init__(self) -> None:
        if self.grade not in (0, 1, 2):
            raise ValueError(f"Grade must be 0, 1, or 2 but was {self.grade}")


@dataclass(frozen=True, slots=True)
class GoldenSetEntry:
    """Annotated evaluation query.

    By convention only grade 1 and 2 judgments are listed; an absent chunk
    has grade 0.
    """

    query: str
    query_type: QueryType
    judgments: tuple[RelevanceJudgment, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "judgments", tuple(self.judgments))


@dataclass(frozen=True, slots=True)
class ChunkResult:
    """One retrieved chunk with its score, 1-based rank and ground-truth grade."""

    chunk_id: str
    score: float
    rank: int
    relevance_grade: int


@dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Per-query evaluation outcome: retrieved chunks plus IR metrics at 5/10/20.

    `mrr` and `average_precision` are taken at k=10.
    """

    query: str
    query_type: QueryType
    chunk_results: tuple[ChunkResult, ...]
    recall_at_5: float
    recall_at_10: float
    recall_at_20: float
    precision_at_5: float
    precision_at_10: float
    precision_at_20: float
    mrr: float
    ndcg_at_5: float
    ndcg_at_10: float
    ndcg_at_20: float
    average_precision: float
    hit_rate_at_5: float
    hit_rate_at_10: float
    hit_rate_at_20: float
