from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import numpy as np
from rank_bm25 import BM25Okapi

from .embeddings import DEFAULT_EMBEDDING_MODEL, cosine_similarity, embed_texts
from .filters import MetadataFilter, matches
from .fusion import reciprocal_rank_fusion
from .schema import (
    BackendResponse,
    IndexedChunk,
    RankedCandidates,
    ScoredCandidate,
    SeparateCandidates,
    SourceKind,
)

logger = logging.getLogger(__name__)

SEPARATE_MODE = "separate"
RRF_MODE = "rrf"


@runtime_checkable
class RetrievalBackend(Protocol):
    """Store that returns candidates for an embedded query."""

    def retrieve(
        self,
        query_vector: list[float],
        query_text: str,
        metadata_filter: MetadataFilter | None,
        limit: int,
    ) -> BackendResponse:
        ...


def build_bm25(chunks: list[IndexedChunk]) -> BM25Okapi:
    """Create a BM25 index aligned with the chunk list order."""
    tokenized = [chunk.text.lower().split() for chunk in chunks]
    return BM25Okapi(tokenized)


def bm25_search(
    index: BM25Okapi,
    query: str,
    chunks: list[IndexedChunk],
    top_k: int = 5,
    eligible: list[int] | None = None,
) -> list[ScoredCandidate]:
    """Run BM25 keyword retrieval and return top-ranked candidates.

    Args:
        index: BM25 index built from `chunks`.
        query: User query string.
        chunks: Chunk records aligned with the index.
        top_k: Number of candidates to return.
        eligible: Chunk positions allowed by the metadata filter; all when `None`.

    Returns:
        Keyword candidates with a positive BM25 score, best first.
    """
    scores = index.get_scores(query.lower().split())
    positions = range(len(chunks)) if eligible is None else eligible
    ranked = sorted(
        (idx for idx in positions if scores[idx] > 0), key=lambda idx: scores[idx], reverse=True
    )[:top_k]

    return [
        ScoredCandidate(
            id=chunks[idx].chunk_id,
            text=chunks[idx].text,
            score=float(scores[idx]),
            source_kind=SourceKind.KEYWORD,
            metadata=chunks[idx].metadata(),
        )
        for idx in ranked
    ]


def dense_search(
    query_vector: np.ndarray,
    chunks: list[IndexedChunk],
    vectors: np.ndarray,
    top_k: int = 5,
    eligible: list[int] | None = None,
) -> list[ScoredCandidate]:
    """Rank chunks by cosine similarity to the query vector."""
    if not chunks:
        return []
    scores = cosine_similarity(query_vector, vectors)
    positions = range(len(chunks)) if eligible is None else eligible
    ranked = sorted(positions, key=lambda idx: scores[idx], reverse=True)[:top_k]

    return [
        ScoredCandidate(
            id=chunks[idx].chunk_id,
            text=chunks[idx].text,
            score=float(scores[idx]),
            source_kind=SourceKind.VECTOR,
            metadata=chunks[idx].metadata(),
            vector=tuple(float(value) for value in vectors[idx]),
        )
        for idx in ranked
    ]


class InMemoryHybridBackend:
    """In-process hybrid store over a fixed chunk corpus.

    In ``"separate"`` mode the vector and keyword lists are returned as-is so
    the caller can fuse them. In ``"rrf"`` mode the backend fuses internally
    with Reciprocal Rank Fusion and returns one ranked list.
    """

    def __init__(
        self,
        chunks: list[IndexedChunk],
        vectors: np.ndarray,
        mode: str = SEPARATE_MODE,
        rrf_k: int = 60,
    ):
        if mode not in (SEPARATE_MODE, RRF_MODE):
            raise ValueError(f"mode must be '{SEPARATE_MODE}' or '{RRF_MODE}', got: {mode}")
        if len(chunks) != len(vectors):
            raise ValueError("chunks and vectors must be aligned")
        self.chunks = list(chunks)
        self.vectors = np.asarray(vectors, dtype=np.float32)
        self.mode = mode
        self.rrf_k = rrf_k
        self.bm25 = build_bm25(self.chunks) if self.chunks else None

    @classmethod
    def from_chunks(
        cls,
        chunks: list[IndexedChunk],
        embedding_model: str = DEFAULT_EMBEDDING_MODEL,
        mode: str = SEPARATE_MODE,
    ) -> "InMemoryHybridBackend":
        """Embed the corpus with OpenAI and build the backend."""
        vectors = embed_texts([chunk.text for chunk in chunks], model=embedding_model)
        return cls(chunks, vectors, mode=mode)

    def retrieve(
        self,
        query_vector: list[float],
        query_text: str,
        metadata_filter: MetadataFilter | None,
        limit: int,
    ) -> BackendResponse:
        eligible = [
            idx for idx, chunk in enumerate(self.chunks) if matches(metadata_filter, chunk.metadata())
        ]
        vector_results = dense_search(
            np.asarray(query_vector, dtype=np.float32), self.chunks, self.vectors, limit, eligible
        )
        keyword_results = (
            bm25_search(self.bm25, query_text, self.chunks, limit, eligible) if self.bm25 else []
        )
        logger.debug(
            "Retrieved %d vector and %d keyword candidates (%d eligible chunks)",
            len(vector_results),
            len(keyword_results),
            len(eligible),
        )

        if self.mode == RRF_MODE:
            fused = reciprocal_rank_fusion(vector_results, keyword_results, k=self.rrf_k)
            return RankedCandidates(results=fused[:limit])
        return SeparateCandidates(vector_results=vector_results, keyword_results=keyword_results)
