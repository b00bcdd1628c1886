from __future__ import annotations

import logging

from .embeddings import Embedder
from .filters import build_metadata_filter
from .fusion import fuse
from .reranking import Reranker
from .retrieval import RetrievalBackend
from .schema import (
    FusedResult,
    RankedCandidates,
    ScoredCandidate,
    SearchRequest,
    SearchResult,
    SeparateCandidates,
)
from .settings import SearchSettings

logger = logging.getLogger(__name__)


def _as_fused(candidate: ScoredCandidate) -> FusedResult:
    return FusedResult(
        id=candidate.id,
        text=candidate.text,
        metadata=dict(candidate.metadata),
        combined_score=candidate.score,
        vector=candidate.vector or (),
    )


class SearchService:
    """Hybrid search: embed, filter, over-fetch, fuse, rerank."""

    def __init__(
        self,
        embedder: Embedder,
        backend: RetrievalBackend,
        reranker: Reranker,
        settings: SearchSettings | None = None,
    ):
        self.embedder = embedder
        self.backend = backend
        self.reranker = reranker
        self.settings = settings or SearchSettings()

    def search(self, request: SearchRequest) -> list[SearchResult]:
        """Run one search request through the full retrieval pipeline.

        The backend is asked for a fixed over-fetch depth regardless of
        `request.max_results` so the reranker has enough material to reorder.
        Embedding, retrieval and scoring failures propagate unchanged.

        Args:
            request: Validated search request.

        Returns:
            Up to `request.max_results` results, best rerank score first.
        """
        query_vector = self.embedder.embed(request.query)
        metadata_filter = build_metadata_filter(request)

        response = self.backend.retrieve(
            query_vector, request.query, metadata_filter, self.settings.over_fetch
        )

        if isinstance(response, SeparateCandidates):
            candidates = fuse(
                response.vector_results,
                response.keyword_results,
                alpha=self.settings.alpha,
                max_results=self.settings.over_fetch,
            )
        elif isinstance(response, RankedCandidates):
            candidates = [_as_fused(candidate) for candidate in response.results]
        else:
            raise TypeError(f"Unsupported backend response: {type(response).__name__}")

        logger.debug("Reranking %d candidates for query %r", len(candidates), request.query[:50])
        return self.reranker.rerank(
            request.query, candidates, request.max_results, request.min_score
        )
