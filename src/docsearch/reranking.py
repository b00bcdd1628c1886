from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from sentence_transformers import CrossEncoder

from .schema import SECTION_PATH, SOURCE_URL, FusedResult, SearchResult

logger = logging.getLogger(__name__)

DEFAULT_RERANKER_MODEL = "cross-encoder/ms-marco-MiniLM-L-6-v2"


@runtime_checkable
class Scorer(Protocol):
    """Cross-encoder style scoring capability."""

    def score_all(self, texts: list[str], query: str) -> list[float]:
        """Score every text against the query; output aligned to `texts`."""
        ...


class CrossEncoderScorer:
    """Scorer backed by a local sentence-transformers cross-encoder."""

    def __init__(self, model_name: str = DEFAULT_RERANKER_MODEL):
        """Initialize the cross-encoder used for pairwise query-passage scoring.

        Args:
            model_name: Sentence-transformers cross-encoder model identifier.
        """
        logger.info("Loading cross-encoder: %s", model_name)
        self.model = CrossEncoder(model_name)

    def score_all(self, texts: list[str], query: str) -> list[float]:
        if not texts:
            return []
        pairs = [[query, text] for text in texts]
        return [float(score) for score in self.model.predict(pairs)]


class Reranker:
    """Second-stage reranker turning fused candidates into citable results."""

    def __init__(self, scorer: Scorer):
        self.scorer = scorer

    def rerank(
        self,
        query: str,
        candidates: list[FusedResult],
        max_results: int,
        min_score: float | None = None,
    ) -> list[SearchResult]:
        """Reorder fused candidates by cross-encoder relevance.

        All candidates are scored in one batched call. Scorer failures
        propagate; there is no fallback to the fused order.

        Args:
            query: User query string.
            candidates: Fused first-stage candidates.
            max_results: Number of results to return.
            min_score: Inclusive lower bound on the rerank score, if any.

        Returns:
            Results sorted by rerank score descending.
        """
        if not candidates:
            return []

        scores = self.scorer.score_all([candidate.text for candidate in candidates], query)

        results = [
            SearchResult(
                text=candidate.text,
                retrieval_score=candidate.combined_score,
                source_url=candidate.metadata.get(SOURCE_URL) or "",
                section_path=candidate.metadata.get(SECTION_PATH) or "",
                rerank_score=float(score),
            )
            for candidate, score in zip(candidates, scores, strict=True)
        ]
        if min_score is not None:
            results = [result for result in results if result.rerank_score >= min_score]

        results.sort(key=lambda result: result.rerank_score, reverse=True)

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(f"{result.rerank_score:.2f}" for result in results[:3])
            logger.debug("Reranked %d candidates, top-3 scores: [%s]", len(candidates), top_scores)

        return results[:max_results]
