from __future__ import annotations

from collections import defaultdict

from .schema import FusedResult, ScoredCandidate


def _normalizer(candidates: list[ScoredCandidate]):
    """Return a min-max normalizer for one source's raw scores.

    When every score is identical (including the single-hit case) each score
    normalizes to 1.0 rather than 0/0.
    """
    if not candidates:
        return lambda score: 0.0
    low = min(candidate.score for candidate in candidates)
    high = max(candidate.score for candidate in candidates)
    if high == low:
        return lambda score: 1.0
    return lambda score: (score - low) / (high - low)


def _first_occurrences(candidates: list[ScoredCandidate]) -> list[ScoredCandidate]:
    seen: set[str] = set()
    unique = []
    for candidate in candidates:
        if candidate.id not in seen:
            seen.add(candidate.id)
            unique.append(candidate)
    return unique


def fuse(
    vector_results: list[ScoredCandidate],
    keyword_results: list[ScoredCandidate],
    alpha: float,
    max_results: int,
) -> list[FusedResult]:
    """Fuse vector and keyword candidates by convex combination of normalized scores.

    `combined = alpha * norm_vector + (1 - alpha) * norm_keyword`, where each
    source is min-max normalized independently and a source missing an id
    contributes 0 for it. An id repeated within one source list is scored
    from its first occurrence only.

    Args:
        vector_results: Candidates from vector similarity search.
        keyword_results: Candidates from keyword (full-text) search.
        alpha: Vector weight in [0, 1]; 0 is keyword only, 1 is vector only.
        max_results: Maximum number of fused results to return.

    Returns:
        Fused results sorted by combined score descending. Ties keep the
        order in which ids were first seen (vector list first).
    """
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"alpha must be in [0.0, 1.0], got: {alpha}")
    if max_results < 1:
        raise ValueError(f"max_results must be at least 1, got: {max_results}")
    if not vector_results and not keyword_results:
        return []

    vector_results = _first_occurrences(vector_results)
    keyword_results = _first_occurrences(keyword_results)

    norm_vector = _normalizer(vector_results)
    norm_keyword = _normalizer(keyword_results)

    scores: dict[str, float] = {}
    representatives: dict[str, ScoredCandidate] = {}

    for candidate in vector_results:
        scores[candidate.id] = alpha * norm_vector(candidate.score)
        representatives[candidate.id] = candidate

    for candidate in keyword_results:
        contribution = (1.0 - alpha) * norm_keyword(candidate.score)
        if candidate.id in scores:
            # keep the vector-side text, metadata and embedding
            scores[candidate.id] += contribution
        else:
            scores[candidate.id] = contribution
            representatives[candidate.id] = candidate

    fused = [
        FusedResult(
            id=candidate_id,
            text=representatives[candidate_id].text,
            metadata=dict(representatives[candidate_id].metadata),
            combined_score=score,
            vector=representatives[candidate_id].vector or (),
        )
        for candidate_id, score in scores.items()
    ]
    fused.sort(key=lambda result: result.combined_score, reverse=True)
    return fused[:max_results]


def reciprocal_rank_fusion(
    vector_results: list[ScoredCandidate], keyword_results: list[ScoredCandidate], k: int = 60
) -> list[ScoredCandidate]:
    """Fuse two rankings via Reciprocal Rank Fusion (RRF).

    Rank-based, so raw score scales do not matter. Backends that fuse
    internally use this and hand the orchestrator a single ranked list.

    Args:
        vector_results: Ranked vector-search candidates.
        keyword_results: Ranked keyword-search candidates.
        k: RRF smoothing constant controlling rank contribution decay.

    Returns:
        Candidates sorted by combined RRF score, one per distinct id.
    """
    fused_scores: dict[str, float] = defaultdict(float)
    lookup: dict[str, ScoredCandidate] = {}

    for rank, candidate in enumerate(vector_results, start=1):
        fused_scores[candidate.id] += 1 / (k + rank)
        lookup[candidate.id] = candidate

    for rank, candidate in enumerate(keyword_results, start=1):
        fused_scores[candidate.id] += 1 / (k + rank)
        lookup.setdefault(candidate.id, candidate)

    sorted_scores = sorted(fused_scores.items(), key=lambda item: item[1], reverse=True)
    return [
        ScoredCandidate(
            id=candidate_id,
            text=lookup[candidate_id].text,
            score=score,
            source_kind=lookup[candidate_id].source_kind,
            metadata=lookup[candidate_id].metadata,
            vector=lookup[candidate_id].vector,
        )
        for candidate_id, score in sorted_scores
    ]
