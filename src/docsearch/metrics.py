"""Standard information-retrieval metrics over graded relevance judgments.

Every function takes the ranked list of retrieved ids, the judgments for the
query, and a cutoff ``k``. A document is relevant when its grade is at least 1;
documents missing from the judgments have grade 0. All metrics are 0.0 for an
empty retrieved list or empty judgments and never raise.
"""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable

from .schema import RelevanceJudgment


@dataclass(frozen=True, slots=True)
class MetricsResult:
    """All six metrics for one query at one cutoff."""

    recall_at_k: float
    precision_at_k: float
    mrr: float
    ndcg_at_k: float
    average_precision: float
    hit_rate: float


def _grade_map(judgments: Iterable[RelevanceJudgment]) -> dict[str, int]:
    return {judgment.chunk_id: judgment.grade for judgment in judgments}


def _relevant(grades: dict[str, int]) -> set[str]:
    return {chunk_id for chunk_id, grade in grades.items() if grade >= 1}


def _top_k(retrieved_ids: list[str], k: int) -> list[str]:
    return retrieved_ids[: max(k, 0)]


def _first_hits(top_k: list[str]):
    """Yield `(rank, chunk_id)` for the first occurrence of each id; repeats earn nothing."""
    seen: set[str] = set()
    for rank, chunk_id in enumerate(top_k, start=1):
        if chunk_id not in seen:
            seen.add(chunk_id)
            yield rank, chunk_id


def _dcg(top_k: list[str], grades: dict[str, int]) -> float:
    # rank i (1-based) is discounted by log2(i + 1)
    return sum(grades.get(chunk_id, 0) / math.log2(rank + 1) for rank, chunk_id in _first_hits(top_k))


def _idcg(grades: dict[str, int], k: int) -> float:
    ideal = sorted(grades.values(), reverse=True)[: max(k, 0)]
    return sum(grade / math.log2(rank + 1) for rank, grade in enumerate(ideal, start=1))


def _recall(top_k: list[str], relevant: set[str]) -> float:
    if not relevant:
        return 0.0
    return len(relevant.intersection(top_k)) / len(relevant)


def _precision(top_k: list[str], relevant: set[str]) -> float:
    if not top_k:
        return 0.0
    return len(relevant.intersection(top_k)) / len(top_k)


def _reciprocal_rank(top_k: list[str], relevant: set[str]) -> float:
    for rank, chunk_id in enumerate(top_k, start=1):
        if chunk_id in relevant:
            return 1.0 / rank
    return 0.0


def _ndcg(top_k: list[str], grades: dict[str, int], k: int) -> float:
    idcg = _idcg(grades, k)
    if idcg == 0.0:
        return 0.0
    return _dcg(top_k, grades) / idcg


def _average_precision(top_k: list[str], relevant: set[str]) -> float:
    if not relevant:
        return 0.0
    found = 0
    precision_sum = 0.0
    for rank, chunk_id in _first_hits(top_k):
        if chunk_id in relevant:
            found += 1
            precision_sum += found / rank
    return precision_sum / found if found else 0.0


def _hit_rate(top_k: list[str], relevant: set[str]) -> float:
    return 1.0 if any(chunk_id in relevant for chunk_id in top_k) else 0.0


def recall_at_k(retrieved_ids: list[str], judgments: list[RelevanceJudgment], k: int) -> float:
    """Fraction of all relevant documents found in the top-k."""
    return _recall(_top_k(retrieved_ids, k), _relevant(_grade_map(judgments)))


def precision_at_k(retrieved_ids: list[str], judgments: list[RelevanceJudgment], k: int) -> float:
    """Fraction of the top-k (or fewer, if fewer were retrieved) that is relevant."""
    return _precision(_top_k(retrieved_ids, k), _relevant(_grade_map(judgments)))


def mrr(retrieved_ids: list[str], judgments: list[RelevanceJudgment], k: int) -> float:
    """Reciprocal rank of the first relevant document within the top-k."""
    return _reciprocal_rank(_top_k(retrieved_ids, k), _relevant(_grade_map(judgments)))


def ndcg_at_k(retrieved_ids: list[str], judgments: list[RelevanceJudgment], k: int) -> float:
    """Normalized discounted cumulative gain with graded relevance."""
    return _ndcg(_top_k(retrieved_ids, k), _grade_map(judgments), k)


def average_precision(retrieved_ids: list[str], judgments: list[RelevanceJudgment], k: int) -> float:
    """Mean of the precision at each rank within the top-k where a relevant document occurs."""
    return _average_precision(_top_k(retrieved_ids, k), _relevant(_grade_map(judgments)))


def hit_rate(retrieved_ids: list[str], judgments: list[RelevanceJudgment], k: int) -> float:
    """1.0 if any relevant document appears in the top-k, else 0.0."""
    return _hit_rate(_top_k(retrieved_ids, k), _relevant(_grade_map(judgments)))


def compute_all(retrieved_ids: list[str], judgments: list[RelevanceJudgment], k: int) -> MetricsResult:
    """Compute all six metrics sharing one grade lookup."""
    grades = _grade_map(judgments)
    relevant = _relevant(grades)
    top_k = _top_k(retrieved_ids, k)
    return MetricsResult(
        recall_at_k=_recall(top_k, relevant),
        precision_at_k=_precision(top_k, relevant),
        mrr=_reciprocal_rank(top_k, relevant),
        ndcg_at_k=_ndcg(top_k, grades, k),
        average_precision=_average_precision(top_k, relevant),
        hit_rate=_hit_rate(top_k, relevant),
    )
