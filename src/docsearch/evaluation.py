"""Retrieval evaluation against a graded golden set.

Each golden-set query runs through the same search path used in production
at a fixed depth of 20, retrieved chunks are graded against the query's
judgments, and IR metrics are computed at k = 5, 10 and 20. Results are
exported to CSV and summarized with a pass/fail verdict against configured
thresholds.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Callable, Iterable, Protocol

from .export import EvaluationExporter, average
from .io_utils import load_golden_set
from .metrics import compute_all
from .schema import (
    ChunkResult,
    EvaluationResult,
    GoldenSetEntry,
    QueryType,
    RelevanceJudgment,
    SearchRequest,
    SearchResult,
)
from .settings import EvalSettings

logger = logging.getLogger(__name__)

# Deepest cutoff we compute metrics at.
MAX_SEARCH_DEPTH = 20
CUTOFFS = (5, 10, 20)


class Searcher(Protocol):
    def search(self, request: SearchRequest) -> list[SearchResult]:
        ...


@dataclass(frozen=True, slots=True)
class TypeMetrics:
    """Metric averages for the queries of one query type."""

    count: int
    recall_at_10: float
    mrr: float
    ndcg_at_10: float
    map: float
    hit_rate_at_10: float


@dataclass(frozen=True, slots=True)
class EvaluationSummary:
    """Global averages, per-type breakdown and pass/fail verdict for one run."""

    global_recall_at_10: float
    global_mrr: float
    global_ndcg_at_10: float
    global_map: float
    global_hit_rate_at_10: float
    by_type: dict[QueryType, TypeMetrics]
    passed: bool
    failed_queries: list[str]
    export_paths: tuple[Path, ...] = field(default=())


def build_chunk_id(result: SearchResult) -> str:
    """Identifier used to match a search result against golden-set judgments."""
    return f"{result.source_url}#{result.section_path}"


def match_judgment(
    retrieved_chunk_id: str, judgments: Iterable[RelevanceJudgment]
) -> RelevanceJudgment | None:
    """Find the judgment for a retrieved chunk: exact match first, then substring either way.

    The substring fallback tolerates near-duplicate identifiers but can also
    match a section whose path is a prefix of another one, so the grades it
    yields are approximate. Metrics never use them.
    """
    judgments = list(judgments)
    for judgment in judgments:
        if judgment.chunk_id == retrieved_chunk_id:
            return judgment
    for judgment in judgments:
        if judgment.chunk_id in retrieved_chunk_id or retrieved_chunk_id in judgment.chunk_id:
            logger.debug(
                "Substring match: retrieved=%r matched golden=%r", retrieved_chunk_id, judgment.chunk_id
            )
            return judgment
    return None


def find_relevance_grade(retrieved_chunk_id: str, judgments: Iterable[RelevanceJudgment]) -> int:
    """Relevance grade of a retrieved chunk; 0 when no judgment matches."""
    judgment = match_judgment(retrieved_chunk_id, judgments)
    return judgment.grade if judgment is not None else 0


class RetrievalEvaluator:
    """Runs the golden set through search, scores it, exports CSVs and summarizes."""

    def __init__(
        self,
        searcher: Searcher,
        exporter: EvaluationExporter | None = None,
        settings: EvalSettings | None = None,
        golden_set_loader: Callable[[], list[GoldenSetEntry]] | None = None,
    ):
        self.searcher = searcher
        self.settings = settings or EvalSettings()
        self.exporter = exporter or EvaluationExporter(self.settings.output_dir)
        self.golden_set_loader = golden_set_loader or (
            lambda: load_golden_set(self.settings.golden_set_path)
        )

    def evaluate(self, label: str) -> EvaluationSummary:
        """Evaluate every golden-set query and export the results.

        Args:
            label: Descriptive run label, e.g. `baseline` or `post-reranking`.

        Returns:
            Summary with global and per-type averages and the pass/fail verdict.

        Raises:
            OSError: If the golden set cannot be read or the CSVs cannot be written.
        """
        golden_set = self.golden_set_loader()
        logger.info("Loaded golden set with %d queries", len(golden_set))

        results = self._run_all(golden_set)

        export_paths = self.exporter.export(results, label)
        logger.info("Exported evaluation results for label '%s'", label)

        return self.build_summary(results, export_paths)

    def _run_all(self, golden_set: list[GoldenSetEntry]) -> list[EvaluationResult]:
        if self.settings.max_workers == 1 or len(golden_set) <= 1:
            return [self.evaluate_query(entry) for entry in golden_set]

        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as pool:
            futures = [pool.submit(self.evaluate_query, entry) for entry in golden_set]
            try:
                return [future.result() for future in futures]
            except BaseException:
                pool.shutdown(wait=False, cancel_futures=True)
                raise

    def evaluate_query(self, entry: GoldenSetEntry) -> EvaluationResult:
        """Search one golden-set query and compute its metrics at every cutoff."""
        search_results = self.searcher.search(SearchRequest(entry.query, max_results=MAX_SEARCH_DEPTH))

        # Substring matches only grade the detailed CSV rows; metrics see the
        # retrieved ids as they are.
        retrieved_ids: list[str] = []
        chunk_results: list[ChunkResult] = []
        for rank, search_result in enumerate(search_results, start=1):
            chunk_id = build_chunk_id(search_result)
            judgment = match_judgment(chunk_id, entry.judgments)
            retrieved_ids.append(chunk_id)
            chunk_results.append(
                ChunkResult(
                    chunk_id=chunk_id,
                    score=search_result.retrieval_score,
                    rank=rank,
                    relevance_grade=judgment.grade if judgment is not None else 0,
                )
            )

        at5, at10, at20 = (compute_all(retrieved_ids, list(entry.judgments), k) for k in CUTOFFS)

        return EvaluationResult(
            query=entry.query,
            query_type=entry.query_type,
            chunk_results=tuple(chunk_results),
            recall_at_5=at5.recall_at_k,
            recall_at_10=at10.recall_at_k,
            recall_at_20=at20.recall_at_k,
            precision_at_5=at5.precision_at_k,
            precision_at_10=at10.precision_at_k,
            precision_at_20=at20.precision_at_k,
            mrr=at10.mrr,
            ndcg_at_5=at5.ndcg_at_k,
            ndcg_at_10=at10.ndcg_at_k,
            ndcg_at_20=at20.ndcg_at_k,
            average_precision=at10.average_precision,
            hit_rate_at_5=at5.hit_rate,
            hit_rate_at_10=at10.hit_rate,
            hit_rate_at_20=at20.hit_rate,
        )

    def build_summary(
        self, results: list[EvaluationResult], export_paths: Iterable[Path] = ()
    ) -> EvaluationSummary:
        """Aggregate per-query results and apply the pass/fail thresholds."""
        global_recall = average(results, "recall_at_10")
        global_mrr = average(results, "mrr")

        failed_queries = [
            result.query
            for result in results
            if result.recall_at_10 < self.settings.recall_threshold
            or result.mrr < self.settings.mrr_threshold
        ]
        passed = (
            global_recall >= self.settings.recall_threshold and global_mrr >= self.settings.mrr_threshold
        )

        summary = EvaluationSummary(
            global_recall_at_10=global_recall,
            global_mrr=global_mrr,
            global_ndcg_at_10=average(results, "ndcg_at_10"),
            global_map=average(results, "average_precision"),
            global_hit_rate_at_10=average(results, "hit_rate_at_10"),
            by_type=_type_metrics(results),
            passed=passed,
            failed_queries=failed_queries,
            export_paths=tuple(export_paths),
        )
        logger.info(
            "Evaluation complete: recall@10=%.4f, mrr=%.4f, ndcg@10=%.4f, map=%.4f, hitRate@10=%.4f, passed=%s",
            summary.global_recall_at_10,
            summary.global_mrr,
            summary.global_ndcg_at_10,
            summary.global_map,
            summary.global_hit_rate_at_10,
            summary.passed,
        )
        return summary


def _type_metrics(results: list[EvaluationResult]) -> dict[QueryType, TypeMetrics]:
    by_type: dict[QueryType, TypeMetrics] = {}
    for query_type in QueryType:
        typed = [result for result in results if result.query_type is query_type]
        if not typed:
            continue
        by_type[query_type] = TypeMetrics(
            count=len(typed),
            recall_at_10=average(typed, "recall_at_10"),
            mrr=average(typed, "mrr"),
            ndcg_at_10=average(typed, "ndcg_at_10"),
            map=average(typed, "average_precision"),
            hit_rate_at_10=average(typed, "hit_rate_at_10"),
        )
    return by_type
