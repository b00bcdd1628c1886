from __future__ import annotations

import csv
from datetime import datetime
import logging
from pathlib import Path
from typing import Callable

from .schema import EvaluationResult, QueryType

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"

AGGREGATE_HEADER = [
    "query_type",
    "count",
    "recall_at_5",
    "recall_at_10",
    "recall_at_20",
    "precision_at_5",
    "precision_at_10",
    "precision_at_20",
    "mrr",
    "ndcg_at_5",
    "ndcg_at_10",
    "ndcg_at_20",
    "map",
    "hit_rate_at_5",
    "hit_rate_at_10",
    "hit_rate_at_20",
]

DETAILED_HEADER = [
    "query",
    "query_type",
    "chunk_id",
    "score",
    "rank",
    "relevance_grade",
    "recall_at_10",
    "mrr",
    "ndcg_at_10",
]

# EvaluationResult attribute behind each averaged aggregate column.
_AGGREGATE_FIELDS = [
    "recall_at_5",
    "recall_at_10",
    "recall_at_20",
    "precision_at_5",
    "precision_at_10",
    "precision_at_20",
    "mrr",
    "ndcg_at_5",
    "ndcg_at_10",
    "ndcg_at_20",
    "average_precision",
    "hit_rate_at_5",
    "hit_rate_at_10",
    "hit_rate_at_20",
]


def average(results: list[EvaluationResult], field_name: str) -> float:
    """Mean of one metric across results; 0.0 for an empty list."""
    if not results:
        return 0.0
    return sum(getattr(result, field_name) for result in results) / len(results)


def _fmt(value: float) -> str:
    return f"{value:.4f}"


class EvaluationExporter:
    """Writes aggregate and detailed CSV files for tracking metric trends across runs."""

    def __init__(self, output_dir: str | Path, clock: Callable[[], datetime] = datetime.now):
        self.output_dir = Path(output_dir)
        self.clock = clock

    def export(self, results: list[EvaluationResult], label: str) -> tuple[Path, Path]:
        """Write both CSV files for one evaluation run.

        Args:
            results: Per-query evaluation results.
            label: Run label included in the file names, e.g. `baseline`.

        Returns:
            Paths of the aggregate and detailed files, in that order.

        Raises:
            OSError: If the output directory or files cannot be written.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = self.clock().strftime(TIMESTAMP_FORMAT)
        aggregate_path = self.output_dir / f"eval-aggregate-{timestamp}-{label}.csv"
        detailed_path = self.output_dir / f"eval-detailed-{timestamp}-{label}.csv"

        self._write_aggregate(results, aggregate_path)
        self._write_detailed(results, detailed_path)
        logger.info("Wrote evaluation CSVs to %s", self.output_dir)
        return aggregate_path, detailed_path

    def _write_aggregate(self, results: list[EvaluationResult], path: Path) -> None:
        with path.open("w", encoding="utf-8", newline="") as file_handle:
            writer = csv.writer(file_handle, lineterminator="\n")
            writer.writerow(AGGREGATE_HEADER)
            for query_type in QueryType:
                typed = [result for result in results if result.query_type is query_type]
                if typed:
                    writer.writerow(self._aggregate_row(query_type.value, typed))
            writer.writerow(self._aggregate_row("GLOBAL", results))

    @staticmethod
    def _aggregate_row(label: str, results: list[EvaluationResult]) -> list[str]:
        return [label, str(len(results))] + [_fmt(average(results, name)) for name in _AGGREGATE_FIELDS]

    def _write_detailed(self, results: list[EvaluationResult], path: Path) -> None:
        with path.open("w", encoding="utf-8", newline="") as file_handle:
            writer = csv.writer(file_handle, lineterminator="\n")
            writer.writerow(DETAILED_HEADER)
            for result in results:
                for position, chunk in enumerate(result.chunk_results):
                    first = position == 0
                    writer.writerow(
                        [
                            result.query,
                            result.query_type.value,
                            chunk.chunk_id,
                            _fmt(chunk.score),
                            str(chunk.rank),
                            str(chunk.relevance_grade),
                            _fmt(result.recall_at_10) if first else "",
                            _fmt(result.mrr) if first else "",
                            _fmt(result.ndcg_at_10) if first else "",
                        ]
                    )
