from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .embeddings import DEFAULT_EMBEDDING_MODEL
from .reranking import DEFAULT_RERANKER_MODEL

# Deepest cutoff used by evaluation; over-fetch must exceed it.
MAX_EVAL_DEPTH = 20
MAX_OVER_FETCH = 500


@dataclass(slots=True)
class SearchSettings:
    """Fusion weight, candidate depth and model names for the search pipeline."""

    alpha: float = 0.7
    over_fetch: int = 50
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    reranker_model: str = DEFAULT_RERANKER_MODEL

    def __post_init__(self) -> None:
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha must be in [0.0, 1.0], got: {self.alpha}")
        if not MAX_EVAL_DEPTH < self.over_fetch <= MAX_OVER_FETCH:
            raise ValueError(
                f"over_fetch must be in ({MAX_EVAL_DEPTH}, {MAX_OVER_FETCH}], got: {self.over_fetch}"
            )


@dataclass(slots=True)
class EvalSettings:
    """Pass/fail thresholds and file locations for retrieval evaluation."""

    recall_threshold: float = 0.70
    mrr_threshold: float = 0.60
    output_dir: str = "artifacts/eval"
    golden_set_path: str = "data/golden_set.json"
    max_workers: int = 4

    def __post_init__(self) -> None:
        if not 0.0 <= self.recall_threshold <= 1.0:
            raise ValueError(f"recall_threshold must be in [0.0, 1.0], got: {self.recall_threshold}")
        if not 0.0 <= self.mrr_threshold <= 1.0:
            raise ValueError(f"mrr_threshold must be in [0.0, 1.0], got: {self.mrr_threshold}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got: {self.max_workers}")


def load_settings() -> tuple[SearchSettings, EvalSettings]:
    """Load environment-backed settings and return validated config objects.

    Returns:
        Tuple of search settings and evaluation settings.

    Raises:
        ValueError: If any configured value is out of range.
    """
    load_dotenv()
    return (
        SearchSettings(
            alpha=float(os.getenv("DOCSEARCH_ALPHA", "0.7")),
            over_fetch=int(os.getenv("DOCSEARCH_OVER_FETCH", "50")),
            embedding_model=os.getenv("OPENAI_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            reranker_model=os.getenv("DOCSEARCH_RERANKER_MODEL", DEFAULT_RERANKER_MODEL),
        ),
        EvalSettings(
            recall_threshold=float(os.getenv("DOCSEARCH_EVAL_RECALL_AT_10", "0.70")),
            mrr_threshold=float(os.getenv("DOCSEARCH_EVAL_MRR", "0.60")),
            output_dir=os.getenv("DOCSEARCH_EVAL_OUTPUT_DIR", "artifacts/eval"),
            golden_set_path=os.getenv("DOCSEARCH_GOLDEN_SET", "data/golden_set.json"),
            max_workers=int(os.getenv("DOCSEARCH_EVAL_WORKERS", "4")),
        ),
    )
