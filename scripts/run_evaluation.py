import argparse
import logging

from docsearch.evaluation import RetrievalEvaluator
from docsearch.export import EvaluationExporter
from docsearch.embeddings import OpenAIEmbedder
from docsearch.io_utils import load_chunks, load_golden_set
from docsearch.reranking import CrossEncoderScorer, Reranker
from docsearch.retrieval import RRF_MODE, SEPARATE_MODE, InMemoryHybridBackend
from docsearch.search import SearchService
from docsearch.settings import load_settings
from docsearch.tracing import configure_tracing, get_tracer, traced_evaluation


def main() -> None:
    """Run the golden-set evaluation against an in-process index and print the summary."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("--label", default="baseline", help="run label used in CSV file names")
    parser.add_argument("--chunks", default="data/chunks.jsonl", help="chunk corpus (JSONL)")
    parser.add_argument("--golden-set", default=None, help="golden set JSON (overrides settings)")
    parser.add_argument("--mode", choices=[SEPARATE_MODE, RRF_MODE], default=SEPARATE_MODE)
    parser.add_argument("--otlp-endpoint", default=None, help="send traces to this OTLP endpoint")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    search_settings, eval_settings = load_settings()
    golden_set_path = args.golden_set or eval_settings.golden_set_path

    backend = InMemoryHybridBackend.from_chunks(
        load_chunks(args.chunks), embedding_model=search_settings.embedding_model, mode=args.mode
    )
    service = SearchService(
        embedder=OpenAIEmbedder(search_settings.embedding_model),
        backend=backend,
        reranker=Reranker(CrossEncoderScorer(search_settings.reranker_model)),
        settings=search_settings,
    )
    evaluator = RetrievalEvaluator(
        service,
        exporter=EvaluationExporter(eval_settings.output_dir),
        settings=eval_settings,
        golden_set_loader=lambda: load_golden_set(golden_set_path),
    )

    if args.otlp_endpoint:
        configure_tracing(endpoint=args.otlp_endpoint)
    summary = traced_evaluation(evaluator, get_tracer("docsearch.evaluation"))(args.label)

    print(
        {
            "recall_at_10": round(summary.global_recall_at_10, 4),
            "mrr": round(summary.global_mrr, 4),
            "ndcg_at_10": round(summary.global_ndcg_at_10, 4),
            "map": round(summary.global_map, 4),
            "hit_rate_at_10": round(summary.global_hit_rate_at_10, 4),
            "passed": summary.passed,
            "failed_queries": len(summary.failed_queries),
            "exports": [str(path) for path in summary.export_paths],
        }
    )


if __name__ == "__main__":
    main()
