from docsearch.filters import build_metadata_filter
from docsearch.fusion import fuse
from docsearch.metrics import compute_all
from docsearch.schema import RelevanceJudgment, ScoredCandidate, SearchRequest, SourceKind


if __name__ == "__main__":
    vector = [ScoredCandidate(id="a", text="alpha", score=0.9, source_kind=SourceKind.VECTOR)]
    keyword = [ScoredCandidate(id="b", text="beta", score=3.5, source_kind=SourceKind.KEYWORD)]
    fused = fuse(vector, keyword, alpha=0.7, max_results=10)
    metrics = compute_all([r.id for r in fused], [RelevanceJudgment("a", 2)], k=5)
    print(
        {
            "fused": [(r.id, r.combined_score) for r in fused],
            "filter": build_metadata_filter(SearchRequest("q", source="spring", content_type="mixed")),
            "ndcg_at_5": metrics.ndcg_at_k,
        }
    )
