"""Tests for tracing.py: configure_tracing, get_tracer, traced_search, traced_evaluation.

OTel spans are collected with InMemorySpanExporter so tests run fully offline.
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from docsearch.evaluation import EvaluationSummary
from docsearch.schema import SearchRequest, SearchResult
from docsearch.tracing import (
    ATTR_EVAL_FAILED_QUERIES,
    ATTR_EVAL_LABEL,
    ATTR_EVAL_MRR,
    ATTR_EVAL_PASSED,
    ATTR_EVAL_RECALL_AT_10,
    ATTR_INPUT_VALUE,
    ATTR_RETRIEVAL_DOCUMENTS,
    ATTR_SEARCH_MAX_RESULTS,
    configure_tracing,
    get_tracer,
    traced_evaluation,
    traced_search,
)


# ---------------------------------------------------------------------------
# Shared in-memory exporter fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def mem_exporter() -> InMemorySpanExporter:
    """Fresh InMemorySpanExporter and a configured global TracerProvider."""
    exporter = InMemorySpanExporter()
    configure_tracing(exporter=exporter, service_name="test-service")
    return exporter


def _span(exporter: InMemorySpanExporter, name: str):
    return next(s for s in exporter.get_finished_spans() if s.name == name)


# ---------------------------------------------------------------------------
# configure_tracing / get_tracer
# ---------------------------------------------------------------------------


class TestConfigureTracing:
    def test_returns_provider_with_service_name(self):
        provider = configure_tracing(exporter=InMemorySpanExporter(), service_name="docsearch-test")
        assert provider.resource.attributes["service.name"] == "docsearch-test"

    def test_missing_otlp_package_raises_import_error(self, monkeypatch):
        """When otlp exporter package is absent, a helpful ImportError is raised."""
        import builtins
        real_import = builtins.__import__

        def mock_import(name, *args, **kwargs):
            if "otlp" in name:
                raise ImportError("mocked missing package")
            return real_import(name, *args, **kwargs)

        monkeypatch.setattr(builtins, "__import__", mock_import)
        with pytest.raises(ImportError, match="opentelemetry-exporter-otlp"):
            configure_tracing(endpoint="http://localhost:6006/v1/traces")


class TestGetTracer:
    def test_returns_tracer(self, mem_exporter):
        tracer = get_tracer("test.component")
        assert hasattr(tracer, "start_as_current_span")


# ---------------------------------------------------------------------------
# traced_search
# ---------------------------------------------------------------------------


class TestTracedSearch:
    def _fake_service(self, count: int = 2) -> MagicMock:
        service = MagicMock()
        service.search.return_value = [
            SearchResult(f"chunk {i}", 0.5, "https://docs.example.com", f"s/{i}", 1.0 - i * 0.1)
            for i in range(count)
        ]
        return service

    def test_returns_same_results(self, mem_exporter):
        service = self._fake_service()
        results = traced_search(service, get_tracer("search"))(SearchRequest("routing"))
        assert results == service.search.return_value

    def test_span_records_request_and_result_count(self, mem_exporter):
        traced_search(self._fake_service(3), get_tracer("search"))(SearchRequest("routing", max_results=5))

        span = _span(mem_exporter, "search")
        assert span.attributes.get(ATTR_INPUT_VALUE) == "routing"
        assert span.attributes.get(ATTR_SEARCH_MAX_RESULTS) == 5
        assert span.attributes.get(ATTR_RETRIEVAL_DOCUMENTS) == 3
        assert span.status.status_code == StatusCode.OK

    def test_span_status_error_on_exception(self, mem_exporter):
        service = MagicMock()
        service.search.side_effect = RuntimeError("backend down")

        with pytest.raises(RuntimeError, match="backend down"):
            traced_search(service, get_tracer("search"))(SearchRequest("routing"))

        assert _span(mem_exporter, "search").status.status_code == StatusCode.ERROR


# ---------------------------------------------------------------------------
# traced_evaluation
# ---------------------------------------------------------------------------


class TestTracedEvaluation:
    def _summary(self) -> EvaluationSummary:
        return EvaluationSummary(
            global_recall_at_10=0.75,
            global_mrr=0.5,
            global_ndcg_at_10=0.6,
            global_map=0.4,
            global_hit_rate_at_10=1.0,
            by_type={},
            passed=False,
            failed_queries=["q1", "q2"],
        )

    def test_span_records_verdict(self, mem_exporter):
        evaluator = MagicMock()
        evaluator.evaluate.return_value = self._summary()

        summary = traced_evaluation(evaluator, get_tracer("evaluation"))("baseline")

        assert summary is evaluator.evaluate.return_value
        evaluator.evaluate.assert_called_once_with("baseline")
        span = _span(mem_exporter, "evaluation")
        assert span.attributes.get(ATTR_EVAL_LABEL) == "baseline"
        assert span.attributes.get(ATTR_EVAL_PASSED) is False
        assert span.attributes.get(ATTR_EVAL_RECALL_AT_10) == 0.75
        assert span.attributes.get(ATTR_EVAL_MRR) == 0.5
        assert span.attributes.get(ATTR_EVAL_FAILED_QUERIES) == 2

    def test_span_status_error_on_exception(self, mem_exporter):
        evaluator = MagicMock()
        evaluator.evaluate.side_effect = FileNotFoundError("golden_set.json")

        with pytest.raises(FileNotFoundError):
            traced_evaluation(evaluator, get_tracer("evaluation"))("baseline")

        assert _span(mem_exporter, "evaluation").status.status_code == StatusCode.ERROR
