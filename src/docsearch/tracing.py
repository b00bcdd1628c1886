"""OpenTelemetry tracing helpers for the search and evaluation pipeline.

Key concepts:
- Span          : a single named, timed unit of work (one search, one evaluation run)
- TracerProvider: the entry point that configures how spans are created and exported
- Exporter      : receives completed spans and forwards them to an observability backend

Usage with an OTLP backend such as Arize Phoenix:

    from docsearch.tracing import configure_tracing, get_tracer, traced_search

    configure_tracing(endpoint="http://localhost:6006/v1/traces", service_name="docsearch")
    search = traced_search(service, get_tracer("docsearch.search"))
    results = search(SearchRequest("how do I configure routing?"))

Without a backend, ``configure_tracing()`` prints spans to stdout.
"""
from __future__ import annotations

from typing import Callable

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor, SpanExporter

from .schema import SearchRequest, SearchResult

# OpenInference attribute names plus the evaluation attributes we record.
ATTR_INPUT_VALUE = "input.value"
ATTR_RETRIEVAL_DOCUMENTS = "retrieval.documents"
ATTR_SEARCH_MAX_RESULTS = "search.max_results"
ATTR_EVAL_LABEL = "evaluation.label"
ATTR_EVAL_PASSED = "evaluation.passed"
ATTR_EVAL_RECALL_AT_10 = "evaluation.recall_at_10"
ATTR_EVAL_MRR = "evaluation.mrr"
ATTR_EVAL_FAILED_QUERIES = "evaluation.failed_queries"

_provider: TracerProvider | None = None


def configure_tracing(
    endpoint: str | None = None,
    service_name: str = "docsearch",
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """Create and register a global TracerProvider.

    Args:
        endpoint: OTLP HTTP endpoint URL to send traces to. When *None* and no
            *exporter* is given, spans are printed to stdout.
        service_name: Label identifying this application in the backend.
        exporter: Pre-built exporter, e.g. ``InMemorySpanExporter`` in tests.
            When provided, *endpoint* is ignored.

    Returns:
        The configured provider, also set as the global OTel provider.
    """
    global _provider

    resource = Resource(attributes={SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)

    if exporter is not None:
        chosen_exporter: SpanExporter = exporter
    elif endpoint is not None:
        try:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
                OTLPSpanExporter,
            )
        except ImportError as exc:  # pragma: no cover
            raise ImportError(
                "opentelemetry-exporter-otlp-proto-http is required to export "
                "traces to an OTLP endpoint.  Install it with:\n"
                "  pip install opentelemetry-exporter-otlp-proto-http"
            ) from exc
        chosen_exporter = OTLPSpanExporter(endpoint=endpoint)
    else:
        chosen_exporter = ConsoleSpanExporter()

    # Export synchronously so spans are visible as soon as they end.
    provider.add_span_processor(SimpleSpanProcessor(chosen_exporter))
    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer from the most recently configured provider.

    Falls back to the global (no-op until configured) provider.
    """
    if _provider is not None:
        return _provider.get_tracer(name)
    return trace.get_tracer(name)


def traced_search(service, tracer: trace.Tracer) -> Callable[[SearchRequest], list[SearchResult]]:
    """Wrap ``service.search`` so every call is recorded as a ``"search"`` span.

    The span records the query text, the requested result count, the number
    of results returned, and ERROR status with the exception on failure. The
    exception is re-raised unchanged.
    """

    def _wrapped(request: SearchRequest) -> list[SearchResult]:
        with tracer.start_as_current_span("search") as span:
            span.set_attribute(ATTR_INPUT_VALUE, request.query)
            span.set_attribute(ATTR_SEARCH_MAX_RESULTS, request.max_results)
            try:
                results = service.search(request)
                span.set_attribute(ATTR_RETRIEVAL_DOCUMENTS, len(results))
                span.set_status(trace.StatusCode.OK)
                return results
            except Exception as exc:
                span.set_status(trace.StatusCode.ERROR, str(exc))
                span.record_exception(exc)
                raise

    return _wrapped


def traced_evaluation(evaluator, tracer: trace.Tracer):
    """Wrap ``evaluator.evaluate`` in an ``"evaluation"`` span with the run's verdict."""

    def _wrapped(label: str):
        with tracer.start_as_current_span("evaluation") as span:
            span.set_attribute(ATTR_EVAL_LABEL, label)
            try:
                summary = evaluator.evaluate(label)
                span.set_attribute(ATTR_EVAL_PASSED, summary.passed)
                span.set_attribute(ATTR_EVAL_RECALL_AT_10, summary.global_recall_at_10)
                span.set_attribute(ATTR_EVAL_MRR, summary.global_mrr)
                span.set_attribute(ATTR_EVAL_FAILED_QUERIES, len(summary.failed_queries))
                span.set_status(trace.StatusCode.OK)
                return summary
            except Exception as exc:
                span.set_status(trace.StatusCode.ERROR, str(exc))
                span.record_exception(exc)
                raise

    return _wrapped
