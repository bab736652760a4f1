"""Observability helpers for Krishi Sakha."""

from __future__ import annotations

import logging
from contextvars import ContextVar

import structlog
from prometheus_client import Counter, Histogram

_logger_configured = False
_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")


def configure_logging(level: int = logging.INFO) -> None:
    global _logger_configured  # noqa: PLW0603 - module-level guard
    if _logger_configured:
        return
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _logger_configured = True


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.clear_contextvars()
    _correlation_id_var.set("-")


def get_correlation_id() -> str:
    return _correlation_id_var.get()


def get_logger(name: str = "krishisakha") -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


class PipelineMetrics:
    """Prometheus metrics for pipeline stages."""

    retrieval_latency = Histogram(
        "krishisakha_retrieval_duration_seconds",
        "Time spent retrieving agricultural data, retries included.",
        buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0),
    )
    retrieved_datum_count = Histogram(
        "krishisakha_retrieved_datum_count",
        "Number of data points returned by retrieval.",
        buckets=(0, 1, 2, 3, 4, 5),
    )
    retrieval_attempts = Histogram(
        "krishisakha_retrieval_attempts",
        "Batch attempts needed per retrieval.",
        buckets=(1, 2, 3),
    )
    cache_lookups = Counter(
        "krishisakha_cache_lookups_total",
        "Retrieval cache lookups by data type and outcome.",
        ["data_type", "outcome"],
    )
    agent_failures = Counter(
        "krishisakha_agent_failures_total",
        "Retrieval agent failures by data type.",
        ["data_type"],
    )
    generation_latency = Histogram(
        "krishisakha_generation_duration_seconds",
        "Time spent in the external generation call.",
        buckets=(0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0),
    )
    generation_failures = Counter(
        "krishisakha_generation_failures_total",
        "Generation calls that degraded to the apology text.",
    )
    answer_confidence = Histogram(
        "krishisakha_answer_confidence",
        "Confidence score attached to advisory responses.",
        buckets=(0.0, 0.25, 0.5, 0.65, 0.8, 0.95),
    )
    pipeline_fallbacks = Counter(
        "krishisakha_pipeline_fallbacks_total",
        "Responses produced by a fallback path.",
        ["reason"],
    )

    @classmethod
    def observe_retrieval(cls, duration_seconds: float, datum_count: int, attempts: int) -> None:
        cls.retrieval_latency.observe(duration_seconds)
        cls.retrieved_datum_count.observe(datum_count)
        cls.retrieval_attempts.observe(attempts)

    @classmethod
    def observe_cache(cls, data_type: str, hit: bool) -> None:
        cls.cache_lookups.labels(data_type=data_type, outcome="hit" if hit else "miss").inc()

    @classmethod
    def observe_generation(cls, duration_seconds: float, *, failed: bool = False) -> None:
        cls.generation_latency.observe(duration_seconds)
        if failed:
            cls.generation_failures.inc()

    @classmethod
    def observe_answer(cls, confidence: float) -> None:
        cls.answer_confidence.observe(confidence)


__all__ = [
    "PipelineMetrics",
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
]
