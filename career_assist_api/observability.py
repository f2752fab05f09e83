"""Observability utilities: trace IDs, LLM metrics, and payload logging.

This module provides:
- Trace ID generation and propagation via context vars
- Prometheus metrics for completion calls and pipeline outcomes
- Structured logging helpers for LLM request/response correlation
"""

import time
import secrets
from contextvars import ContextVar
from dataclasses import dataclass

import structlog
from prometheus_client import Counter, Histogram, Gauge

logger = structlog.get_logger()

# =============================================================================
# Trace ID Context
# =============================================================================

# Context variable for trace ID propagation across async calls
trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")


def generate_trace_id() -> str:
    """Generate cryptographically secure trace ID for request tracking."""
    return secrets.token_hex(16)


def get_trace_id() -> str:
    """Get current trace ID from context, or empty string if not set."""
    return trace_id_ctx.get()


def set_trace_id(trace_id: str) -> None:
    """Set trace ID in context."""
    trace_id_ctx.set(trace_id)


# =============================================================================
# Prometheus Metrics
# =============================================================================

llm_requests_total = Counter(
    "llm_requests_total",
    "Total LLM API requests",
    ["model", "task", "status"],
)

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total tokens used in LLM calls",
    ["model", "task"],
)

llm_latency_seconds = Histogram(
    "llm_latency_seconds",
    "LLM response latency in seconds",
    ["model", "task"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

llm_active_requests = Gauge(
    "llm_active_requests",
    "Currently active LLM requests",
    ["model"],
)

pipeline_outcomes_total = Counter(
    "pipeline_outcomes_total",
    "Normalization pipeline outcomes per task",
    ["task", "outcome"],  # outcome: done or an error kind
)

pipeline_fallback_total = Counter(
    "pipeline_fallback_total",
    "Responses recovered by section extraction after a strict parse failure",
    ["task"],
)

llm_truncated_total = Counter(
    "llm_truncated_total",
    "Responses cut off by the token limit (finish_reason=length)",
    ["task"],
)


# =============================================================================
# LLM Payload Logging
# =============================================================================


@dataclass
class LLMRequestLog:
    """Structured log data for LLM requests."""

    trace_id: str
    model: str
    task: str
    output_mode: str
    system_prompt_chars: int
    user_prompt_chars: int
    max_tokens: int
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        if self.timestamp == 0.0:
            self.timestamp = time.time()


def log_llm_request(
    model: str,
    task: str,
    output_mode: str,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
) -> LLMRequestLog:
    """Log an LLM request and return the record used to correlate the response."""
    log_data = LLMRequestLog(
        trace_id=get_trace_id(),
        model=model,
        task=task,
        output_mode=output_mode,
        system_prompt_chars=len(system_prompt),
        user_prompt_chars=len(user_prompt),
        max_tokens=max_tokens,
    )

    logger.info(
        "llm_request",
        trace_id=log_data.trace_id,
        model=log_data.model,
        task=log_data.task,
        output_mode=log_data.output_mode,
        system_prompt_chars=log_data.system_prompt_chars,
        user_prompt_chars=log_data.user_prompt_chars,
        max_tokens=log_data.max_tokens,
    )

    llm_active_requests.labels(model=model).inc()
    return log_data


def log_llm_response(
    request_log: LLMRequestLog,
    tokens_total: int = 0,
    finish_reason: str = "unknown",
    error: str | None = None,
) -> None:
    """Log an LLM response with metrics and correlation."""
    latency_ms = int((time.time() - request_log.timestamp) * 1000)

    if error:
        logger.error(
            "llm_response",
            trace_id=request_log.trace_id,
            model=request_log.model,
            task=request_log.task,
            latency_ms=latency_ms,
            error=error,
        )
        status = "error"
    else:
        logger.info(
            "llm_response",
            trace_id=request_log.trace_id,
            model=request_log.model,
            task=request_log.task,
            tokens_total=tokens_total,
            latency_ms=latency_ms,
            finish_reason=finish_reason,
        )
        status = "success"

    llm_active_requests.labels(model=request_log.model).dec()
    llm_requests_total.labels(
        model=request_log.model,
        task=request_log.task,
        status=status,
    ).inc()

    if tokens_total > 0:
        llm_tokens_total.labels(model=request_log.model, task=request_log.task).inc(tokens_total)

    llm_latency_seconds.labels(
        model=request_log.model,
        task=request_log.task,
    ).observe(latency_ms / 1000.0)


def record_pipeline_outcome(task: str, outcome: str) -> None:
    """Count a finished pipeline run."""
    pipeline_outcomes_total.labels(task=task, outcome=outcome).inc()
