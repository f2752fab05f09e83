"""The normalization pipeline every generation task runs through.

    built -> sent -> sanitized -> decoded -> normalized -> validated -> done
                                                                    \\-> errored

A run moves forward only; any stage may end it in ``errored`` by raising
``ClassifiedError``. There are no retries here: callers decide whether to
try again.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from career_assist_api.completion_client import (
    CompletionClient,
    CompletionError,
    CompletionRequest,
    CompletionResult,
)
from career_assist_api.config import get_settings
from career_assist_api.decoder import Parsed, decode_json
from career_assist_api.errors import ClassifiedError, ErrorKind, excerpt
from career_assist_api.fallback import Heuristic, extract_sections
from career_assist_api.observability import (
    llm_truncated_total,
    pipeline_fallback_total,
    record_pipeline_outcome,
)
from career_assist_api.sanitizer import split_embedded_json, strip_code_fences
from career_assist_api.schema import Schema, normalize
from career_assist_api.validators import Validator, accept_any

logger = structlog.get_logger()


class Stage(str, Enum):
    BUILT = "built"
    SENT = "sent"
    SANITIZED = "sanitized"
    DECODED = "decoded"
    NORMALIZED = "normalized"
    VALIDATED = "validated"
    DONE = "done"
    ERRORED = "errored"


_ORDER = list(Stage)


@dataclass(frozen=True)
class TaskSpec:
    """How one task's response is decoded, recovered and checked."""

    name: str
    schema: Schema
    validator: Validator = accept_any
    heuristics: Mapping[str, Heuristic] | None = None
    list_key: str | None = None  # wrap a top-level JSON array under this key
    text_validator: Callable[[str], None] | None = None


@dataclass
class PipelineResult:
    """A validated record plus what was learned on the way."""

    record: dict[str, Any]
    raw_text: str
    plain_text: str = ""
    finish_reason: str | None = None
    used_fallback: bool = False
    tokens_used: int = 0


@dataclass
class _Run:
    task: str
    stage: Stage = Stage.BUILT
    history: list[Stage] = field(default_factory=lambda: [Stage.BUILT])

    def advance(self, stage: Stage, **details: Any) -> None:
        if _ORDER.index(stage) <= _ORDER.index(self.stage):
            raise RuntimeError(f"Pipeline cannot move from {self.stage.value} to {stage.value}")
        self.stage = stage
        self.history.append(stage)
        logger.debug("Pipeline stage", task=self.task, stage=stage.value, **details)

    def fail(self, error: ClassifiedError) -> None:
        self.stage = Stage.ERRORED
        self.history.append(Stage.ERRORED)
        logger.warning(
            "Pipeline failed",
            task=self.task,
            kind=error.kind.value,
            error=error.message,
            excerpt=error.excerpt,
        )
        record_pipeline_outcome(self.task, error.kind.value)

    def finish(self) -> None:
        self.advance(Stage.DONE)
        record_pipeline_outcome(self.task, Stage.DONE.value)


async def _send(client: CompletionClient, request: CompletionRequest, run: _Run) -> CompletionResult:
    if not client.is_configured:
        raise ClassifiedError(
            ErrorKind.UPSTREAM_UNAVAILABLE,
            "Completion service not configured",
        )
    try:
        result = await client.complete(request)
    except CompletionError as e:
        raise ClassifiedError(ErrorKind.UPSTREAM_UNAVAILABLE, str(e)) from e

    run.advance(Stage.SENT, finish_reason=result.finish_reason, tokens=result.tokens_used)

    if result.finish_reason == "length":
        logger.warning(
            "Completion truncated by token limit",
            task=request.task,
            max_tokens=request.max_tokens,
        )
        llm_truncated_total.labels(task=request.task).inc()

    if not result.text or not result.text.strip():
        raise ClassifiedError(ErrorKind.EMPTY_RESPONSE, "Completion service returned no content")
    return result


async def run_json_task(
    client: CompletionClient,
    request: CompletionRequest,
    spec: TaskSpec,
) -> PipelineResult:
    """Run a structured task and return its validated record.

    Raises:
        ClassifiedError: With the failure kind and a bounded raw excerpt.
    """
    run = _Run(task=spec.name)
    excerpt_chars = get_settings().error_excerpt_chars
    try:
        result = await _send(client, request, run)
        raw = result.text

        plain_text = ""
        if request.output_mode == "text_with_json":
            plain_text, candidate = split_embedded_json(raw)
            to_decode = candidate or ""
            recovery_source = raw
        else:
            to_decode = strip_code_fences(raw)
            recovery_source = to_decode
        run.advance(Stage.SANITIZED, chars=len(to_decode))

        outcome = decode_json(to_decode, require_object=spec.list_key is None, excerpt_chars=excerpt_chars)
        used_fallback = False
        if isinstance(outcome, Parsed):
            value = outcome.value
            if spec.list_key and isinstance(value, list):
                value = {spec.list_key: value}
        else:
            value = extract_sections(recovery_source, spec.schema, spec.heuristics)
            if not value:
                raise ClassifiedError(
                    ErrorKind.PARSE_FAILURE,
                    f"Response could not be parsed ({outcome.reason})",
                    excerpt(raw, excerpt_chars),
                )
            used_fallback = True
            pipeline_fallback_total.labels(task=spec.name).inc()
            logger.info(
                "Recovered sections from malformed response",
                task=spec.name,
                reason=outcome.reason,
                keys=sorted(value),
            )
        run.advance(Stage.DECODED, used_fallback=used_fallback)

        record = normalize(value, spec.schema)
        run.advance(Stage.NORMALIZED)

        try:
            spec.validator(record)
            if spec.text_validator:
                spec.text_validator(plain_text)
        except ClassifiedError as e:
            if not e.excerpt:
                e.excerpt = excerpt(raw, excerpt_chars)
            raise
        run.advance(Stage.VALIDATED)
        run.finish()

        return PipelineResult(
            record=record,
            raw_text=raw,
            plain_text=plain_text,
            finish_reason=result.finish_reason,
            used_fallback=used_fallback,
            tokens_used=result.tokens_used,
        )
    except ClassifiedError as e:
        run.fail(e)
        raise


async def run_text_task(client: CompletionClient, request: CompletionRequest) -> PipelineResult:
    """Run a plain-text task (cover letters, statements)."""
    run = _Run(task=request.task)
    try:
        result = await _send(client, request, run)
        text = strip_code_fences(result.text)
        run.advance(Stage.SANITIZED, chars=len(text))
        if not text:
            raise ClassifiedError(ErrorKind.EMPTY_RESPONSE, "Completion service returned only markup")
        run.finish()
        return PipelineResult(
            record={},
            raw_text=result.text,
            plain_text=text,
            finish_reason=result.finish_reason,
            tokens_used=result.tokens_used,
        )
    except ClassifiedError as e:
        run.fail(e)
        raise
