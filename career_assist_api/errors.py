"""Error taxonomy for LLM-backed generation tasks."""

from enum import Enum


class ErrorKind(str, Enum):
    """Why a generation attempt failed."""

    EMPTY_RESPONSE = "empty_response"
    PARSE_FAILURE = "parse_failure"
    EMPTY_RESULT = "empty_result"
    SCHEMA_INVALID = "schema_invalid"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


def excerpt(text: str | None, limit: int = 500) -> str:
    """Return at most ``limit`` characters of raw model output for diagnostics."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class ClassifiedError(Exception):
    """A pipeline failure with a kind and a bounded excerpt of the raw response."""

    def __init__(self, kind: ErrorKind, message: str, raw_excerpt: str = ""):
        self.kind = kind
        self.message = message
        self.excerpt = raw_excerpt
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"[{self.kind.value}] {self.message}"
        if self.excerpt:
            text += f" | response excerpt: {self.excerpt}"
        return text


class GenerationError(ClassifiedError):
    """Raised by top-level task functions; names the operation that failed."""

    def __init__(self, operation: str, error: ClassifiedError):
        self.operation = operation
        super().__init__(error.kind, f"{operation} failed: {error.message}", error.excerpt)


class InvalidInputError(ValueError):
    """Raised when a task is called without the inputs it needs."""

    pass
