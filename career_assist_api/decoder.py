"""Strict JSON decoding with a typed outcome instead of exceptions."""

import json
import re
from dataclasses import dataclass
from typing import Any, Union

from career_assist_api.errors import excerpt

_OBJECT_SPAN_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class Parsed:
    """The text was valid JSON."""

    value: Any


@dataclass(frozen=True)
class Failed:
    """The text could not be decoded."""

    reason: str
    excerpt: str = ""


ParseOutcome = Union[Parsed, Failed]


def decode_json(text: str | None, *, require_object: bool = True, excerpt_chars: int = 500) -> ParseOutcome:
    """Parse ``text`` as JSON. Never raises.

    When ``require_object`` is set, a top level that is not an object is a
    failure. Text that starts with neither ``{`` nor ``[`` is narrowed to its outermost
    brace span before parsing, so a sentence before the object is tolerated.
    """
    if not text or not text.strip():
        return Failed(reason="empty input")

    candidate = text.strip()
    if require_object and not candidate.startswith(("{", "[")):
        match = _OBJECT_SPAN_RE.search(candidate)
        if match:
            candidate = match.group(0)

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return Failed(
            reason=f"invalid JSON: {e.msg} at line {e.lineno} column {e.colno}",
            excerpt=excerpt(text, excerpt_chars),
        )
    except (ValueError, RecursionError) as e:
        # Nesting beyond the recursion limit, or integers over the digit limit
        return Failed(reason=f"invalid JSON: {e}", excerpt=excerpt(text, excerpt_chars))

    if require_object and not isinstance(value, dict):
        return Failed(
            reason=f"expected a JSON object, got {type(value).__name__}",
            excerpt=excerpt(text, excerpt_chars),
        )

    return Parsed(value=value)
