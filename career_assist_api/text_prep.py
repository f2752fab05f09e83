"""Input preparation applied before text is embedded in a prompt.

This module provides:
- Length limiting at sentence or line boundaries
- Noise and personal-data redaction for scoring prompts
- Splitting of user-typed achievement lists
"""

import re

# =============================================================================
# Configuration
# =============================================================================

MAX_PROMPT_TEXT_CHARS = 8000
MAX_SCORE_RESUME_CHARS = 4000
MAX_SCORE_JOB_CHARS = 2500

# Cut at a boundary only when it keeps at least this share of the limit.
_BOUNDARY_MIN_RATIO = 0.8

# Redactions applied in order; each pattern is replaced by its token.
REDACTION_PATTERNS = [
    (re.compile(r"https?://\S+"), "[URL]"),
    (re.compile(r"\S+@\S+\.\S+"), "[EMAIL]"),
    (re.compile(r"(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}"), "[PHONE]"),
]

_NOISE_RE = re.compile(r"[^\w\s\-.,;:()\[\]@/+]")
_WHITESPACE_RE = re.compile(r"\s+")
_ACHIEVEMENT_SPLIT_RE = re.compile(r"\n|(?:^|\s)[•*]\s+")
_LEADING_MARKER_RE = re.compile(r"^(?:[•\-*]\s*|\d+[.)]\s+)")


def truncate_text(text: str, max_chars: int = MAX_PROMPT_TEXT_CHARS) -> str:
    """Limit ``text`` to ``max_chars``, preferring a sentence or line end.

    When the last boundary falls in the final fifth of the window the text is
    cut there; otherwise it is cut hard and ``...`` is appended.
    """
    if not text or len(text) <= max_chars:
        return text or ""

    window = text[:max_chars]
    boundary = max(window.rfind(". "), window.rfind(".\n"), window.rfind("\n"))
    if boundary > max_chars * _BOUNDARY_MIN_RATIO:
        return window[: boundary + 1].rstrip()
    return window + "..."


def preprocess_for_scoring(text: str, max_chars: int) -> str:
    """Collapse whitespace, redact contact details and drop noise characters."""
    if not text:
        return ""

    cleaned = _WHITESPACE_RE.sub(" ", text)
    for pattern, token in REDACTION_PATTERNS:
        cleaned = pattern.sub(token, cleaned)
    cleaned = _NOISE_RE.sub(" ", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned[:max_chars]


def split_achievements(text: str | None) -> list[str]:
    """Turn a user-typed list (lines or bullets) into achievement strings."""
    if not text:
        return []

    items = []
    for part in _ACHIEVEMENT_SPLIT_RE.split(text):
        item = _LEADING_MARKER_RE.sub("", part).strip()
        if item:
            items.append(item)
    return items


def word_count(text: str) -> int:
    return len(text.split())
