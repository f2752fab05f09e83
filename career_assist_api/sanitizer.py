"""Cleanup of raw model text before it is parsed."""

import re

# The fence opening the text (optionally tagged), a fence ending the text, and
# the line that closes an opened fence.
_OPEN_FENCE_RE = re.compile(r"\A```(?:[\w+-]*[ \t]*\r?\n|json)?", re.IGNORECASE)
_CLOSE_FENCE_RE = re.compile(r"```\Z")
_CLOSING_LINE_RE = re.compile(r"\r?\n[ \t]*```[ \t]*(?:\r?\n|\Z)")

# A fenced JSON block embedded in prose; its closing fence starts a line.
_FENCED_JSON_RE = re.compile(r"```(?:json)?[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL | re.IGNORECASE)


def strip_code_fences(text: str | None) -> str:
    """Remove the markdown fence wrapping the text and surrounding whitespace.

    Only the fence opening the text, its closing line and a fence at the very
    end are removed, so backticks inside JSON string values survive. Inner
    content is returned verbatim: escape sequences, newlines and quotes are
    never touched. Applying this twice gives the same result as once.
    """
    if not text:
        return ""

    cleaned = text.strip()
    previous = None
    while cleaned != previous:
        previous = cleaned
        opened = _OPEN_FENCE_RE.match(cleaned)
        if opened:
            cleaned = cleaned[opened.end() :]
            # Anything after the fenced block is commentary
            closing = _CLOSING_LINE_RE.search(cleaned)
            if closing:
                cleaned = cleaned[: closing.start()]
        cleaned = _CLOSE_FENCE_RE.sub("", cleaned).strip()
    return cleaned


def split_embedded_json(text: str | None) -> tuple[str, str | None]:
    """Separate a prose response from the JSON object embedded in it.

    Returns ``(plain_text, json_candidate)``. A fenced ```json block wins;
    otherwise the outermost ``{...}`` span is used. ``json_candidate`` is
    None when the text holds no brace at all.
    """
    if not text:
        return "", None

    match = _FENCED_JSON_RE.search(text)
    if match:
        plain = (text[: match.start()] + text[match.end() :]).strip()
        return strip_code_fences(plain), match.group(1).strip()

    start = text.find("{")
    if start == -1:
        return strip_code_fences(text), None

    end = text.rfind("}")
    candidate = text[start : end + 1] if end > start else text[start:]
    plain = strip_code_fences(text[:start]) or strip_code_fences(text)
    return plain, candidate
