"""Best-effort recovery of known sections from malformed or truncated JSON.

Used only after strict decoding has failed. Each declared field is located by
its ``"key":`` pattern and the value is recovered as far as the text allows.
Object arrays with no JSON shape at all can be rebuilt from resume-style
plain text by the line heuristics at the bottom of this module; contact
details are found there by pattern too.
"""

import json
import re
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from career_assist_api.schema import FieldKind, FieldSpec, Schema

logger = structlog.get_logger()

Heuristic = Callable[[str], Any]

# A following key in the same object, used to bound a truncated array.
_SIBLING_KEY_RE = re.compile(r',\s*"[^"\n]{1,80}"\s*:')
_QUOTED_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')
_BULLET_RE = re.compile(r"^[•\-*]\s*")
_YEAR_RE = re.compile(r"\d{4}")
_PAREN_YEAR_RE = re.compile(r"\s*\(\d{4}.*?\)")

_decoder = json.JSONDecoder(strict=False)


def _key_re(key: str, opener: str) -> re.Pattern[str]:
    return re.compile(r'"' + re.escape(key) + r'"\s*:\s*' + opener)


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"', strict=False)
    except json.JSONDecodeError:
        return raw


def _scan_container(text: str, start: int) -> tuple[int, bool]:
    """Find the bracket closing the container opened just before ``start``.

    Returns ``(end, closed)``; ``end`` is the closer's index, or the text
    length when the container was cut off.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            if depth == 0:
                return i, True
            depth -= 1
    return len(text), False


def _extract_string(text: str, key: str) -> str | None:
    match = _key_re(key, r'"((?:[^"\\]|\\.)*)"').search(text)
    return _unescape(match.group(1)) if match else None


def _extract_number(text: str, key: str) -> int | float | None:
    match = _key_re(key, r'"?(-?\d+(?:\.\d+)?)').search(text)
    if not match:
        return None
    value = match.group(1)
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return None


def _extract_boolean(text: str, key: str) -> bool | None:
    match = _key_re(key, r"(true|false)").search(text)
    return match.group(1) == "true" if match else None


def _extract_string_list(text: str, key: str) -> list[str] | None:
    match = _key_re(key, r"\[").search(text)
    if not match:
        return None
    end, _ = _scan_container(text, match.end())
    span = text[match.end() : end]
    sibling = _SIBLING_KEY_RE.search(span)
    if sibling:
        span = span[: sibling.start()]
    return [_unescape(item.group(1)) for item in _QUOTED_RE.finditer(span)]


def _extract_object(text: str, key: str, children: Schema) -> dict[str, Any] | None:
    match = _key_re(key, r"\{").search(text)
    if not match:
        return None
    try:
        value, _ = _decoder.raw_decode(text, match.end() - 1)
        return value
    except (ValueError, RecursionError):
        end, _ = _scan_container(text, match.end())
        return extract_sections(text[match.end() : end], children) or None


def _extract_object_list(text: str, key: str, children: Schema) -> list[dict[str, Any]] | None:
    match = _key_re(key, r"\[").search(text)
    if not match:
        return None

    items: list[dict[str, Any]] = []
    pos = match.end()
    while pos < len(text):
        while pos < len(text) and text[pos] in " \t\r\n,":
            pos += 1
        if pos >= len(text) or text[pos] == "]":
            break
        try:
            value, pos = _decoder.raw_decode(text, pos)
        except (ValueError, RecursionError):
            if text[pos] == "{":
                end, _ = _scan_container(text, pos + 1)
                partial = extract_sections(text[pos + 1 : end], children)
                if partial:
                    items.append(partial)
            break
        if isinstance(value, dict):
            items.append(value)
    return items


def _extract_field(text: str, spec: FieldSpec) -> Any:
    for key in spec.candidates:
        if spec.kind is FieldKind.STRING:
            value = _extract_string(text, key)
        elif spec.kind is FieldKind.STRING_LIST:
            value = _extract_string_list(text, key)
        elif spec.kind is FieldKind.NUMBER:
            value = _extract_number(text, key)
        elif spec.kind is FieldKind.BOOLEAN:
            value = _extract_boolean(text, key)
        elif spec.kind is FieldKind.OBJECT:
            value = _extract_object(text, key, spec.children)
        else:
            value = _extract_object_list(text, key, spec.children)
        if value is not None:
            return value
    return None


def extract_sections(
    text: str | None,
    schema: Schema,
    heuristics: Mapping[str, Heuristic] | None = None,
) -> dict[str, Any]:
    """Recover whatever declared fields can be found in ``text``.

    Fields that cannot be located are absent from the result. Never raises.

    Args:
        text: Raw (possibly malformed) model output.
        schema: The fields to look for.
        heuristics: Optional plain-text extractors by field name, used when
            the field has no JSON shape in the text.
    """
    if not text:
        return {}

    recovered: dict[str, Any] = {}
    for spec in schema.fields:
        value = _extract_field(text, spec)
        if value is None and heuristics and spec.name in heuristics:
            value = heuristics[spec.name](text) or None
        if value is not None:
            recovered[spec.name] = value
    return recovered


# =============================================================================
# Plain-text heuristics for resume-shaped output
# =============================================================================

_WORK_SECTION_RE = re.compile(
    r"WORK EXPERIENCE[:\n]+(.*?)(?=\n\s*(?:(?:TECHNICAL\s+)?SKILLS|EDUCATION)|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_SKILLS_SECTION_RE = re.compile(
    r"(?:TECHNICAL\s+)?SKILLS[:\n]+(.*?)(?=\n\s*(?:WORK|EDUCATION)|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_SUMMARY_SECTION_RE = re.compile(
    r"(?:PROFESSIONAL\s+)?SUMMARY[:\n]+(.*?)(?=\n\s*(?:WORK|(?:TECHNICAL\s+)?SKILLS|EDUCATION)|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_EDUCATION_SECTION_RE = re.compile(
    r"EDUCATION[:\n]+(.*?)(?=\n\s*(?:WORK|(?:TECHNICAL\s+)?SKILLS|CERTIFICATION)|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_JOB_ENTRY_SPLIT_RE = re.compile(r"\n(?=[A-Z][^•\n]*(?:\d{4}|\w+\s+\d{4}))")
_EDU_ENTRY_SPLIT_RE = re.compile(
    r"\n(?=[A-Z][^•\n]*(?:University|College|Institute|School|Bachelor|Master|PhD|\d{4}))",
    re.IGNORECASE,
)
_INSTITUTION_RE = re.compile(r"University|College|Institute|School", re.IGNORECASE)
_DEGREE_RE = re.compile(r"Bachelor|Master|PhD|Degree|B\.S\.|M\.S\.|B\.A\.|M\.A\.", re.IGNORECASE)


def _is_bullet(line: str) -> bool:
    return line.startswith(("•", "-", "*"))


def _parse_job_entry(entry: str) -> dict[str, Any] | None:
    company = ""
    title = ""
    dates = ""
    achievements: list[str] = []

    for raw_line in entry.strip().split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        if _is_bullet(line):
            bullet = _BULLET_RE.sub("", line).strip()
            if len(bullet) > 10:
                achievements.append(bullet)
        elif not company and len(line) > 5:
            if " at " in line:
                head, line = line.split(" at ", 1)
                title = head.strip()
            period = _PAREN_YEAR_RE.search(line)
            if period and not dates:
                dates = period.group(0).strip(" ()")
            company = _PAREN_YEAR_RE.sub("", line).strip()
        elif not title and len(line) > 5 and not _YEAR_RE.search(line):
            title = line
        elif _YEAR_RE.search(line):
            dates = line

    if company and achievements:
        return {"company": company, "title": title, "dates": dates, "achievements": achievements}
    return None


def work_experience_from_text(text: str) -> list[dict[str, Any]]:
    """Rebuild work-experience entries from a ``WORK EXPERIENCE`` section."""
    match = _WORK_SECTION_RE.search(text)
    if not match:
        return []

    entries = []
    for chunk in _JOB_ENTRY_SPLIT_RE.split(match.group(1)):
        if len(chunk.strip()) < 10:
            continue
        entry = _parse_job_entry(chunk)
        if entry:
            entries.append(entry)
    if entries:
        logger.info("Recovered work experience from plain text", entries=len(entries))
    return entries


def skills_from_text(text: str) -> dict[str, list[str]]:
    """Split a ``SKILLS`` section into technical and soft skills."""
    match = _SKILLS_SECTION_RE.search(text)
    if not match:
        return {}

    technical: list[str] = []
    soft: list[str] = []
    current = technical
    for raw_line in match.group(1).split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        lowered = line.lower()
        if "soft skill" in lowered or "interpersonal" in lowered:
            current = soft
            continue
        if _is_bullet(line):
            skill = _BULLET_RE.sub("", line).strip()
            if len(skill) > 1:
                current.append(skill)
        elif "," in line:
            current.extend(s.strip() for s in line.split(",") if len(s.strip()) > 1)

    if not technical and not soft:
        return {}
    return {"technical_skills": technical, "soft_skills": soft}


def technical_skills_from_text(text: str) -> list[str]:
    return skills_from_text(text).get("technical_skills", [])


def summary_from_text(text: str) -> str:
    """Join a ``SUMMARY`` section into one line; short summaries are ignored."""
    match = _SUMMARY_SECTION_RE.search(text)
    if not match:
        return ""
    summary = re.sub(r"\n+", " ", match.group(1).strip())
    return summary if len(summary) > 20 else ""


def education_from_text(text: str) -> list[dict[str, str]]:
    """Rebuild education entries from an ``EDUCATION`` section."""
    match = _EDUCATION_SECTION_RE.search(text)
    if not match:
        return []

    items = []
    for chunk in _EDU_ENTRY_SPLIT_RE.split(match.group(1)):
        if len(chunk.strip()) < 10:
            continue
        institution = ""
        degree = ""
        graduation_date = ""
        for raw_line in chunk.strip().split("\n"):
            line = raw_line.strip()
            if not line or _is_bullet(line):
                continue
            if _YEAR_RE.search(line):
                graduation_date = line
            elif _INSTITUTION_RE.search(line):
                institution = line
            elif _DEGREE_RE.search(line):
                degree = line
            elif not degree and len(line) > 5:
                degree = line
            elif not institution and len(line) > 10:
                institution = line
        if degree or institution:
            items.append(
                {"institution": institution, "degree": degree, "graduation_date": graduation_date}
            )
    return items


_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_RE = re.compile(r"\+?\d[\d \-().]{7,}\d")
_LINKEDIN_RE = re.compile(r"linkedin\.com/[a-zA-Z0-9\-_/]+", re.IGNORECASE)
_GITHUB_RE = re.compile(r"github\.com/[a-zA-Z0-9\-_/]+", re.IGNORECASE)
_NAME_LINE_RE = re.compile(r"^[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+$")
_CITY_REGION_RE = re.compile(r"^[A-Z][A-Za-z.' -]+,\s*[A-Z][A-Za-z. ]+$")
_CONTACT_SEPARATOR_RE = re.compile(r"\s*[|•·]\s*")
_KNOWN_CITIES_RE = re.compile(
    r"\b(Birmingham|London|Manchester|Leeds|Liverpool|Glasgow|Edinburgh|Bristol|Cardiff|Belfast)\b"
)
_CONTACT_HEADER_LINES = 10
_MIN_PHONE_DIGITS = 10


def _location_from_header(lines: list[str]) -> str | None:
    for line in lines:
        for segment in _CONTACT_SEPARATOR_RE.split(line.strip()):
            if "@" in segment or any(ch.isdigit() for ch in segment):
                continue
            if _CITY_REGION_RE.match(segment):
                return segment
    match = _KNOWN_CITIES_RE.search(" ".join(lines))
    return match.group(1) if match else None


def contact_details_from_text(text: str) -> dict[str, str]:
    """Find contact details by pattern; only the fields found are returned."""
    if not text:
        return {}
    details: dict[str, str] = {}
    lines = text.splitlines()

    for line in lines:
        if _NAME_LINE_RE.match(line.strip()):
            details["name"] = line.strip()
            break

    email = _EMAIL_RE.search(text)
    if email:
        details["email"] = email.group(0)

    # Date ranges look like phone numbers until the digits are counted
    for match in _PHONE_RE.finditer(text):
        if sum(ch.isdigit() for ch in match.group(0)) >= _MIN_PHONE_DIGITS:
            details["phone"] = match.group(0)
            break

    linkedin = _LINKEDIN_RE.search(text)
    if linkedin:
        details["linkedin"] = linkedin.group(0)
    github = _GITHUB_RE.search(text)
    if github:
        details["github"] = github.group(0)

    header = []
    for line in lines[:_CONTACT_HEADER_LINES]:
        if line.strip().isupper() and len(line.strip()) > 3:
            break
        header.append(line)
    location = _location_from_header(header)
    if location:
        details["location"] = location
    return details
