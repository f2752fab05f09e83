"""Resume tasks: structuring, job analysis, scoring, optimization and experience."""

import asyncio
import re
from typing import Any

import structlog

from career_assist_api.completion_client import CompletionClient
from career_assist_api.decoder import Parsed, decode_json
from career_assist_api.errors import ClassifiedError, ErrorKind, GenerationError, InvalidInputError
from career_assist_api.fallback import (
    contact_details_from_text,
    education_from_text,
    skills_from_text,
    summary_from_text,
    technical_skills_from_text,
    work_experience_from_text,
)
from career_assist_api.pipeline import TaskSpec, run_json_task
from career_assist_api.prompts import (
    build_achievements_request,
    build_contact_details_request,
    build_create_resume_request,
    build_job_requirements_request,
    build_job_terms_request,
    build_optimize_request,
    build_optimized_score_request,
    build_score_parse_request,
    build_score_request,
    build_segment_sections_request,
    build_skills_request,
    build_structure_resume_request,
)
from career_assist_api.records import (
    ACHIEVEMENTS,
    CONTACT_DETAILS,
    CONTACT_FIELDS,
    CREATED_RESUME,
    JOB_KEY_TERMS,
    JOB_REQUIREMENTS,
    OPTIMIZED_RESUME,
    PARSED_RESUME_AND_JOB,
    RESUME_SCORE,
    SKILLS,
    STRUCTURED_RESUME,
)
from career_assist_api.sanitizer import strip_code_fences
from career_assist_api.schema import normalize
from career_assist_api.text_prep import (
    MAX_SCORE_JOB_CHARS,
    MAX_SCORE_RESUME_CHARS,
    preprocess_for_scoring,
    split_achievements,
)
from career_assist_api.validators import (
    validate_achievements,
    validate_created_resume,
    validate_optimized_text,
    validate_parsed_resume,
    validate_resume_score,
    validate_skills,
    validate_structured_resume,
)

logger = structlog.get_logger()

# =============================================================================
# Configuration
# =============================================================================

MAX_SEGMENT_INPUT_CHARS = 15000
MAX_SECTION_CHARS = 10000
OVERSIZED_SECTION_FALLBACK_CHARS = 8000
MIN_JOB_DESCRIPTION_CHARS = 50
MIN_SCORE_JOB_DESCRIPTION_CHARS = 20
LOW_SCORE_THRESHOLD = 40
OPTIMIZED_TARGET_SCORE = 90
MIN_CONTACT_FIELDS = 3

STRUCTURE_TASK = TaskSpec(
    name="resume_structure",
    schema=STRUCTURED_RESUME,
    validator=validate_structured_resume,
    heuristics={
        "Summary": summary_from_text,
        "Work Experience": work_experience_from_text,
        "Technical Skills": technical_skills_from_text,
        "Education": education_from_text,
    },
)
JOB_REQUIREMENTS_TASK = TaskSpec(name="job_requirements", schema=JOB_REQUIREMENTS)
JOB_TERMS_TASK = TaskSpec(name="job_key_terms", schema=JOB_KEY_TERMS)
SKILLS_TASK = TaskSpec(name="resume_skills", schema=SKILLS, validator=validate_skills, list_key="skills")
SCORE_PARSE_TASK = TaskSpec(
    name="score_parse", schema=PARSED_RESUME_AND_JOB, validator=validate_parsed_resume
)
SCORE_TASK = TaskSpec(name="resume_score", schema=RESUME_SCORE, validator=validate_resume_score)
OPTIMIZED_SCORE_TASK = TaskSpec(
    name="optimized_resume_score", schema=RESUME_SCORE, validator=validate_resume_score
)
OPTIMIZE_TASK = TaskSpec(
    name="resume_optimize",
    schema=OPTIMIZED_RESUME,
    heuristics={
        "summary": summary_from_text,
        "skills": skills_from_text,
        "work_experience": work_experience_from_text,
        "education": education_from_text,
    },
    text_validator=validate_optimized_text,
)
ACHIEVEMENTS_TASK = TaskSpec(
    name="experience_achievements",
    schema=ACHIEVEMENTS,
    validator=validate_achievements,
    list_key="achievements",
)
CREATE_RESUME_TASK = TaskSpec(name="resume_create", schema=CREATED_RESUME, validator=validate_created_resume)
CONTACT_TASK = TaskSpec(name="contact_details", schema=CONTACT_DETAILS)

# Soft skills looked for in resume text when the parse pass found few.
SOFT_SKILL_CANDIDATES = [
    "Communication Skills",
    "Teamwork",
    "Leadership",
    "Problem Solving",
    "Time Management",
    "Attention to Detail",
    "Client Relationship Management",
    "Planning",
    "Organizational Skills",
    "Multitasking",
    "Adaptability",
    "Critical Thinking",
    "Collaboration",
    "Project Coordination",
]
_SOFT_SKILL_MARKERS = ("communication", "teamwork", "leadership", "problem", "time management")

# Alternative positions suggested for low scores when the model gives none.
# First matching family wins.
FALLBACK_POSITIONS = [
    (("software", "developer", "programming"), ["Software Developer", "Technical Specialist"]),
    (("design", "creative"), ["Designer", "Creative Specialist"]),
    (("manage", "leadership"), ["Project Manager", "Team Lead"]),
    (("market", "sales"), ["Marketing Specialist", "Sales Representative"]),
    (("data", "analysis"), ["Data Analyst", "Business Analyst"]),
]
DEFAULT_POSITIONS = ["Professional role in your field", "Specialist position"]

# Phrasings that name the same skill.
SKILL_EQUIVALENTS = [
    ("client facing", "client relationship"),
    ("communication skills", "communication"),
]
_STOP_WORDS = {"and", "the", "of", "for", "with", "both", "on", "in", "or"}


def _empty(schema) -> dict[str, Any]:
    return normalize({}, schema)


# =============================================================================
# Resume structure
# =============================================================================


async def segment_resume_sections(client: CompletionClient, resume_text: str) -> dict[str, str]:
    """Split raw resume text into titled sections.

    Never fails: on any problem the whole text comes back as ``Full Resume``.
    """
    text = resume_text[:MAX_SEGMENT_INPUT_CHARS]
    try:
        request = build_segment_sections_request(text)
        result = await client.complete(request)
    except Exception as e:
        logger.warning("Resume segmentation failed, using full text", error=str(e))
        return {"Full Resume": text}

    outcome = decode_json(strip_code_fences(result.text))
    if not isinstance(outcome, Parsed):
        logger.warning("Resume segmentation returned invalid JSON", reason=outcome.reason)
        return {"Full Resume": text}

    sections = {}
    for title, body in outcome.value.items():
        if isinstance(body, str) and body.strip():
            sections[title] = body
        elif isinstance(body, list):
            lines = [item for item in body if isinstance(item, str)]
            if lines:
                sections[title] = "\n".join(lines)
    return sections or {"Full Resume": text}


async def structure_resume(client: CompletionClient, resume_text: str) -> dict[str, Any]:
    """Convert raw resume text into a StructuredResume record.

    Raises:
        InvalidInputError: If the text is empty.
        GenerationError: If no usable structure came back.
    """
    if not resume_text or not resume_text.strip():
        raise InvalidInputError("Resume text is required")

    sections = await segment_resume_sections(client, resume_text)
    if sum(len(body) for body in sections.values()) > MAX_SECTION_CHARS:
        logger.info("Resume sections too large, structuring from truncated text")
        sections = {"Full Resume": resume_text[:OVERSIZED_SECTION_FALLBACK_CHARS]}

    try:
        result = await run_json_task(client, build_structure_resume_request(sections), STRUCTURE_TASK)
    except ClassifiedError as e:
        raise GenerationError("Resume structuring", e) from e

    resume = result.record
    logger.info(
        "Resume structured",
        work_entries=len(resume["Work Experience"]),
        skills=len(resume["Technical Skills"]),
        used_fallback=result.used_fallback,
    )
    return resume


async def extract_skills_from_text(client: CompletionClient, resume_text: str) -> list[str]:
    """List skills shown in the skills and experience parts of a resume."""
    if not resume_text or not resume_text.strip():
        raise InvalidInputError("Resume text is required")

    context_parts = re.findall(
        r"(?i:SKILLS|EXPERIENCE)[:\n]+(.*?)(?=\n[A-Z][A-Z ]{3,}:?\n|\Z)",
        resume_text,
        re.DOTALL,
    )
    context = "\n".join(part.strip() for part in context_parts)
    if len(context) < 100:
        context = resume_text

    try:
        result = await run_json_task(client, build_skills_request(context[:MAX_SCORE_RESUME_CHARS]), SKILLS_TASK)
    except ClassifiedError as e:
        raise GenerationError("Skill extraction", e) from e
    return result.record["skills"]


# =============================================================================
# Job analysis
# =============================================================================


async def _best_effort(client: CompletionClient, request_builder, spec: TaskSpec, job_description: str) -> dict[str, Any]:
    if not job_description or len(job_description.strip()) < MIN_JOB_DESCRIPTION_CHARS:
        logger.info("Job description too short to analyze", task=spec.name)
        return _empty(spec.schema)
    try:
        result = await run_json_task(client, request_builder(job_description), spec)
    except ClassifiedError as e:
        if e.kind is ErrorKind.UPSTREAM_UNAVAILABLE:
            raise GenerationError("Job analysis", e) from e
        logger.warning("Job analysis failed, continuing without it", task=spec.name, error=str(e))
        return _empty(spec.schema)
    return result.record


async def extract_job_requirements(client: CompletionClient, job_description: str) -> dict[str, Any]:
    """Extract a JobRequirements record; empty when the posting is too vague."""
    return await _best_effort(client, build_job_requirements_request, JOB_REQUIREMENTS_TASK, job_description)


async def extract_key_job_terms(client: CompletionClient, job_description: str) -> dict[str, Any]:
    """Extract a JobKeyTerms record; empty when the posting is too vague."""
    return await _best_effort(client, build_job_terms_request, JOB_TERMS_TASK, job_description)


# =============================================================================
# Scoring
# =============================================================================


def supplement_soft_skills(skills: list[str], resume_text: str) -> list[str]:
    """Add common soft skills whose words all appear in the resume text."""
    lowered = [skill.lower() for skill in skills]
    if len(skills) >= 5 and any(marker in skill for skill in lowered for marker in _SOFT_SKILL_MARKERS):
        return skills

    text = resume_text.lower()
    supplemented = list(skills)
    for candidate in SOFT_SKILL_CANDIDATES:
        words = candidate.lower().split()
        if all(word in text for word in words) and not any(candidate.lower() in skill for skill in lowered):
            supplemented.append(candidate)
    return supplemented


def _significant_words(text: str) -> list[str]:
    return [word for word in text.split() if len(word) > 3 and word not in _STOP_WORDS]


def _same_skill(missing: str, matched: str) -> bool:
    if missing in matched or matched in missing:
        return True
    if missing.replace(" ", "") == matched.replace(" ", ""):
        return True
    if re.sub(r"\W", "", missing) == re.sub(r"\W", "", matched):
        return True

    missing_words = _significant_words(missing)
    matched_words = _significant_words(matched)
    if len(missing_words) >= 2 and len(matched_words) >= 2:
        common = [w for w in missing_words if any(w in m or m in w for m in matched_words)]
        if len(common) >= 2:
            return True

    for a, b in SKILL_EQUIVALENTS:
        if (a in missing and b in matched) or (b in missing and a in matched):
            return True
    return "planning" in missing and "organisational" in missing and "planning" in matched and "organizational" in matched


def _experience_requirement_met(skill: str, parsed: dict[str, Any], matched: list[str]) -> bool:
    if "experience" not in skill and "qualification" not in skill:
        return False
    keywords = [
        word
        for word in re.sub(r"experience|qualification|skills?|knowledge|abilities?", "", skill).split()
        if len(word) > 2 and word not in _STOP_WORDS
    ]
    experience = parsed["resume_experience"].lower()
    skills_text = " ".join(parsed["resume_skills"]).lower()
    return any(
        keyword in experience or keyword in skills_text or any(keyword in m for m in matched)
        for keyword in keywords
    )


def filter_missing_skills(missing: list[str], matched: list[str], parsed: dict[str, Any]) -> list[str]:
    """Keep only missing skills that come from the job and are not already shown."""
    # Blank entries would match every skill by substring
    job_skills = [
        s.lower().strip()
        for s in parsed["job_required_skills"] + parsed["job_preferred_skills"] + parsed["job_keywords"]
        if s.strip()
    ]
    matched_lower = [m.lower().strip() for m in matched if m.strip()]

    kept = []
    for skill in missing:
        lowered = skill.lower().strip()
        if not lowered:
            continue
        if not any(job in lowered or lowered in job for job in job_skills):
            continue
        if _experience_requirement_met(lowered, parsed, matched_lower):
            continue
        components = [
            part.strip()
            for part in re.split(r",|\band\b|\(|\)|/", re.sub(r"knowledge of|skills in|abilities in|experience with", "", lowered))
            if len(part.strip()) > 2
        ]
        if len(components) > 1 and all(any(c in m or m in c for m in matched_lower) for c in components):
            continue
        if any(_same_skill(lowered, m) for m in matched_lower):
            continue
        kept.append(skill.strip())
    return kept


def generate_fallback_positions(skills: list[str]) -> list[str]:
    text = " ".join(skills).lower()
    for keywords, positions in FALLBACK_POSITIONS:
        if any(keyword in text for keyword in keywords):
            return list(positions)
    return list(DEFAULT_POSITIONS)


def _category_scores(score: float, weights: tuple[float, float, float, float]) -> dict[str, int]:
    skills, experience, education, additional = weights
    return {
        "skills_match": round(score * skills),
        "experience_relevance": round(score * experience),
        "education_certifications": round(score * education),
        "additional_factors": round(score * additional),
    }


async def _parse_for_scoring(client: CompletionClient, resume_text: str, job_description: str) -> dict[str, Any]:
    resume = preprocess_for_scoring(resume_text, MAX_SCORE_RESUME_CHARS)
    job = preprocess_for_scoring(job_description, MAX_SCORE_JOB_CHARS)
    result = await run_json_task(client, build_score_parse_request(resume, job), SCORE_PARSE_TASK)

    parsed = result.record
    parsed["resume_skills"] = supplement_soft_skills(parsed["resume_skills"], resume)[:25]
    parsed["job_required_skills"] = parsed["job_required_skills"][:15]
    parsed["job_preferred_skills"] = parsed["job_preferred_skills"][:10]
    parsed["job_keywords"] = parsed["job_keywords"][:15]
    return parsed


def _check_score_inputs(resume_text: str, job_description: str) -> None:
    if not resume_text or not resume_text.strip():
        raise InvalidInputError("Resume text is required")
    if not job_description or len(job_description.strip()) < MIN_SCORE_JOB_DESCRIPTION_CHARS:
        raise InvalidInputError("The job description is too short. Please provide a more detailed job description.")


async def score_resume(client: CompletionClient, resume_text: str, job_description: str) -> dict[str, Any]:
    """Score a resume against a job description.

    Returns:
        Dict with match_score (0-100), matched/missing skills, recommendations,
        category_scores and, for low scores, alternative_positions.
    """
    _check_score_inputs(resume_text, job_description)
    try:
        parsed = await _parse_for_scoring(client, resume_text, job_description)
        result = await run_json_task(client, build_score_request(parsed), SCORE_TASK)
    except ClassifiedError as e:
        raise GenerationError("Resume scoring", e) from e

    record = result.record
    matched = [skill.strip() for skill in record["matched_skills"]]
    missing = filter_missing_skills(record["missing_skills"], matched, parsed)
    score = record["match_score"]

    scored = {
        "match_score": score,
        "match_percentage": score,
        "matched_skills": matched[:15],
        "missing_skills": missing[:10],
        "recommendations": record["recommendations"][:3],
        "category_scores": _category_scores(score, (0.4, 0.3, 0.1, 0.2)),
        "alternative_positions": [],
    }
    if score < LOW_SCORE_THRESHOLD:
        scored["alternative_positions"] = record["alternative_positions"][:2] or generate_fallback_positions(
            parsed["resume_skills"]
        )

    logger.info("Resume scored", match_score=score, matched=len(matched), missing=len(missing))
    return scored


async def score_optimized_resume(client: CompletionClient, resume_text: str, job_description: str) -> dict[str, Any]:
    """Score a rewritten resume, including how close it came to the target."""
    _check_score_inputs(resume_text, job_description)
    try:
        parsed = await _parse_for_scoring(client, resume_text, job_description)
        result = await run_json_task(client, build_optimized_score_request(parsed), OPTIMIZED_SCORE_TASK)
    except ClassifiedError as e:
        raise GenerationError("Optimized resume scoring", e) from e

    record = result.record
    matched = [skill.strip() for skill in record["matched_skills"]]
    missing = filter_missing_skills(record["missing_skills"], matched, parsed)
    score = record["match_score"]

    validation = record["optimization_validation"]
    if not any(validation.values()):
        validation = {
            "achieved_zero_missing": not missing,
            "meets_target_score": score >= OPTIMIZED_TARGET_SCORE,
            "skills_demonstrated": len(matched),
        }

    logger.info("Optimized resume scored", match_score=score, missing=len(missing))
    return {
        "match_score": score,
        "match_percentage": score,
        "matched_skills": matched[:20],
        "missing_skills": missing[:5],
        "recommendations": record["recommendations"][:2],
        "category_scores": _category_scores(score, (0.5, 0.3, 0.1, 0.1)),
        "alternative_positions": [],
        "optimization_validation": validation,
    }


# =============================================================================
# Optimization
# =============================================================================


async def optimize_resume(
    client: CompletionClient,
    resume_text: str,
    job_description: str,
    structured_resume: dict[str, Any] | None = None,
    missing_skills: list[str] | None = None,
) -> dict[str, Any]:
    """Rewrite a resume for a job.

    Returns:
        Dict with optimized_text, the normalized structure, and a note listing
        required skills the rewrite still does not mention.
    """
    if not resume_text or not resume_text.strip():
        raise InvalidInputError("Resume text is required")
    if not job_description or not job_description.strip():
        raise InvalidInputError("Job description is required")

    requirements, key_terms = await asyncio.gather(
        extract_job_requirements(client, job_description),
        extract_key_job_terms(client, job_description),
    )
    request = build_optimize_request(
        resume_text, job_description, requirements, key_terms, structured_resume, missing_skills
    )
    try:
        result = await run_json_task(client, request, OPTIMIZE_TASK)
    except ClassifiedError as e:
        raise GenerationError("Resume optimization", e) from e

    optimized_text = result.plain_text
    lowered = optimized_text.lower()
    absent = [skill for skill in requirements["required_skills"] if skill.lower() not in lowered]
    note = ""
    if absent:
        note = "Required skills not yet reflected in the optimized resume: " + ", ".join(absent)

    logger.info(
        "Resume optimized",
        chars=len(optimized_text),
        work_entries=len(result.record["work_experience"]),
        used_fallback=result.used_fallback,
    )
    return {"optimized_text": optimized_text, **result.record, "note": note}


# =============================================================================
# Work experience
# =============================================================================


async def add_work_experience(
    client: CompletionClient,
    resume_text: str,
    job_title: str,
    company: str,
    achievements: str | None = None,
    date_range: str = "Present",
    description: str | None = None,
) -> dict[str, Any]:
    """Append a work-experience entry to a structured resume.

    User-supplied achievements (newline or bullet separated) are used as given;
    otherwise they are generated for the title and company.
    """
    if not job_title or not job_title.strip():
        raise InvalidInputError("Job title is required")
    if not company or not company.strip():
        raise InvalidInputError("Company is required")

    accomplishments = split_achievements(achievements)
    if not accomplishments:
        try:
            result = await run_json_task(
                client, build_achievements_request(job_title, company, description), ACHIEVEMENTS_TASK
            )
        except ClassifiedError as e:
            raise GenerationError("Achievement generation", e) from e
        accomplishments = result.record["achievements"]

    resume = await structure_resume(client, resume_text)
    entry = {
        "company": company.strip(),
        "role": job_title.strip(),
        "date_range": date_range,
        "accomplishments": accomplishments,
    }
    resume["Work Experience"] = [entry] + resume["Work Experience"]
    logger.info("Work experience added", company=entry["company"], accomplishments=len(accomplishments))
    return {"resume": resume, "added_entry": entry}


# =============================================================================
# Resume creation
# =============================================================================


def _split_list(text: str | None) -> list[str]:
    if not text:
        return []
    return [item.strip() for item in re.split(r"[,\n]", text) if item.strip()]


def _has_text(entry: dict[str, Any], *keys: str) -> bool:
    return any(isinstance(entry.get(key), str) and entry[key].strip() for key in keys)


async def create_resume(
    client: CompletionClient,
    job_description: str,
    work_experience: list[dict[str, str]],
    current_summary: str | None = None,
    education: list[dict[str, str]] | None = None,
    projects: list[dict[str, str]] | None = None,
    certifications: str | None = None,
    licenses: str | None = None,
    contact_details: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build a resume from scratch for a job.

    The model writes the summary, skills and per-role achievements. Employers,
    titles and dates come from ``work_experience`` unchanged; education,
    projects, certifications and licenses are carried over as supplied.

    Raises:
        InvalidInputError: Without a job description or a complete work entry.
        GenerationError: When no summary or achievements came back.
    """
    if not job_description or not job_description.strip():
        raise InvalidInputError("Job description is required")
    roles = [
        {key: entry[key].strip() for key in ("company", "title", "date_range")}
        for entry in work_experience or []
        if all(_has_text(entry, key) for key in ("company", "title", "date_range"))
    ]
    if not roles:
        raise InvalidInputError(
            "At least one work experience with company, title and date range is required"
        )
    schools = [entry for entry in education or [] if _has_text(entry, "institution", "degree")]
    built_projects = [entry for entry in projects or [] if _has_text(entry, "title", "description")]

    request = build_create_resume_request(
        job_description, roles, current_summary, schools, built_projects, certifications, licenses
    )
    try:
        result = await run_json_task(client, request, CREATE_RESUME_TASK)
    except ClassifiedError as e:
        raise GenerationError("Resume creation", e) from e

    generated = result.record["work_experience"]
    entries = []
    for index, role in enumerate(roles):
        achievements = generated[index]["achievements"] if index < len(generated) else []
        entries.append(
            {
                "company": role["company"],
                "title": role["title"],
                "dates": role["date_range"],
                "achievements": achievements,
            }
        )

    resume = {
        "summary": result.record["summary"],
        "skills": result.record["skills"],
        "work_experience": entries,
        "education": [
            {
                "institution": (entry.get("institution") or "").strip(),
                "degree": (entry.get("degree") or "").strip(),
                "graduation_date": (entry.get("graduation_date") or "").strip(),
            }
            for entry in schools
        ],
        "projects": [
            {
                "title": (entry.get("title") or "").strip(),
                "description": (entry.get("description") or "").strip(),
                "technologies": _split_list(entry.get("technologies")),
            }
            for entry in built_projects
        ],
        "certifications": _split_list(certifications) + _split_list(licenses),
        "contact_details": normalize(contact_details or {}, CONTACT_DETAILS),
    }
    logger.info(
        "Resume created",
        work_entries=len(entries),
        skills=len(resume["skills"]["technical_skills"]),
        used_fallback=result.used_fallback,
    )
    return resume


# =============================================================================
# Contact details
# =============================================================================


async def extract_contact_details(client: CompletionClient, resume_text: str) -> dict[str, str]:
    """Find the candidate's contact details in resume text.

    Patterns run first. The model is asked only when they found fewer than
    three fields or no location, and only fills fields the patterns missed.
    A failed or unavailable model call leaves the pattern result as is.
    """
    if not resume_text or not resume_text.strip():
        raise InvalidInputError("Resume text is required")

    found = contact_details_from_text(resume_text)
    details = normalize(found, CONTACT_DETAILS)
    if len(found) >= MIN_CONTACT_FIELDS and "location" in found:
        return details
    if not client.is_configured:
        logger.info("Contact details from patterns only", fields=len(found))
        return details

    request = build_contact_details_request(resume_text[:MAX_SEGMENT_INPUT_CHARS])
    try:
        result = await run_json_task(client, request, CONTACT_TASK)
    except ClassifiedError as e:
        logger.warning("Contact extraction failed, using pattern matches", error=str(e))
        return details

    return {key: details[key] or result.record[key].strip() for key in CONTACT_FIELDS}
