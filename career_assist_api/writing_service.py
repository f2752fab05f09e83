"""Long-form writing: cover letters and personal statements."""

from datetime import datetime, timezone
from typing import Any

import structlog

from career_assist_api.completion_client import CompletionClient
from career_assist_api.errors import ClassifiedError, GenerationError, InvalidInputError
from career_assist_api.pipeline import run_text_task
from career_assist_api.prompts import (
    DEFAULT_STATEMENT_WORDS,
    MAX_STATEMENT_WORDS,
    MIN_STATEMENT_WORDS,
    build_cover_letter_request,
    build_personal_statement_request,
)
from career_assist_api.resume_service import extract_job_requirements, structure_resume
from career_assist_api.text_prep import word_count

logger = structlog.get_logger()


def _written(text: str, user_id: str | None) -> dict[str, Any]:
    return {
        "created_at": datetime.now(timezone.utc).isoformat(),
        "word_count": word_count(text),
        "is_tailored": True,
        "user_id": user_id,
    }


async def generate_cover_letter(
    client: CompletionClient,
    job_description: str,
    resume_text: str,
    user_id: str | None = None,
) -> dict[str, Any]:
    """Write a cover letter tailored to the job and the candidate's resume.

    Raises:
        InvalidInputError: On a missing job description or resume.
        GenerationError: When no letter could be produced.
    """
    if not job_description or not job_description.strip():
        raise InvalidInputError("Job description is required")
    if not resume_text or not resume_text.strip():
        raise InvalidInputError("Resume text is required")

    resume = await structure_resume(client, resume_text)
    requirements = await extract_job_requirements(client, job_description)
    try:
        result = await run_text_task(client, build_cover_letter_request(job_description, resume, requirements))
    except ClassifiedError as e:
        raise GenerationError("Cover letter generation", e) from e

    letter = result.plain_text
    logger.info("Cover letter generated", words=word_count(letter), user_id=user_id)
    return {"cover_letter": letter, **_written(letter, user_id)}


async def generate_personal_statement(
    client: CompletionClient,
    job_description: str,
    resume_text: str,
    target_word_count: int = DEFAULT_STATEMENT_WORDS,
    purpose: str | None = None,
    user_id: str | None = None,
) -> dict[str, Any]:
    """Write a personal statement of roughly ``target_word_count`` words."""
    if not job_description or not job_description.strip():
        raise InvalidInputError("Job description is required")
    if not resume_text or not resume_text.strip():
        raise InvalidInputError("Resume text is required")
    if not MIN_STATEMENT_WORDS <= target_word_count <= MAX_STATEMENT_WORDS:
        raise InvalidInputError(
            f"Target word count must be between {MIN_STATEMENT_WORDS} and {MAX_STATEMENT_WORDS}"
        )

    resume = await structure_resume(client, resume_text)
    request = build_personal_statement_request(job_description, resume, target_word_count, purpose)
    try:
        result = await run_text_task(client, request)
    except ClassifiedError as e:
        raise GenerationError("Personal statement generation", e) from e

    statement = result.plain_text
    logger.info(
        "Personal statement generated",
        words=word_count(statement),
        target=target_word_count,
        truncated=result.finish_reason == "length",
    )
    return {"personal_statement": statement, **_written(statement, user_id)}
