"""Interview preparation: question sets, answer feedback and answer tips."""

import asyncio
from dataclasses import dataclass
from typing import Any

import structlog

from career_assist_api.completion_client import CompletionClient
from career_assist_api.config import get_settings
from career_assist_api.errors import ClassifiedError, ErrorKind, GenerationError, InvalidInputError
from career_assist_api.pipeline import TaskSpec, run_json_task
from career_assist_api.prompts import (
    MAX_QUESTION_COUNT,
    MIN_QUESTION_COUNT,
    build_answer_tips_request,
    build_interview_questions_request,
    build_simulation_request,
)
from career_assist_api.records import (
    ANSWER_TIPS,
    INTERVIEW_QUESTIONS,
    QUESTION_CATEGORIES,
    SIMULATION_FEEDBACK,
)
from career_assist_api.resume_service import extract_job_requirements, structure_resume
from career_assist_api.text_prep import truncate_text
from career_assist_api.validators import (
    validate_answer_tips,
    validate_interview_questions,
    validate_simulation_feedback,
)

logger = structlog.get_logger()

MIN_RESUME_CHARS = 50

QUESTIONS_TASK = TaskSpec(
    name="interview_questions",
    schema=INTERVIEW_QUESTIONS,
    validator=validate_interview_questions,
)
SIMULATION_TASK = TaskSpec(
    name="interview_simulation",
    schema=SIMULATION_FEEDBACK,
    validator=validate_simulation_feedback,
)
ANSWER_TIPS_TASK = TaskSpec(
    name="answer_tips",
    schema=ANSWER_TIPS,
    validator=validate_answer_tips,
)


@dataclass
class AnswerTipsOutcome:
    """Result for one question of a batch: tips or the error that prevented them."""

    question: str
    answer_tips: dict[str, Any] | None = None
    error: ClassifiedError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _structure_optional_resume(client: CompletionClient, resume_text: str | None) -> dict[str, Any] | None:
    if not resume_text or len(resume_text.strip()) < MIN_RESUME_CHARS:
        return None
    try:
        return await structure_resume(client, truncate_text(resume_text))
    except GenerationError as e:
        if e.kind is ErrorKind.UPSTREAM_UNAVAILABLE:
            raise
        logger.warning("Resume could not be structured, generating generic questions", error=str(e))
        return None


async def generate_interview_questions(
    client: CompletionClient,
    job_description: str,
    question_count: int = 5,
    resume_text: str | None = None,
) -> dict[str, Any]:
    """Generate categorized interview questions, tailored to a resume when given.

    Returns:
        ``{"questions": InterviewQuestionSet, "metadata": {...}}``

    Raises:
        InvalidInputError: On a missing job description or bad question count.
        GenerationError: When no questions could be produced.
    """
    if not job_description or not job_description.strip():
        raise InvalidInputError("Job description is required")
    if not MIN_QUESTION_COUNT <= question_count <= MAX_QUESTION_COUNT:
        raise InvalidInputError(
            f"Question count must be between {MIN_QUESTION_COUNT} and {MAX_QUESTION_COUNT}"
        )

    resume = await _structure_optional_resume(client, resume_text)
    requirements = await extract_job_requirements(client, job_description)
    request = build_interview_questions_request(job_description, requirements, question_count, resume)

    try:
        result = await run_json_task(client, request, QUESTIONS_TASK)
    except ClassifiedError as e:
        raise GenerationError("Interview question generation", e) from e

    questions = result.record
    logger.info(
        "Interview questions generated",
        total=sum(len(questions[c]) for c in QUESTION_CATEGORIES),
        resume_analyzed=resume is not None,
        used_fallback=result.used_fallback,
    )
    return {
        "questions": questions,
        "metadata": {
            "job_analyzed": True,
            "resume_analyzed": resume is not None,
            "question_count": question_count,
            "categories": [c for c in QUESTION_CATEGORIES if questions[c]],
        },
    }


async def simulate_interview(
    client: CompletionClient,
    job_description: str,
    questions: list[str],
    answers: list[str],
) -> dict[str, Any]:
    """Evaluate a set of interview answers.

    Raises:
        InvalidInputError: On missing inputs or a question/answer count mismatch.
        GenerationError: When no usable feedback came back.
    """
    if not job_description or not job_description.strip() or not questions or not answers:
        raise InvalidInputError("Job description, questions, and answers are required")
    if len(questions) != len(answers):
        raise InvalidInputError("Question and answer count mismatch")

    requirements = await extract_job_requirements(client, job_description)
    qa_pairs = [{"question": q.strip(), "answer": a.strip()} for q, a in zip(questions, answers)]
    request = build_simulation_request(job_description, requirements, qa_pairs)

    try:
        result = await run_json_task(client, request, SIMULATION_TASK)
    except ClassifiedError as e:
        raise GenerationError("Interview simulation", e) from e

    feedback = result.record
    for i, item in enumerate(feedback["answer_feedback"]):
        if not item["question"] and i < len(qa_pairs):
            item["question"] = qa_pairs[i]["question"]

    logger.info(
        "Interview simulated",
        answers=len(qa_pairs),
        feedback_items=len(feedback["answer_feedback"]),
        overall_score=feedback["overall_evaluation"]["score"],
    )
    return feedback


async def generate_answer_tips(client: CompletionClient, question: str, job_description: str) -> dict[str, Any]:
    """Generate tips for answering one interview question."""
    request = build_answer_tips_request(question, job_description)
    try:
        result = await run_json_task(client, request, ANSWER_TIPS_TASK)
    except ClassifiedError as e:
        raise GenerationError("Answer tips generation", e) from e
    return result.record


async def generate_answer_tips_batch(
    client: CompletionClient,
    questions: list[str],
    job_description: str,
    concurrency: int | None = None,
) -> list[AnswerTipsOutcome]:
    """Generate answer tips for many questions with a fixed-size worker pool.

    Each question succeeds or fails on its own; results keep input order.
    """
    if not questions:
        raise InvalidInputError("At least one question is required")
    if any(not q or not q.strip() for q in questions):
        raise InvalidInputError("Questions must not be empty")
    if not job_description or not job_description.strip():
        raise InvalidInputError("Job description is required")

    limit = concurrency or get_settings().answer_tips_concurrency
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _one(question: str) -> AnswerTipsOutcome:
        async with semaphore:
            try:
                tips = await generate_answer_tips(client, question, job_description)
            except ClassifiedError as e:
                return AnswerTipsOutcome(question=question, error=e)
            return AnswerTipsOutcome(question=question, answer_tips=tips)

    outcomes = await asyncio.gather(*(_one(q) for q in questions))
    logger.info(
        "Answer tips batch finished",
        questions=len(questions),
        failed=sum(1 for o in outcomes if not o.ok),
        concurrency=limit,
    )
    return list(outcomes)
