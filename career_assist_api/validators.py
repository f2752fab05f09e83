"""Task-specific checks applied after normalization.

A validator takes the normalized record and raises ``ClassifiedError`` when
the record cannot be handed to the caller. Validators never patch records
with placeholder content.
"""

from collections.abc import Callable
from typing import Any

from career_assist_api.errors import ClassifiedError, ErrorKind
from career_assist_api.records import QUESTION_CATEGORIES

Validator = Callable[[Any], None]


def _has_any(record: dict[str, Any], keys: tuple[str, ...]) -> bool:
    return any(record.get(key) for key in keys)


def accept_any(record: Any) -> None:
    pass


def require_mapping(record: Any) -> None:
    if not isinstance(record, dict):
        raise ClassifiedError(ErrorKind.SCHEMA_INVALID, "Structured record is not an object")


def validate_structured_resume(record: Any) -> None:
    require_mapping(record)


def validate_interview_questions(record: dict[str, Any]) -> None:
    if not _has_any(record, QUESTION_CATEGORIES):
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "No interview questions were generated")


def validate_simulation_feedback(record: dict[str, Any]) -> None:
    if not record.get("answer_feedback"):
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "No per-answer feedback was generated")
    score = record.get("overall_evaluation", {}).get("score", 0)
    if score <= 0:
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "Overall evaluation has no usable score")


def validate_answer_tips(record: dict[str, Any]) -> None:
    lists = ("answer_structure", "key_points", "skills_to_emphasize", "mistakes_to_avoid")
    if not _has_any(record, lists) and not record.get("example_answer"):
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "Answer tips are empty")


def validate_resume_score(record: dict[str, Any]) -> None:
    if record.get("match_score", 0) <= 0 and not _has_any(record, ("matched_skills", "missing_skills")):
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "Score response holds no score and no skills")


def validate_parsed_resume(record: dict[str, Any]) -> None:
    if len(record.get("resume_summary", "")) < 10:
        raise ClassifiedError(
            ErrorKind.EMPTY_RESULT,
            "Resume could not be processed effectively; try a different format",
        )


def validate_achievements(record: dict[str, Any]) -> None:
    if not record.get("achievements"):
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "No achievements were generated")


def validate_created_resume(record: dict[str, Any]) -> None:
    generated = any(entry.get("achievements") for entry in record.get("work_experience", []))
    if not record.get("summary") and not generated:
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "No resume content was generated")


def validate_skills(record: dict[str, Any]) -> None:
    if not record.get("skills"):
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "No skills were found")


MIN_OPTIMIZED_TEXT_CHARS = 100


def validate_optimized_text(text: str) -> None:
    if len(text.strip()) < MIN_OPTIMIZED_TEXT_CHARS:
        raise ClassifiedError(ErrorKind.EMPTY_RESULT, "Optimized resume has insufficient content")
