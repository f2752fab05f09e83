"""Tests for post-normalization validators."""

import pytest

from career_assist_api.errors import ClassifiedError, ErrorKind
from career_assist_api.records import (
    ANSWER_TIPS,
    CREATED_RESUME,
    INTERVIEW_QUESTIONS,
    RESUME_SCORE,
    SIMULATION_FEEDBACK,
)
from career_assist_api.schema import normalize
from career_assist_api.validators import (
    accept_any,
    validate_achievements,
    validate_answer_tips,
    validate_created_resume,
    validate_interview_questions,
    validate_optimized_text,
    validate_parsed_resume,
    validate_resume_score,
    validate_simulation_feedback,
    validate_structured_resume,
)


def _kind(validator, record) -> ErrorKind:
    with pytest.raises(ClassifiedError) as exc_info:
        validator(record)
    return exc_info.value.kind


class TestValidators:
    """Each validator accepts usable records and classifies unusable ones."""

    def test_accept_any(self) -> None:
        accept_any({})
        accept_any(None)

    def test_structured_resume_requires_mapping(self) -> None:
        validate_structured_resume({"Summary": ""})
        assert _kind(validate_structured_resume, ["not", "a", "dict"]) is ErrorKind.SCHEMA_INVALID

    def test_interview_questions(self) -> None:
        record = normalize({"behavioral_questions": ["Tell me about a conflict."]}, INTERVIEW_QUESTIONS)
        validate_interview_questions(record)
        assert _kind(validate_interview_questions, normalize({}, INTERVIEW_QUESTIONS)) is ErrorKind.EMPTY_RESULT

    def test_simulation_feedback(self) -> None:
        good = normalize(
            {"answer_feedback": [{"question": "Q", "score": 6}], "overall_evaluation": {"score": 6}},
            SIMULATION_FEEDBACK,
        )
        validate_simulation_feedback(good)

        no_items = normalize({"overall_evaluation": {"score": 6}}, SIMULATION_FEEDBACK)
        assert _kind(validate_simulation_feedback, no_items) is ErrorKind.EMPTY_RESULT

        zero_score = normalize({"answer_feedback": [{"question": "Q"}]}, SIMULATION_FEEDBACK)
        assert _kind(validate_simulation_feedback, zero_score) is ErrorKind.EMPTY_RESULT

    def test_answer_tips(self) -> None:
        validate_answer_tips(normalize({"example_answer": "I would..."}, ANSWER_TIPS))
        assert _kind(validate_answer_tips, normalize({}, ANSWER_TIPS)) is ErrorKind.EMPTY_RESULT

    def test_resume_score(self) -> None:
        validate_resume_score(normalize({"match_score": 0, "missing_skills": ["Go"]}, RESUME_SCORE))
        validate_resume_score(normalize({"match_score": 55}, RESUME_SCORE))
        assert _kind(validate_resume_score, normalize({}, RESUME_SCORE)) is ErrorKind.EMPTY_RESULT

    def test_parsed_resume(self) -> None:
        validate_parsed_resume({"resume_summary": "Backend engineer, ten years."})
        assert _kind(validate_parsed_resume, {"resume_summary": "short"}) is ErrorKind.EMPTY_RESULT

    def test_achievements(self) -> None:
        validate_achievements({"achievements": ["Shipped x"]})
        assert _kind(validate_achievements, {"achievements": []}) is ErrorKind.EMPTY_RESULT

    def test_created_resume(self) -> None:
        validate_created_resume(normalize({"summary": "Data engineer"}, CREATED_RESUME))
        validate_created_resume(
            normalize({"work_experience": [{"company": "Acme", "achievements": ["Built x"]}]}, CREATED_RESUME)
        )
        empty = normalize({"work_experience": [{"company": "Acme"}]}, CREATED_RESUME)
        assert _kind(validate_created_resume, empty) is ErrorKind.EMPTY_RESULT

    def test_optimized_text(self) -> None:
        validate_optimized_text("x" * 100)
        assert _kind(validate_optimized_text, "  too short  ") is ErrorKind.EMPTY_RESULT
