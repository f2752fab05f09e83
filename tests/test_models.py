"""Tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from career_assist_api.models import (
    AnswerTipsRequest,
    HealthResponse,
    InterviewQuestionsRequest,
    PersonalStatementRequest,
    ResumeScoreResponse,
    StructuredResume,
)


class TestStructuredResume:
    """Tests for StructuredResume."""

    def test_accepts_display_names(self) -> None:
        resume = StructuredResume.model_validate(
            {"Summary": "Engineer", "Work Experience": [{"company": "Acme", "role": "Dev"}]}
        )
        assert resume.summary == "Engineer"
        assert resume.work_experience[0].company == "Acme"
        assert resume.work_experience[0].accomplishments == []

    def test_accepts_field_names(self) -> None:
        resume = StructuredResume(summary="Engineer", technical_skills=["Python"])
        assert resume.model_dump(by_alias=True)["Technical Skills"] == ["Python"]


class TestRequests:
    """Tests for request models."""

    def test_question_count_default(self) -> None:
        assert InterviewQuestionsRequest(job_description="Engineer").question_count == 5

    @pytest.mark.parametrize("count", [0, 21])
    def test_question_count_bounds(self, count: int) -> None:
        with pytest.raises(ValidationError):
            InterviewQuestionsRequest(job_description="Engineer", question_count=count)

    def test_answer_tips_requires_questions(self) -> None:
        with pytest.raises(ValidationError):
            AnswerTipsRequest(job_description="Engineer", questions=[])

    def test_statement_word_count_default(self) -> None:
        request = PersonalStatementRequest(job_description="Role", resume_text="Resume")
        assert request.target_word_count == 600


class TestResponses:
    """Tests for response models."""

    def test_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ResumeScoreResponse(
                match_score=120,
                match_percentage=120,
                matched_skills=[],
                missing_skills=[],
                recommendations=[],
                category_scores={
                    "skills_match": 0,
                    "experience_relevance": 0,
                    "education_certifications": 0,
                    "additional_factors": 0,
                },
            )

    def test_health_status_values(self) -> None:
        with pytest.raises(ValidationError):
            HealthResponse(status="unknown", llm_configured=False, model="m", version="0.1.0")
