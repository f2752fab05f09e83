"""Tests for FastAPI main application."""

import json

import pytest
from fastapi.testclient import TestClient

from career_assist_api.completion_client import CompletionResult
from career_assist_api.main import app, get_completion_client

JOB = (
    "We are hiring a senior backend engineer with Python and Kubernetes experience "
    "to build data services. Go is a plus."
)
RESUME = "SUMMARY\nBackend engineer with eight years of Python experience.\n"
TIPS = {
    "answer_structure": ["Situation", "Action", "Result"],
    "key_points": ["Ownership"],
    "skills_to_emphasize": ["Python"],
    "mistakes_to_avoid": ["Rambling"],
    "example_answer": "At Acme I...",
}


@pytest.fixture
def client():
    """Create test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def override_client(fake_client):
    """Replace the completion client dependency with a fake."""

    def _override(replies=None, configured=True):
        fake = fake_client(replies, configured=configured)
        app.dependency_overrides[get_completion_client] = lambda: fake
        return fake

    yield _override
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check_unconfigured(self, client):
        """Without a key the service reports itself degraded."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "degraded"
        assert data["llm_configured"] is False
        assert "version" in data

    def test_health_check_v1(self, client, override_client):
        """Test v1 health endpoint."""
        override_client()
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["model"] == "test-model"

    def test_trace_id_echoed(self, client):
        response = client.get("/health", headers={"X-Trace-ID": "trace-123"})
        assert response.headers["X-Trace-ID"] == "trace-123"


class TestErrorMapping:
    """Classified failures map to HTTP statuses."""

    def test_upstream_unavailable_is_503(self, client):
        response = client.post("/api/v1/resume/score", json={"resume_text": RESUME, "job_description": JOB})
        assert response.status_code == 503
        assert response.json()["kind"] == "upstream_unavailable"

    def test_parse_failure_is_502(self, client, override_client):
        override_client({"answer_tips": "garbage"})
        response = client.post("/api/v1/interview/answer-tips", json={"job_description": JOB, "questions": ["Q1"]})
        assert response.status_code == 502
        assert response.json()["kind"] == "parse_failure"

    def test_invalid_input_is_400(self, client, override_client):
        override_client()
        response = client.post("/api/v1/resume/score", json={"resume_text": RESUME, "job_description": "Engineer"})
        assert response.status_code == 400
        assert "too short" in response.json()["detail"]

    def test_request_validation_is_422(self, client, override_client):
        override_client()
        response = client.post("/api/v1/interview/questions", json={"job_description": JOB, "question_count": 50})
        assert response.status_code == 422


class TestResumeEndpoints:
    """Tests for resume endpoints."""

    def test_structure_uses_display_names(self, client, override_client):
        override_client(
            {
                "resume_sections": "not json",
                "resume_structure": json.dumps(
                    {
                        "Summary": "Backend engineer",
                        "Work Experience": [{"company": "Acme", "title": "Engineer", "bullets": ["Shipped"]}],
                    }
                ),
            }
        )
        response = client.post("/api/v1/resume/structure", json={"resume_text": RESUME})
        assert response.status_code == 200

        data = response.json()
        assert data["Summary"] == "Backend engineer"
        assert data["Work Experience"][0]["role"] == "Engineer"
        assert data["Work Experience"][0]["accomplishments"] == ["Shipped"]
        assert data["Technical Skills"] == []

    def test_add_experience(self, client, override_client):
        override_client({"resume_sections": "not json", "resume_structure": json.dumps({"Summary": "Engineer"})})
        response = client.post(
            "/api/v1/resume/add-experience",
            json={
                "resume_text": RESUME,
                "job_title": "Staff Engineer",
                "company": "Beta LLC",
                "achievements": "Led the platform team\nCut costs 30%",
            },
        )
        assert response.status_code == 200
        assert response.json()["added_entry"]["accomplishments"] == ["Led the platform team", "Cut costs 30%"]

    def test_create_resume(self, client, override_client):
        override_client(
            {
                "resume_create": json.dumps(
                    {
                        "summary": "Data engineer with seven years of pipeline work.",
                        "skills": {"technical_skills": ["Python"], "soft_skills": ["Mentoring"]},
                        "work_experience": [{"achievements": ["Built Airflow DAGs"]}],
                    }
                )
            }
        )
        response = client.post(
            "/api/v1/resume/create",
            json={
                "job_description": JOB,
                "work_experience": [{"company": "Acme Corp", "title": "Data Engineer", "date_range": "2020 - Present"}],
                "certifications": "CKA",
                "contact_details": {"name": "Jane Doe"},
            },
        )
        assert response.status_code == 200

        data = response.json()
        assert data["work_experience"] == [
            {
                "company": "Acme Corp",
                "title": "Data Engineer",
                "dates": "2020 - Present",
                "achievements": ["Built Airflow DAGs"],
            }
        ]
        assert data["skills"] == {"technical_skills": ["Python"], "soft_skills": ["Mentoring"]}
        assert data["certifications"] == ["CKA"]
        assert data["contact_details"]["name"] == "Jane Doe"

    def test_create_resume_incomplete_role(self, client, override_client):
        override_client()
        response = client.post(
            "/api/v1/resume/create",
            json={"job_description": JOB, "work_experience": [{"company": "Acme Corp"}]},
        )
        assert response.status_code == 400

    def test_contact_details(self, client, override_client):
        override_client({"contact_details": json.dumps({"location": "Denver, CO", "phone": "303-555-0188"})})
        response = client.post(
            "/api/v1/resume/contact-details",
            json={"resume_text": "Jane Doe\njane@example.com\ngithub.com/janedoe\n"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "name": "Jane Doe",
            "email": "jane@example.com",
            "phone": "303-555-0188",
            "linkedin": "",
            "github": "github.com/janedoe",
            "location": "Denver, CO",
        }


class TestInterviewEndpoints:
    """Tests for interview endpoints."""

    def test_questions(self, client, override_client):
        override_client({"interview_questions": json.dumps({"technical_questions": ["How do you test?"]})})
        response = client.post("/api/v1/interview/questions", json={"job_description": JOB, "question_count": 2})
        assert response.status_code == 200

        data = response.json()
        assert data["questions"]["technical_questions"] == ["How do you test?"]
        assert data["metadata"]["categories"] == ["technical_questions"]

    def test_answer_tips_partial_failure(self, client, override_client):
        fake = override_client()
        replies = {"Q-bad": "garbage"}

        async def _complete(request):
            text = next((v for k, v in replies.items() if k in request.user_prompt), json.dumps(TIPS))
            return CompletionResult(text=text, finish_reason="stop")

        fake.complete.side_effect = _complete
        response = client.post(
            "/api/v1/interview/answer-tips",
            json={"job_description": JOB, "questions": ["Q-good", "Q-bad"]},
        )
        assert response.status_code == 200

        results = response.json()["results"]
        assert [r["status"] for r in results] == ["ok", "error"]
        assert results[0]["answer_tips"]["key_points"] == ["Ownership"]
        assert results[1]["error_kind"] == "parse_failure"

    def test_simulate(self, client, override_client):
        override_client(
            {
                "interview_simulation": json.dumps(
                    {
                        "answer_feedback": [{"question": "Q1", "score": 8, "better_answer": "B"}],
                        "overall_evaluation": {"score": 8, "recommendation": "Hire"},
                    }
                )
            }
        )
        response = client.post(
            "/api/v1/interview/simulate",
            json={"job_description": JOB, "questions": ["Q1"], "answers": ["A1"]},
        )
        assert response.status_code == 200
        assert response.json()["overall_evaluation"]["recommendation"] == "Hire"


class TestWritingEndpoints:
    """Tests for writing endpoints."""

    def test_cover_letter(self, client, override_client):
        override_client(
            {
                "resume_sections": "not json",
                "resume_structure": json.dumps({"Summary": "Engineer"}),
                "cover_letter": "Dear Hiring Manager,\n\nThank you.",
            }
        )
        response = client.post(
            "/api/v1/cover-letter",
            json={"job_description": JOB, "resume_text": RESUME, "user_id": "u1"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["cover_letter"] == "Dear Hiring Manager,\n\nThank you."
        assert data["user_id"] == "u1"
        assert data["word_count"] == 5

    def test_personal_statement_bounds(self, client, override_client):
        override_client()
        response = client.post(
            "/api/v1/personal-statement",
            json={"job_description": JOB, "resume_text": RESUME, "target_word_count": 5000},
        )
        assert response.status_code == 422
