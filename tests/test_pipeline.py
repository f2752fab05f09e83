"""Tests for the normalization pipeline."""

import json

import pytest
from prometheus_client import REGISTRY

from career_assist_api.completion_client import CompletionError, CompletionRequest, CompletionResult
from career_assist_api.errors import ClassifiedError, ErrorKind
from career_assist_api.pipeline import Stage, TaskSpec, _Run, run_json_task, run_text_task
from career_assist_api.records import ACHIEVEMENTS, ANSWER_TIPS, OPTIMIZED_RESUME, RESUME_SCORE
from career_assist_api.validators import validate_answer_tips, validate_optimized_text, validate_resume_score

TIPS_SPEC = TaskSpec(name="answer_tips", schema=ANSWER_TIPS, validator=validate_answer_tips)
SCORE_SPEC = TaskSpec(name="resume_score", schema=RESUME_SCORE, validator=validate_resume_score)

TIPS = {
    "answer_structure": ["Situation", "Task", "Action", "Result"],
    "key_points": ["Ownership"],
    "skills_to_emphasize": ["Python"],
    "mistakes_to_avoid": ["Rambling"],
    "example_answer": "At Acme I...",
}


def _request(task: str, output_mode: str = "json_object") -> CompletionRequest:
    return CompletionRequest(task=task, system_prompt="system", user_prompt="user", output_mode=output_mode)


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestRunJsonTask:
    """End-to-end runs of structured tasks."""

    @pytest.mark.asyncio
    async def test_clean_json(self, fake_client) -> None:
        client = fake_client({"answer_tips": json.dumps(TIPS)})
        result = await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert result.record == TIPS
        assert result.used_fallback is False
        assert result.finish_reason == "stop"
        assert result.tokens_used == 42

    @pytest.mark.asyncio
    async def test_fenced_json(self, fake_client) -> None:
        client = fake_client({"answer_tips": "```json\n" + json.dumps(TIPS) + "\n```"})
        result = await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert result.record == TIPS

    @pytest.mark.asyncio
    async def test_missing_keys_filled(self, fake_client) -> None:
        client = fake_client({"answer_tips": '{"example_answer": "Short answer", "extra": 1}'})
        result = await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert result.record == {
            "answer_structure": [],
            "key_points": [],
            "skills_to_emphasize": [],
            "mistakes_to_avoid": [],
            "example_answer": "Short answer",
        }

    @pytest.mark.asyncio
    async def test_truncated_response_recovered(self, fake_client) -> None:
        truncated = CompletionResult(
            text='{"match_score": 85, "matched_skills": ["Python"], "missing_sk',
            finish_reason="length",
            tokens_used=1500,
        )
        client = fake_client({"resume_score": truncated})
        before = _sample("llm_truncated_total", {"task": "resume_score"})
        fallback_before = _sample("pipeline_fallback_total", {"task": "resume_score"})

        result = await run_json_task(client, _request("resume_score"), SCORE_SPEC)

        assert result.used_fallback is True
        assert result.finish_reason == "length"
        assert result.record["match_score"] == 85
        assert result.record["matched_skills"] == ["Python"]
        assert result.record["missing_skills"] == []
        assert _sample("llm_truncated_total", {"task": "resume_score"}) == before + 1
        assert _sample("pipeline_fallback_total", {"task": "resume_score"}) == fallback_before + 1

    @pytest.mark.asyncio
    async def test_unparseable_response(self, fake_client) -> None:
        client = fake_client({"answer_tips": "I'm sorry, I can't help with that."})
        with pytest.raises(ClassifiedError) as exc_info:
            await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert exc_info.value.kind is ErrorKind.PARSE_FAILURE
        assert exc_info.value.excerpt == "I'm sorry, I can't help with that."

    @pytest.mark.asyncio
    async def test_excerpt_bounded(self, fake_client, mock_settings) -> None:
        mock_settings(error_excerpt_chars="50")
        client = fake_client({"answer_tips": "no json " * 100})
        with pytest.raises(ClassifiedError) as exc_info:
            await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert len(exc_info.value.excerpt) == 53

    @pytest.mark.parametrize("text", [None, "", "   \n"])
    @pytest.mark.asyncio
    async def test_empty_response(self, fake_client, text) -> None:
        client = fake_client({"answer_tips": text})
        with pytest.raises(ClassifiedError) as exc_info:
            await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert exc_info.value.kind is ErrorKind.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_unconfigured_client(self, fake_client) -> None:
        client = fake_client({"answer_tips": json.dumps(TIPS)}, configured=False)
        with pytest.raises(ClassifiedError) as exc_info:
            await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert exc_info.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE
        client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_completion_error(self, fake_client) -> None:
        client = fake_client({"answer_tips": CompletionError("API error (500): boom")})
        with pytest.raises(ClassifiedError) as exc_info:
            await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert exc_info.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE
        assert "boom" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_validator_failure_carries_excerpt(self, fake_client) -> None:
        client = fake_client({"answer_tips": '{"key_points": []}'})
        with pytest.raises(ClassifiedError) as exc_info:
            await run_json_task(client, _request("answer_tips"), TIPS_SPEC)
        assert exc_info.value.kind is ErrorKind.EMPTY_RESULT
        assert exc_info.value.excerpt == '{"key_points": []}'

    @pytest.mark.asyncio
    async def test_top_level_list_wrapped(self, fake_client) -> None:
        spec = TaskSpec(name="experience_achievements", schema=ACHIEVEMENTS, list_key="achievements")
        client = fake_client({"experience_achievements": '["Shipped A", "Shipped B"]'})
        result = await run_json_task(client, _request("experience_achievements"), spec)
        assert result.record == {"achievements": ["Shipped A", "Shipped B"]}

    @pytest.mark.asyncio
    async def test_text_with_embedded_json(self, fake_client) -> None:
        plain = "PROFESSIONAL SUMMARY\n" + "Engineer with a long record of shipping. " * 5
        raw = plain + '\n```json\n{"summary": "Engineer", "certifications": ["CKA"]}\n```'
        spec = TaskSpec(name="resume_optimize", schema=OPTIMIZED_RESUME, text_validator=validate_optimized_text)
        client = fake_client({"resume_optimize": raw})

        result = await run_json_task(client, _request("resume_optimize", "text_with_json"), spec)

        assert result.plain_text == plain.strip()
        assert result.record["summary"] == "Engineer"
        assert result.record["certifications"] == ["CKA"]
        assert result.used_fallback is False

    @pytest.mark.asyncio
    async def test_text_validator_rejects_short_text(self, fake_client) -> None:
        spec = TaskSpec(name="resume_optimize", schema=OPTIMIZED_RESUME, text_validator=validate_optimized_text)
        client = fake_client({"resume_optimize": 'Too short\n```json\n{"summary": "x"}\n```'})
        with pytest.raises(ClassifiedError) as exc_info:
            await run_json_task(client, _request("resume_optimize", "text_with_json"), spec)
        assert exc_info.value.kind is ErrorKind.EMPTY_RESULT


class TestRunTextTask:
    """Runs of plain-text tasks."""

    @pytest.mark.asyncio
    async def test_text_returned_without_fences(self, fake_client) -> None:
        client = fake_client({"cover_letter": "```\nDear Hiring Manager,\n\nThank you.\n```"})
        result = await run_text_task(client, _request("cover_letter", "text"))
        assert result.plain_text == "Dear Hiring Manager,\n\nThank you."

    @pytest.mark.asyncio
    async def test_markup_only_is_empty(self, fake_client) -> None:
        client = fake_client({"cover_letter": "```\n```"})
        with pytest.raises(ClassifiedError) as exc_info:
            await run_text_task(client, _request("cover_letter", "text"))
        assert exc_info.value.kind is ErrorKind.EMPTY_RESPONSE


class TestStages:
    """The run tracker only moves forward."""

    def test_forward_progress(self) -> None:
        run = _Run(task="t")
        run.advance(Stage.SENT)
        run.advance(Stage.SANITIZED)
        assert run.history == [Stage.BUILT, Stage.SENT, Stage.SANITIZED]

    def test_backward_move_rejected(self) -> None:
        run = _Run(task="t")
        run.advance(Stage.DECODED)
        with pytest.raises(RuntimeError):
            run.advance(Stage.SANITIZED)

    def test_repeat_rejected(self) -> None:
        run = _Run(task="t")
        run.advance(Stage.SENT)
        with pytest.raises(RuntimeError):
            run.advance(Stage.SENT)
