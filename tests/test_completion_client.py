"""Tests for the chat-completions client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from career_assist_api.completion_client import (
    CompletionAuthError,
    CompletionClient,
    CompletionError,
    CompletionRateLimitError,
    CompletionRequest,
    CompletionResult,
    CompletionUnavailableError,
)
from career_assist_api.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(llm_api_key="sk-test", **overrides)


def _request(**overrides) -> CompletionRequest:
    fields = {"task": "answer_tips", "system_prompt": "Be helpful", "user_prompt": "Question?"}
    fields.update(overrides)
    return CompletionRequest(**fields)


def _response(status: int, body: dict) -> httpx.Response:
    return httpx.Response(status, json=body, request=httpx.Request("POST", "https://llm.test/chat/completions"))


class TestCompletionClient:
    """Tests for CompletionClient configuration and payloads."""

    def test_init_from_settings(self) -> None:
        client = CompletionClient(_settings(llm_model="gpt-test", llm_max_tokens=1234))
        assert client.model == "gpt-test"
        assert client._max_tokens == 1234

    def test_explicit_values_override_settings(self) -> None:
        client = CompletionClient(_settings(), api_key="sk-other", model="other-model")
        assert client._api_key == "sk-other"
        assert client.model == "other-model"

    def test_is_configured_with_valid_key(self) -> None:
        assert CompletionClient(_settings()).is_configured is True

    def test_is_configured_with_other_provider_key(self) -> None:
        assert CompletionClient(_settings(), api_key="gsk_live_abc").is_configured is True

    def test_is_configured_with_empty_key(self) -> None:
        assert CompletionClient(_settings(), api_key="").is_configured is False

    def test_payload_json_mode(self) -> None:
        client = CompletionClient(_settings())
        payload = client._build_payload(_request(temperature=0.7, max_tokens=2000))
        assert payload["response_format"] == {"type": "json_object"}
        assert payload["max_tokens"] == 2000
        assert payload["temperature"] == 0.7
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]

    @pytest.mark.parametrize("mode", ["text", "text_with_json"])
    def test_payload_text_modes(self, mode: str) -> None:
        client = CompletionClient(_settings())
        payload = client._build_payload(_request(output_mode=mode))
        assert "response_format" not in payload
        assert payload["max_tokens"] == client._max_tokens


class TestComplete:
    """Tests for CompletionClient.complete."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        client = CompletionClient(_settings())
        client._client = MagicMock()
        client._client.post = AsyncMock(
            return_value=_response(
                200,
                {
                    "choices": [{"message": {"content": '{"a": 1}'}, "finish_reason": "stop"}],
                    "usage": {"total_tokens": 321},
                },
            )
        )

        result = await client.complete(_request())

        assert result == CompletionResult(text='{"a": 1}', finish_reason="stop", tokens_used=321)
        args, kwargs = client._client.post.call_args
        assert args[0] == "/chat/completions"
        assert kwargs["json"]["model"] == client.model

    @pytest.mark.asyncio
    async def test_empty_choices(self) -> None:
        client = CompletionClient(_settings())
        client._client = MagicMock()
        client._client.post = AsyncMock(return_value=_response(200, {"choices": []}))

        result = await client.complete(_request())
        assert result.text is None
        assert result.tokens_used == 0

    @pytest.mark.asyncio
    async def test_per_request_timeout(self) -> None:
        client = CompletionClient(_settings())
        client._client = MagicMock()
        client._client.post = AsyncMock(
            return_value=_response(200, {"choices": [{"message": {"content": "x"}, "finish_reason": "stop"}]})
        )

        await client.complete(_request(timeout_seconds=5))
        _, kwargs = client._client.post.call_args
        assert kwargs["timeout"].read == 5

    @pytest.mark.asyncio
    async def test_not_configured(self) -> None:
        client = CompletionClient(_settings(), api_key="")
        with pytest.raises(CompletionUnavailableError):
            await client.complete(_request())

    @pytest.mark.parametrize(
        ("status", "error_type"),
        [(401, CompletionAuthError), (429, CompletionRateLimitError), (500, CompletionError)],
    )
    @pytest.mark.asyncio
    async def test_http_errors(self, status: int, error_type: type) -> None:
        client = CompletionClient(_settings())
        client._client = MagicMock()
        client._client.post = AsyncMock(return_value=_response(status, {"error": {"message": "nope"}}))

        with pytest.raises(error_type) as exc_info:
            await client.complete(_request())
        assert "nope" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        client = CompletionClient(_settings())
        client._client = MagicMock()
        client._client.post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(CompletionUnavailableError):
            await client.complete(_request())

    @pytest.mark.parametrize(
        "body",
        [b"<html>Bad Gateway</html>", b"[1, 2]", b'{"choices": "none"}', b'{"choices": [{"message": {"content": 5}}]}'],
    )
    @pytest.mark.asyncio
    async def test_malformed_success_body(self, body: bytes) -> None:
        """A 200 whose body is not a completion is a CompletionError."""
        client = CompletionClient(_settings())
        client._client = MagicMock()
        client._client.post = AsyncMock(
            return_value=httpx.Response(
                200, content=body, request=httpx.Request("POST", "https://llm.test/chat/completions")
            )
        )

        with pytest.raises(CompletionError, match="Malformed completion response"):
            await client.complete(_request())

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        async with CompletionClient(_settings()) as client:
            assert client._client is not None
        assert client._client is None
