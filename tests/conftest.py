"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest

from career_assist_api.completion_client import CompletionRequest, CompletionResult
from career_assist_api.config import Settings

# Set test environment variables before importing app modules
os.environ.setdefault("LLM_API_KEY", "")
os.environ.setdefault("ENVIRONMENT", "development")
# Increase rate limit for testing
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")


@pytest.fixture(autouse=True)
def reset_caches() -> Iterator[None]:
    """Reset cached settings and limiter storage before each test."""
    from career_assist_api.config import get_settings

    get_settings.cache_clear()

    try:
        from career_assist_api.main import limiter

        if hasattr(limiter, "_storage") and limiter._storage:
            limiter._storage.reset()
    except (ImportError, AttributeError):
        pass

    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Callable[..., Settings]:
    """Fixture to set test settings."""

    def _mock_settings(**kwargs: str) -> Settings:
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        from career_assist_api.config import get_settings

        get_settings.cache_clear()
        return get_settings()

    return _mock_settings


Reply = str | None | CompletionResult | Exception


def _as_result(reply: Reply) -> CompletionResult:
    if isinstance(reply, CompletionResult):
        return reply
    return CompletionResult(text=reply, finish_reason="stop", tokens_used=42)


@pytest.fixture
def fake_client() -> Callable[..., MagicMock]:
    """Build a completion client whose replies are chosen by task name.

    Each value is a reply (text, CompletionResult or exception) or a list of
    replies consumed in order. Tasks with no entry get an empty reply.
    """

    def _fake_client(replies: dict[str, Reply | list[Reply]] | None = None, configured: bool = True) -> MagicMock:
        queues: dict[str, list[Reply]] = {}
        for task, value in (replies or {}).items():
            queues[task] = list(value) if isinstance(value, list) else [value]

        async def _complete(request: CompletionRequest) -> CompletionResult:
            queue = queues.get(request.task)
            if not queue:
                return _as_result(None)
            reply = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(reply, Exception):
                raise reply
            return _as_result(reply)

        client = MagicMock()
        client.is_configured = configured
        client.model = "test-model"
        client.complete = AsyncMock(side_effect=_complete)
        return client

    return _fake_client

