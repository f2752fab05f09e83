"""Async client for an OpenAI-compatible chat-completions service."""

from dataclasses import dataclass
from typing import Any, Literal

import httpx
import structlog

from career_assist_api.config import Settings, get_settings
from career_assist_api.observability import log_llm_request, log_llm_response

logger = structlog.get_logger()

OutputMode = Literal["text", "json_object", "text_with_json"]


class CompletionError(Exception):
    """Base exception for completion client errors."""

    pass


class CompletionAuthError(CompletionError):
    """Raised when authentication fails."""

    pass


class CompletionRateLimitError(CompletionError):
    """Raised when rate limit is exceeded."""

    pass


class CompletionUnavailableError(CompletionError):
    """Raised when no credential is configured or the service cannot be reached."""

    pass


@dataclass(frozen=True)
class CompletionRequest:
    """One chat-completion call, fully described."""

    task: str
    system_prompt: str
    user_prompt: str
    temperature: float = 0.3
    output_mode: OutputMode = "json_object"
    max_tokens: int | None = None
    timeout_seconds: float | None = None
    model: str | None = None


@dataclass
class CompletionResult:
    """Raw response from the completion service."""

    text: str | None
    finish_reason: str | None = None
    tokens_used: int = 0


class CompletionClient:
    """Async client for chat completions; created once per process."""

    def __init__(
        self,
        settings: Settings | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
    ):
        """Initialize the completion client.

        Args:
            settings: Settings to read defaults from. Defaults to cached settings.
            api_key: API key. Defaults to config value.
            base_url: API base URL. Defaults to config value.
            model: Model ID to use. Defaults to config value.
        """
        settings = settings or get_settings()
        self._api_key = api_key if api_key is not None else settings.llm_api_key
        self._base_url = base_url or settings.llm_base_url
        self._model = model or settings.llm_model
        self._max_tokens = settings.llm_max_tokens
        self._timeout = settings.llm_timeout_seconds
        self._connect_timeout = settings.llm_connect_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "CompletionClient":
        """Enter async context."""
        await self.connect()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        """Exit async context."""
        await self.close()

    async def connect(self) -> None:
        """Create the HTTP client. Does nothing when no key is configured."""
        if not self.is_configured:
            logger.warning("Completion client has no API key; generation is unavailable")
            return

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(self._timeout, connect=self._connect_timeout),
        )
        logger.info("Completion client connected", model=self._model)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Completion client closed")

    @property
    def model(self) -> str:
        return self._model

    @property
    def is_configured(self) -> bool:
        """Check if the client is properly configured with an API key."""
        return bool(self._api_key)

    def _build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model or self._model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "max_tokens": request.max_tokens or self._max_tokens,
            "temperature": request.temperature,
        }
        if request.output_mode == "json_object":
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Send a chat completion request.

        Args:
            request: The call to make.

        Returns:
            The raw text and finish reason. Text may be empty.

        Raises:
            CompletionUnavailableError: If no key is configured or the service is unreachable.
            CompletionAuthError: On a 401 response.
            CompletionRateLimitError: On a 429 response.
            CompletionError: On any other error status.
        """
        if not self.is_configured:
            raise CompletionUnavailableError(
                "Completion service not configured. Set LLM_API_KEY to enable generation."
            )

        if not self._client:
            await self.connect()

        payload = self._build_payload(request)
        request_log = log_llm_request(
            model=payload["model"],
            task=request.task,
            output_mode=request.output_mode,
            system_prompt=request.system_prompt,
            user_prompt=request.user_prompt,
            max_tokens=payload["max_tokens"],
        )

        timeout = None
        if request.timeout_seconds:
            timeout = httpx.Timeout(request.timeout_seconds, connect=self._connect_timeout)

        try:
            if timeout is not None:
                response = await self._client.post("/chat/completions", json=payload, timeout=timeout)
            else:
                response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log_llm_response(request_log, error=str(e))
            self._handle_http_error(e)
            raise
        except httpx.HTTPError as e:
            log_llm_response(request_log, error=str(e))
            raise CompletionUnavailableError(f"Completion service unreachable: {e}") from e

        try:
            data = response.json()
            choice = (data.get("choices") or [{}])[0]
            content = (choice.get("message") or {}).get("content")
            finish_reason = choice.get("finish_reason")
            tokens_used = (data.get("usage") or {}).get("total_tokens", 0)
        except (ValueError, AttributeError, IndexError, TypeError) as e:
            log_llm_response(request_log, error=str(e))
            raise CompletionError(f"Malformed completion response: {e}") from e
        if content is not None and not isinstance(content, str):
            log_llm_response(request_log, error="non-text content")
            raise CompletionError(f"Malformed completion response: content is {type(content).__name__}")

        log_llm_response(
            request_log,
            tokens_total=tokens_used,
            finish_reason=finish_reason or "unknown",
        )

        return CompletionResult(
            text=content,
            finish_reason=finish_reason,
            tokens_used=tokens_used,
        )

    def _handle_http_error(self, error: httpx.HTTPStatusError) -> None:
        """Translate HTTP errors from the completion service."""
        status = error.response.status_code
        try:
            detail = error.response.json().get("error", {}).get("message", str(error))
        except (ValueError, AttributeError):
            detail = str(error)

        logger.error("Completion API error", status=status, detail=detail)

        if status == 401:
            raise CompletionAuthError(f"Authentication failed: {detail}")
        elif status == 429:
            raise CompletionRateLimitError(f"Rate limit exceeded: {detail}")
        else:
            raise CompletionError(f"API error ({status}): {detail}")
