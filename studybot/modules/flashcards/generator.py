"""Client for the external text-generation service, built on pydantic-ai.

The agent returns free text (ideally a JSON array of question/answer pairs);
parsing is left to the normalizer. Each call runs under a deadline and
transient failures (timeouts, transport errors, HTTP 5xx/429) are retried with
exponential backoff. Provider imports are lazy to avoid import-time errors
when credentials are missing.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Protocol

import httpx
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError

from studybot.core.config import settings
from studybot.core.errors import UpstreamFailure
from studybot.core.logging import get_logger
from studybot.modules.flashcards.prompt import SYSTEM_PROMPT

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429})


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> Any: ...


def _build_google_model(model_name: str):
    """Build Google Gemini model for pydantic-ai (lazy import)."""
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider

    provider = GoogleProvider(api_key=settings.gemini_api_key)
    return GoogleModel(model_name, provider=provider)


def _build_openrouter_model():
    """Build OpenRouter model via OpenAI-compatible provider (lazy import)."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    if not settings.openrouter_api_key:
        raise RuntimeError(
            "OpenRouter API key not configured. Set OPENROUTER_API_KEY in your environment."
        )

    provider = OpenAIProvider(
        api_key=settings.openrouter_api_key,
        base_url="https://openrouter.ai/api/v1",
    )
    return OpenAIChatModel(settings.openrouter_model, provider=provider)


def _build_model_by_settings():
    provider = (settings.model_provider or "google").lower()
    if provider == "openrouter":
        return _build_openrouter_model()
    return _build_google_model(settings.generation.model_name)


def classify_error(exc: BaseException) -> UpstreamFailure:
    """Map a provider/transport exception onto an ``UpstreamFailure``."""
    if isinstance(exc, UpstreamFailure):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return UpstreamFailure(
            "Flashcard generation timed out",
            detail=f"No response within {settings.generation.timeout_seconds}s",
            retryable=True,
        )
    if isinstance(exc, httpx.TransportError):
        return UpstreamFailure(detail=f"Transport error: {exc}", retryable=True)
    if isinstance(exc, ModelHTTPError):
        retryable = exc.status_code >= 500 or exc.status_code in RETRYABLE_STATUS_CODES
        return UpstreamFailure(
            detail=f"Model HTTP {exc.status_code}: {exc.message}",
            retryable=retryable,
        )
    if isinstance(exc, AgentRunError):
        return UpstreamFailure(detail=f"Model run failed: {exc}", retryable=False)
    return UpstreamFailure(detail=f"{type(exc).__name__}: {exc}", retryable=False)


async def call_with_retries(
    call: Callable[[], Awaitable[Any]],
    *,
    timeout: float,
    max_retries: int,
    backoff: float,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Run ``call`` under a deadline, retrying only retryable failures."""
    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except Exception as e:  # noqa: BLE001
            failure = classify_error(e)
            if not failure.retryable or attempt >= max_retries:
                raise failure from e
            delay = backoff * (2**attempt)
            attempt += 1
            logger.warning(
                "Text generation attempt %d failed (%s); retrying in %.2fs",
                attempt,
                failure.detail,
                delay,
            )
            await sleep(delay)


class AgentTextGenerator:
    """Default ``TextGenerator``: one pydantic-ai agent with free-text output."""

    def __init__(
        self,
        *,
        model: Any = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
    ) -> None:
        self._model = model
        self.timeout = timeout if timeout is not None else settings.generation.timeout_seconds
        self.max_retries = (
            max_retries if max_retries is not None else settings.generation.max_retries
        )
        self.backoff = backoff if backoff is not None else settings.generation.backoff_seconds
        self._agent: Optional[Agent[None, str]] = None

    def _get_agent(self) -> Agent[None, str]:
        if self._agent is None:
            model = self._model if self._model is not None else _build_model_by_settings()
            self._agent = Agent[None, str](
                model=model,
                output_type=str,
                system_prompt=SYSTEM_PROMPT,
            )
        return self._agent

    async def generate(self, prompt: str) -> Any:
        async def _run() -> Any:
            # Provider setup errors are classified like any other call failure
            res = await self._get_agent().run(prompt)
            return res.output

        return await call_with_retries(
            _run,
            timeout=self.timeout,
            max_retries=self.max_retries,
            backoff=self.backoff,
        )

    def generate_sync(self, prompt: str) -> Any:
        """Synchronous wrapper if an event loop is unavailable."""
        return asyncio.run(self.generate(prompt))


_default_generator: Optional[AgentTextGenerator] = None


def get_text_generator() -> TextGenerator:
    """FastAPI dependency; tests override it with a fake."""
    global _default_generator
    if _default_generator is None:
        _default_generator = AgentTextGenerator()
    return _default_generator
