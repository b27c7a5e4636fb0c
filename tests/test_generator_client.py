import asyncio

import httpx
import pytest
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from studybot.core.errors import UpstreamFailure
from studybot.modules.flashcards.generator import (
    AgentTextGenerator,
    call_with_retries,
    classify_error,
)


class Recorder:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.sleeps: list[float] = []

    async def call(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def sleep(self, delay: float):
        self.sleeps.append(delay)


@pytest.mark.parametrize(
    "exc, retryable",
    [
        (httpx.ConnectError("connection refused"), True),
        (ModelHTTPError(503, "gemini", body="overloaded"), True),
        (ModelHTTPError(429, "gemini"), True),
        (ModelHTTPError(400, "gemini", body="bad request"), False),
        (UnexpectedModelBehavior("empty response"), False),
        (ValueError("odd"), False),
    ],
)
def test_classify_error(exc, retryable):
    failure = classify_error(exc)

    assert isinstance(failure, UpstreamFailure)
    assert failure.retryable is retryable
    assert failure.status_code == 500
    assert failure.error == "Flashcard generation service is unavailable"


def test_timeout_has_its_own_message():
    failure = classify_error(asyncio.TimeoutError())
    assert failure.retryable
    assert failure.error == "Flashcard generation timed out"


async def test_transient_errors_retried_with_backoff():
    rec = Recorder(
        httpx.ReadTimeout("slow"),
        ModelHTTPError(502, "gemini"),
        "[]",
    )

    out = await call_with_retries(
        rec.call, timeout=1, max_retries=2, backoff=0.5, sleep=rec.sleep
    )

    assert out == "[]"
    assert rec.calls == 3
    assert rec.sleeps == [0.5, 1.0]


async def test_gives_up_after_max_retries():
    rec = Recorder(*[httpx.ConnectError("down") for _ in range(3)])

    with pytest.raises(UpstreamFailure) as info:
        await call_with_retries(
            rec.call, timeout=1, max_retries=2, backoff=0.1, sleep=rec.sleep
        )

    assert rec.calls == 3
    assert info.value.retryable
    assert isinstance(info.value.__cause__, httpx.ConnectError)


async def test_client_errors_are_not_retried():
    rec = Recorder(ModelHTTPError(401, "gemini", body="bad key"))

    with pytest.raises(UpstreamFailure) as info:
        await call_with_retries(
            rec.call, timeout=1, max_retries=3, backoff=0.1, sleep=rec.sleep
        )

    assert rec.calls == 1
    assert rec.sleeps == []
    assert "401" in info.value.detail


async def test_call_is_bounded_by_timeout():
    async def hang():
        await asyncio.sleep(5)

    with pytest.raises(UpstreamFailure) as info:
        await call_with_retries(hang, timeout=0.01, max_retries=0, backoff=0)

    assert info.value.error == "Flashcard generation timed out"


async def test_agent_generator_returns_model_text():
    seen: list[str] = []

    def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        seen.append(str(messages[-1]))
        return ModelResponse(parts=[TextPart('[{"question": "Q", "answer": "A"}]')])

    generator = AgentTextGenerator(model=FunctionModel(respond), max_retries=0)

    out = await generator.generate("Notes:\nCells divide.")

    assert out == '[{"question": "Q", "answer": "A"}]'
    assert "Cells divide." in seen[0]


async def test_provider_setup_error_is_classified(monkeypatch):
    from studybot.core.config import settings

    monkeypatch.setattr(settings, "model_provider", "openrouter")
    monkeypatch.setattr(settings, "openrouter_api_key", None)

    with pytest.raises(UpstreamFailure) as info:
        await AgentTextGenerator(max_retries=0).generate("Notes:\nCells divide.")

    assert not info.value.retryable
    assert isinstance(info.value.__cause__, RuntimeError)
