"""Error taxonomy for the API and its JSON rendering.

Every failure the generation pipeline (and the surrounding CRUD routes) can
surface is a ``StudyBotError`` carrying an HTTP status, a short public
``error`` string and optional extra payload fields. Handlers render them as
``{"error": ..., **extra}`` bodies.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from studybot.core.config import settings
from studybot.core.logging import get_logger

logger = get_logger(__name__)


class StudyBotError(Exception):
    status_code: int = 500
    error: str = "Internal server error"

    def __init__(
        self,
        error: Optional[str] = None,
        *,
        message: Optional[str] = None,
        detail: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.error = error or self.error
        self.message = message
        # Internal detail, only exposed outside production
        self.detail = detail
        self.extra = extra
        super().__init__(detail or self.error)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.message is not None:
            payload["message"] = self.message
        payload.update(self.extra)
        if self.detail and not settings.app.is_production:
            payload["detail"] = self.detail
        return payload


class AuthenticationFailure(StudyBotError):
    status_code = 401
    error = "Authentication required"


class ProfileMissing(StudyBotError):
    status_code = 404
    error = "User profile not found"


class ResourceNotFound(StudyBotError):
    status_code = 404
    error = "Not found"


class ValidationFailure(StudyBotError):
    status_code = 400
    error = "Invalid request"


class PlanLimitReached(StudyBotError):
    status_code = 403
    error = "Plan limit reached"


class QuotaExceeded(StudyBotError):
    status_code = 429
    error = "Daily limit reached"

    def __init__(self, daily_limit: int, **kwargs: Any) -> None:
        kwargs.setdefault(
            "message",
            f"You've reached your daily limit of {daily_limit} flashcards. "
            "Upgrade to Premium for unlimited generation!",
        )
        kwargs.setdefault("remainingCount", 0)
        super().__init__(**kwargs)


class UpstreamFailure(StudyBotError):
    """The external text-generation service failed or timed out."""

    status_code = 500
    error = "Flashcard generation service is unavailable"

    def __init__(self, *args: Any, retryable: bool = False, **kwargs: Any) -> None:
        self.retryable = retryable
        super().__init__(*args, **kwargs)


class PersistenceFailure(StudyBotError):
    status_code = 500
    error = "Failed to save flashcards"


async def handle_studybot_error(request: Request, exc: StudyBotError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s (%s)",
            request.method,
            request.url.path,
            exc.error,
            exc.detail or "-",
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    failure = ValidationFailure(detail=str(exc.errors()))
    return JSONResponse(status_code=failure.status_code, content=failure.to_payload())


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "%s %s raised %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc_info=exc,
    )
    failure = StudyBotError(detail=f"{type(exc).__name__}: {exc}")
    return JSONResponse(status_code=failure.status_code, content=failure.to_payload())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudyBotError, handle_studybot_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, handle_request_validation_error  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, handle_unexpected_error)


__all__ = [
    "StudyBotError",
    "AuthenticationFailure",
    "ProfileMissing",
    "ResourceNotFound",
    "ValidationFailure",
    "PlanLimitReached",
    "QuotaExceeded",
    "UpstreamFailure",
    "PersistenceFailure",
    "handle_unexpected_error",
    "register_error_handlers",
]
