from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.core.config import settings
from studybot.core.db.base import get_session
from studybot.core.db_services import FlashcardGenerationService, ProfileService
from studybot.core.errors import ProfileMissing, ResourceNotFound
from studybot.apis.deps import CurrentUser
from studybot.modules.flashcards.generator import TextGenerator, get_text_generator
from studybot.modules.flashcards.main import FlashcardsGenerator
from studybot.modules.flashcards.quota import QuotaTracker
from .schemas import (
    FlashcardSetRead,
    FlashcardSetSummary,
    GenerateRequest,
    GenerateResponse,
    UsageResponse,
)


router = APIRouter()


@router.post(
    f"/{settings.app.version}/flashcards/generate",
    response_model=GenerateResponse,
    status_code=status.HTTP_200_OK,
    tags=["flashcards"],
)
async def generate_flashcards(
    req: GenerateRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
    text_generator: TextGenerator = Depends(get_text_generator),
) -> GenerateResponse:
    generator = FlashcardsGenerator(session, text_generator)
    outcome = await generator.generate(
        req.study_notes,
        user.id,
        subject_label=req.subject_label,
        subject_id=req.subject_id,
    )
    saved = await generator.sets.get_set(user_id=user.id, set_id=outcome.saved_record_id)
    return GenerateResponse(
        flashcards=outcome.cards,
        remaining_count=outcome.remaining_count,
        plan_type=outcome.plan_type,
        saved_record=FlashcardSetRead.from_db(saved),
    )


@router.get(
    f"/{settings.app.version}/flashcards/usage",
    response_model=UsageResponse,
    tags=["flashcards"],
)
async def get_usage(
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
) -> UsageResponse:
    profile = await ProfileService(session).get_profile(user.id)
    if profile is None:
        raise ProfileMissing()
    decision = await QuotaTracker(session).check(user.id, profile.plan_type)
    return UsageResponse(
        plan_type=profile.plan_type.value,
        used_today=decision.used,
        daily_limit=decision.limit,
        remaining_count=decision.remaining,
    )


@router.get(
    f"/{settings.app.version}/flashcards/sets",
    response_model=list[FlashcardSetSummary],
    tags=["flashcards"],
)
async def list_flashcard_sets(
    user: CurrentUser,
    subject_id: Optional[int] = None,
    session: AsyncSession = Depends(get_session),
) -> list[FlashcardSetSummary]:
    sets = await FlashcardGenerationService(session).list_sets(
        user_id=user.id, subject_id=subject_id
    )
    return [
        FlashcardSetSummary(
            id=s.id,
            title=s.title,
            subject_label=s.subject_label,
            subject_id=s.subject_id,
            status=s.status.value,
            card_count=len(s.cards or []),
            created_at=s.created_at.isoformat(),
        )
        for s in sets
    ]


@router.get(
    f"/{settings.app.version}/flashcards/sets/{{set_id}}",
    response_model=FlashcardSetRead,
    tags=["flashcards"],
)
async def get_flashcard_set(
    set_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
) -> FlashcardSetRead:
    s = await FlashcardGenerationService(session).get_set(user_id=user.id, set_id=set_id)
    if not s:
        raise ResourceNotFound("Flashcard set not found")
    return FlashcardSetRead.from_db(s)


@router.delete(
    f"/{settings.app.version}/flashcards/sets/{{set_id}}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["flashcards"],
)
async def delete_flashcard_set(
    set_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
) -> Response:
    deleted = await FlashcardGenerationService(session).delete_set(
        user_id=user.id, set_id=set_id
    )
    if not deleted:
        raise ResourceNotFound("Flashcard set not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
