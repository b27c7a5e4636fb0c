"""Flashcards generation service: the request lifecycle from quota to persistence.

``FlashcardsGenerator.generate`` runs

    profile lookup -> quota check -> validation -> slot reservation
    (+ pending record) -> text service -> normalization -> finalize

in strict sequence. Each gate raises a ``StudyBotError`` subclass; a failure
after the reservation marks the pending record failed and gives the slot back.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.core.errors import (
    PersistenceFailure,
    ProfileMissing,
    QuotaExceeded,
    ResourceNotFound,
    UpstreamFailure,
    ValidationFailure,
)
from studybot.core.logging import get_logger
from studybot.modules.flashcards.generator import TextGenerator, classify_error
from studybot.modules.flashcards.models.flashcards import GenerationOutcome
from studybot.modules.flashcards.normalizer import normalize_response
from studybot.modules.flashcards.prompt import build_prompt
from studybot.modules.flashcards.quota import FREEMIUM_DAILY_LIMIT, QuotaTracker

logger = get_logger(__name__)

DEFAULT_TITLE = "AI Generated Flashcards"


class FlashcardsGenerator:
    """Orchestrates one notes-to-flashcards generation for a user."""

    def __init__(
        self,
        session: AsyncSession,
        text_generator: TextGenerator,
        *,
        quota: Optional[QuotaTracker] = None,
    ) -> None:
        from studybot.core.db_services import (
            FlashcardGenerationService,
            ProfileService,
            SubjectService,
        )

        self.session = session
        self.text_generator = text_generator
        self.quota = quota or QuotaTracker(session)
        self.sets = FlashcardGenerationService(session)
        self.profiles = ProfileService(session)
        self.subjects = SubjectService(session)

    async def generate(
        self,
        raw_notes_text: Optional[str],
        user_id: int,
        subject_label: Optional[str] = None,
        subject_id: Optional[int] = None,
    ) -> GenerationOutcome:
        log_extra = {"user_id": user_id}

        profile = await self.profiles.get_profile(user_id)
        if profile is None:
            raise ProfileMissing()
        plan = profile.plan_type
        log_extra["plan"] = plan.value

        decision = await self.quota.check(user_id, plan)
        if not decision.allowed:
            raise QuotaExceeded(FREEMIUM_DAILY_LIMIT)

        notes = (raw_notes_text or "").strip()
        if not notes:
            raise ValidationFailure("Prompt is required")

        label = (subject_label or "").strip() or None
        if subject_id is not None:
            subject = await self.subjects.get_subject(user_id, subject_id)
            if subject is None:
                raise ResourceNotFound("Subject not found")
            label = label or subject.name

        reservation = await self.quota.reserve(user_id, plan)
        if not reservation.allowed:
            await self.session.rollback()
            raise QuotaExceeded(FREEMIUM_DAILY_LIMIT)

        # Commits the reservation together with the pending record
        pending = await self.sets.create_pending_set(
            user_id=user_id,
            title=label or DEFAULT_TITLE,
            original_notes=notes,
            subject_label=label,
            subject_id=subject_id,
        )
        set_id = pending.id
        logger.info("Generation %d started", set_id, extra=log_extra)

        try:
            raw = await self.text_generator.generate(build_prompt(notes, label))
            cards = normalize_response(raw, notes, label)
        except UpstreamFailure as e:
            await self._abandon(set_id, user_id, reservation.usage_date, e.detail or e.error)
            logger.error(
                "Generation %d failed upstream: %s", set_id, e.detail, extra=log_extra
            )
            raise
        except Exception as e:
            failure = classify_error(e)
            await self._abandon(set_id, user_id, reservation.usage_date, failure.detail)
            logger.exception(
                "Generation %d failed unexpectedly: %s", set_id, e, extra=log_extra
            )
            raise failure from e

        try:
            await self.sets.finalize_set(set_id=set_id, cards=cards)
        except SQLAlchemyError as e:
            await self.session.rollback()
            await self._abandon(set_id, user_id, reservation.usage_date, str(e))
            raise PersistenceFailure(detail=str(e)) from e

        logger.info(
            "Generation %d completed with %d cards", set_id, len(cards), extra=log_extra
        )
        return GenerationOutcome(
            cards=cards,
            remaining_count=reservation.remaining,
            plan_type=plan.value,
            saved_record_id=set_id,
        )

    async def _abandon(self, set_id: int, user_id: int, usage_date, reason: str) -> None:
        try:
            await self.sets.mark_failed(set_id=set_id, error_message=reason)
            await self.quota.release(user_id, usage_date)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Could not mark generation %d failed: %s",
                set_id,
                e,
                extra={"user_id": user_id},
            )
