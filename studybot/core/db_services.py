"""Database service classes for flashcard generation, profiles and subjects."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, func, select, update

from studybot.core.db.base import utcnow
from studybot.core.errors import PlanLimitReached, ProfileMissing
from studybot.core.db.schemas.flashcards import (
    FlashcardSet,
    GenerationStatus,
)
from studybot.core.db.schemas.subjects import DEFAULT_SUBJECT_COLOR, Subject
from studybot.core.db.schemas.user_profile import PlanType, UserProfile
from studybot.core.logging import get_logger
from studybot.modules.flashcards.models.flashcards import Flashcard
from studybot.modules.flashcards.quota import QuotaTracker

logger = get_logger(__name__)

FREEMIUM_SUBJECT_LIMIT = 3


class FlashcardGenerationService:
    """Service for managing flashcard set records through their lifecycle."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_pending_set(
        self,
        *,
        user_id: int,
        title: str,
        original_notes: str,
        subject_label: Optional[str] = None,
        subject_id: Optional[int] = None,
    ) -> FlashcardSet:
        """Add a PENDING set to the current transaction and commit it."""
        db_set = FlashcardSet(
            user_id=user_id,
            title=title,
            subject_label=subject_label,
            subject_id=subject_id,
            original_notes=original_notes,
            cards=[],
            status=GenerationStatus.PENDING,
        )
        self.session.add(db_set)
        await self.session.commit()
        await self.session.refresh(db_set)
        return db_set

    async def finalize_set(
        self, *, set_id: int, cards: Sequence[Flashcard]
    ) -> FlashcardSet:
        """Write the whole card list at once and mark the set COMPLETED."""
        result = await self.session.execute(
            select(FlashcardSet).where(FlashcardSet.id == set_id)
        )
        db_set = result.scalar_one()
        db_set.cards = [card.model_dump() for card in cards]
        db_set.status = GenerationStatus.COMPLETED
        db_set.completed_at = utcnow()
        await self.session.commit()
        await self.session.refresh(db_set)
        return db_set

    async def mark_failed(self, *, set_id: int, error_message: str) -> None:
        await self.session.execute(
            update(FlashcardSet)
            .where(
                FlashcardSet.id == set_id,
                FlashcardSet.status == GenerationStatus.PENDING,
            )
            .values(
                status=GenerationStatus.FAILED,
                error_message=error_message[:1000],
                completed_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

    async def get_set(self, *, user_id: int, set_id: int) -> Optional[FlashcardSet]:
        result = await self.session.execute(
            select(FlashcardSet).where(
                FlashcardSet.id == set_id, FlashcardSet.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def list_sets(
        self,
        *,
        user_id: int,
        subject_id: Optional[int] = None,
        set_ids: Optional[Sequence[int]] = None,
        completed_only: bool = False,
    ) -> list[FlashcardSet]:
        stmt = select(FlashcardSet).where(FlashcardSet.user_id == user_id)
        if subject_id is not None:
            stmt = stmt.where(FlashcardSet.subject_id == subject_id)
        if set_ids:
            stmt = stmt.where(FlashcardSet.id.in_(list(set_ids)))
        if completed_only:
            stmt = stmt.where(FlashcardSet.status == GenerationStatus.COMPLETED)
        rows = await self.session.execute(
            stmt.order_by(FlashcardSet.created_at.desc(), FlashcardSet.id.desc())
        )
        return list(rows.scalars().all())

    async def delete_set(self, *, user_id: int, set_id: int) -> bool:
        """Delete a set; a completed set from today gives its quota slot back.

        Today's usage is the count of today's non-failed sets, so the per-day
        counter has to drop with it. Pending sets keep their slot until the
        running generation releases it.
        """
        db_set = await self.get_set(user_id=user_id, set_id=set_id)
        if db_set is None:
            return False
        created_on = db_set.created_at.date()
        if (
            db_set.status == GenerationStatus.COMPLETED
            and created_on == utcnow().date()
        ):
            await QuotaTracker(self.session).release(user_id, created_on)
        await self.session.execute(
            delete(FlashcardSet)
            .where(FlashcardSet.id == set_id, FlashcardSet.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return True

    async def reconcile_pending(self, *, older_than: timedelta) -> int:
        """Fail PENDING sets abandoned mid-generation and give back their quota slots."""
        cutoff = utcnow() - older_than
        rows = await self.session.execute(
            select(FlashcardSet).where(
                FlashcardSet.status == GenerationStatus.PENDING,
                FlashcardSet.created_at < cutoff,
            )
        )
        stale = list(rows.scalars().all())
        for db_set in stale:
            db_set.status = GenerationStatus.FAILED
            db_set.error_message = "Generation abandoned before completion"
            db_set.completed_at = utcnow()
            await QuotaTracker(self.session).release(
                db_set.user_id, db_set.created_at.date()
            )
        await self.session.commit()
        if stale:
            logger.warning("Reconciled %d abandoned pending flashcard sets", len(stale))
        return len(stale)


class ProfileService:
    """Service for reading and updating the plan-bearing user profile."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_profile(
        self, user_id: int, *, for_update: bool = False
    ) -> Optional[UserProfile]:
        stmt = select(UserProfile).where(UserProfile.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_profile(self, user_id: int) -> UserProfile:
        """Get existing profile or create a new freemium one"""
        profile = await self.get_profile(user_id)
        if not profile:
            profile = UserProfile(user_id=user_id, plan_type=PlanType.FREEMIUM)
            self.session.add(profile)
            await self.session.commit()
            await self.session.refresh(profile)
        return profile

    async def change_plan(self, user_id: int, plan_type: PlanType) -> UserProfile:
        profile = await self.get_or_create_profile(user_id)
        previous = profile.plan_type
        profile.plan_type = plan_type
        await self.session.commit()
        await self.session.refresh(profile)
        logger.info(
            "Plan changed %s -> %s",
            previous.value,
            plan_type.value,
            extra={"user_id": user_id, "plan": plan_type.value},
        )
        return profile


class SubjectService:
    """Service for user-defined subjects; enforces the freemium subject cap."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_subjects(self, user_id: int) -> list[Subject]:
        rows = await self.session.execute(
            select(Subject)
            .where(Subject.user_id == user_id)
            .order_by(Subject.created_at.asc(), Subject.id.asc())
        )
        return list(rows.scalars().all())

    async def get_subject(self, user_id: int, subject_id: int) -> Optional[Subject]:
        result = await self.session.execute(
            select(Subject).where(Subject.id == subject_id, Subject.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def count_subjects(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Subject.id)).where(Subject.user_id == user_id)
        )
        return int(result.scalar() or 0)

    async def create_subject(
        self,
        *,
        user_id: int,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Subject:
        """Create a subject; freemium users are capped at three.

        The profile row is locked first so concurrent creates for the same
        user serialize on the count.
        """
        profile = await ProfileService(self.session).get_profile(
            user_id, for_update=True
        )
        if profile is None:
            raise ProfileMissing()
        if profile.is_freemium:
            existing = await self.count_subjects(user_id)
            if existing >= FREEMIUM_SUBJECT_LIMIT:
                await self.session.rollback()
                logger.info(
                    "Subject limit reached (%d)",
                    existing,
                    extra={"user_id": user_id, "plan": profile.plan_type.value},
                )
                raise PlanLimitReached(
                    "Subject limit reached",
                    message=(
                        f"Free users can only create up to {FREEMIUM_SUBJECT_LIMIT} "
                        "subjects. Upgrade to Premium for unlimited subjects."
                    ),
                )

        subject = Subject(
            user_id=user_id,
            name=name,
            description=description or None,
            color=color or DEFAULT_SUBJECT_COLOR,
        )
        self.session.add(subject)
        await self.session.commit()
        await self.session.refresh(subject)
        return subject

    async def update_subject(self, subject: Subject, **fields) -> Subject:
        for field, value in fields.items():
            setattr(subject, field, value)
        await self.session.commit()
        await self.session.refresh(subject)
        return subject

    async def delete_subject(self, subject: Subject) -> None:
        # Sets keep their subject_label; only the link is dropped
        await self.session.execute(
            update(FlashcardSet)
            .where(FlashcardSet.subject_id == subject.id)
            .values(subject_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(subject)
        await self.session.commit()
