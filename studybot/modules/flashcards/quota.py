"""Daily generation quota for freemium users.

``check`` is the read-only gate: it counts today's (UTC) non-failed flashcard
sets and fails open on database errors. ``reserve`` is the guarded write that
actually claims a slot: a per-user/per-day counter row is incremented with
``count < limit`` in the WHERE clause, so two concurrent requests can never
both take the last slot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.core.db.base import utcnow
from studybot.core.db.schemas.flashcards import FlashcardSet, GenerationStatus
from studybot.core.db.schemas.usage import GenerationUsage
from studybot.core.db.schemas.user_profile import PlanType
from studybot.core.logging import get_logger

logger = get_logger(__name__)

FREEMIUM_DAILY_LIMIT = 5
# Reported to premium callers in place of a remaining count
UNLIMITED_REMAINING = 999


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    used: int
    limit: Optional[int]
    usage_date: date

    @property
    def remaining(self) -> int:
        if self.limit is None:
            return UNLIMITED_REMAINING
        return max(0, self.limit - self.used)


def day_window(day: date) -> tuple[datetime, datetime]:
    """Half-open UTC window ``[day 00:00, next day 00:00)``."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def limit_for(plan: PlanType) -> Optional[int]:
    return FREEMIUM_DAILY_LIMIT if plan == PlanType.FREEMIUM else None


class QuotaTracker:
    def __init__(self, session: AsyncSession, *, today: Optional[date] = None):
        self.session = session
        self._today = today

    @property
    def today(self) -> date:
        return self._today or utcnow().date()

    async def count_today(self, user_id: int) -> int:
        start, end = day_window(self.today)
        try:
            result = await self.session.execute(
                select(func.count(FlashcardSet.id)).where(
                    FlashcardSet.user_id == user_id,
                    FlashcardSet.created_at >= start,
                    FlashcardSet.created_at < end,
                    FlashcardSet.status != GenerationStatus.FAILED,
                )
            )
            return int(result.scalar() or 0)
        except SQLAlchemyError as e:
            logger.error(
                "Error counting today's flashcard sets, treating as 0: %s",
                e,
                extra={"user_id": user_id},
            )
            await self.session.rollback()
            return 0

    async def check(self, user_id: int, plan: PlanType) -> QuotaDecision:
        used = await self.count_today(user_id)
        limit = limit_for(plan)
        allowed = limit is None or used < limit
        if not allowed:
            logger.info(
                "Daily limit reached (%d/%d)",
                used,
                limit,
                extra={"user_id": user_id, "plan": plan.value},
            )
        return QuotaDecision(allowed=allowed, used=used, limit=limit, usage_date=self.today)

    def _insert_ignore(self, values: dict):
        dialect = self.session.bind.dialect.name if self.session.bind else "postgresql"
        insert = sqlite_insert if dialect == "sqlite" else pg_insert
        return (
            insert(GenerationUsage)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["user_id", "usage_date"])
        )

    async def _ensure_counter(self, user_id: int, day: date) -> None:
        existing = await self.session.execute(
            select(GenerationUsage.id).where(
                GenerationUsage.user_id == user_id,
                GenerationUsage.usage_date == day,
            )
        )
        if existing.scalar_one_or_none() is not None:
            return
        # Seed from rows already recorded today so the counter agrees with check()
        seed = await self.count_today(user_id)
        await self.session.execute(
            self._insert_ignore({"user_id": user_id, "usage_date": day, "count": seed})
        )

    async def reserve(self, user_id: int, plan: PlanType) -> QuotaDecision:
        """Atomically claim one generation slot for today.

        The caller owns the transaction and must commit for the claim to stick.
        """
        day = self.today
        limit = limit_for(plan)
        await self._ensure_counter(user_id, day)

        stmt = (
            update(GenerationUsage)
            .where(
                GenerationUsage.user_id == user_id,
                GenerationUsage.usage_date == day,
            )
            .values(count=GenerationUsage.count + 1)
            .execution_options(synchronize_session=False)
        )
        if limit is not None:
            stmt = stmt.where(GenerationUsage.count < limit)
        result = await self.session.execute(stmt)

        used = await self._counter_value(user_id, day)
        if result.rowcount != 1:
            logger.info(
                "Reservation refused at %d/%s",
                used,
                limit,
                extra={"user_id": user_id, "plan": plan.value},
            )
            return QuotaDecision(allowed=False, used=used, limit=limit, usage_date=day)
        return QuotaDecision(allowed=True, used=used, limit=limit, usage_date=day)

    async def release(self, user_id: int, day: date) -> None:
        """Give back a slot claimed by a generation that did not complete."""
        await self.session.execute(
            update(GenerationUsage)
            .where(
                GenerationUsage.user_id == user_id,
                GenerationUsage.usage_date == day,
                GenerationUsage.count > 0,
            )
            .values(count=GenerationUsage.count - 1)
            .execution_options(synchronize_session=False)
        )

    async def _counter_value(self, user_id: int, day: date) -> int:
        result = await self.session.execute(
            select(GenerationUsage.count).where(
                GenerationUsage.user_id == user_id,
                GenerationUsage.usage_date == day,
            )
        )
        return int(result.scalar() or 0)
