from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from studybot.core.db.base import async_session_maker, utcnow
from studybot.core.db.schemas import (
    FlashcardSet,
    GenerationStatus,
    PlanType,
    User,
    UserProfile,
)
from studybot.modules.flashcards.quota import (
    FREEMIUM_DAILY_LIMIT,
    UNLIMITED_REMAINING,
    QuotaTracker,
    day_window,
)


async def make_user(session, email="quota@example.com", plan=PlanType.FREEMIUM) -> int:
    user = User(email=email, hashed_password="x", is_active=True)
    session.add(user)
    await session.flush()
    session.add(UserProfile(user_id=user.id, plan_type=plan))
    await session.commit()
    return user.id


async def add_sets(session, user_id, n, *, status=GenerationStatus.COMPLETED, when=None):
    for _ in range(n):
        session.add(
            FlashcardSet(
                user_id=user_id,
                title="t",
                original_notes="notes",
                cards=[],
                status=status,
                created_at=when or utcnow(),
            )
        )
    await session.commit()


def test_day_window_is_half_open():
    start, end = day_window(date(2026, 3, 1))
    assert start == datetime(2026, 3, 1)
    assert end == datetime(2026, 3, 2)


async def test_check_counts_only_todays_non_failed_sets(session):
    user_id = await make_user(session)
    await add_sets(session, user_id, 2)
    await add_sets(session, user_id, 3, status=GenerationStatus.FAILED)
    await add_sets(session, user_id, 4, when=utcnow() - timedelta(days=1))

    decision = await QuotaTracker(session).check(user_id, PlanType.FREEMIUM)

    assert decision.allowed
    assert decision.used == 2
    assert decision.remaining == FREEMIUM_DAILY_LIMIT - 2


async def test_check_refuses_at_limit(session):
    user_id = await make_user(session)
    await add_sets(session, user_id, FREEMIUM_DAILY_LIMIT)

    decision = await QuotaTracker(session).check(user_id, PlanType.FREEMIUM)

    assert not decision.allowed
    assert decision.remaining == 0


async def test_premium_is_never_limited(session):
    user_id = await make_user(session, plan=PlanType.PREMIUM)
    await add_sets(session, user_id, FREEMIUM_DAILY_LIMIT + 3)

    decision = await QuotaTracker(session).check(user_id, PlanType.PREMIUM)

    assert decision.allowed
    assert decision.limit is None
    assert decision.remaining == UNLIMITED_REMAINING


class BrokenSession:
    def __init__(self):
        self.rolled_back = False

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is down"))

    async def rollback(self):
        self.rolled_back = True


async def test_count_failure_fails_open():
    broken = BrokenSession()

    decision = await QuotaTracker(broken).check(1, PlanType.FREEMIUM)

    assert decision.allowed
    assert decision.used == 0
    assert broken.rolled_back


async def test_reserve_stops_at_limit_and_release_gives_slot_back(session):
    user_id = await make_user(session)
    tracker = QuotaTracker(session)

    for i in range(FREEMIUM_DAILY_LIMIT):
        reservation = await tracker.reserve(user_id, PlanType.FREEMIUM)
        assert reservation.allowed
        assert reservation.used == i + 1
    await session.commit()

    refused = await tracker.reserve(user_id, PlanType.FREEMIUM)
    assert not refused.allowed
    assert refused.remaining == 0

    await tracker.release(user_id, tracker.today)
    await session.commit()
    again = await tracker.reserve(user_id, PlanType.FREEMIUM)
    assert again.allowed
    assert again.remaining == 0


async def test_counter_is_seeded_from_existing_sets(session):
    user_id = await make_user(session)
    await add_sets(session, user_id, 3)

    reservation = await QuotaTracker(session).reserve(user_id, PlanType.FREEMIUM)

    assert reservation.allowed
    assert reservation.used == 4


async def test_stale_check_cannot_take_the_last_slot(db):
    async with async_session_maker() as setup:
        user_id = await make_user(setup)
        await add_sets(setup, user_id, FREEMIUM_DAILY_LIMIT - 1)

    async with async_session_maker() as first, async_session_maker() as second:
        a, b = QuotaTracker(first), QuotaTracker(second)

        # Both requests pass the read-only gate before either reserves
        assert (await a.check(user_id, PlanType.FREEMIUM)).allowed
        assert (await b.check(user_id, PlanType.FREEMIUM)).allowed

        won = await a.reserve(user_id, PlanType.FREEMIUM)
        await first.commit()
        lost = await b.reserve(user_id, PlanType.FREEMIUM)
        await second.rollback()

    assert won.allowed
    assert not lost.allowed


async def test_premium_reservations_are_unbounded(session):
    user_id = await make_user(session, plan=PlanType.PREMIUM)
    tracker = QuotaTracker(session)

    for _ in range(FREEMIUM_DAILY_LIMIT + 2):
        reservation = await tracker.reserve(user_id, PlanType.PREMIUM)
        assert reservation.allowed
        assert reservation.remaining == UNLIMITED_REMAINING


@pytest.mark.parametrize("plan", [PlanType.FREEMIUM, PlanType.PREMIUM])
async def test_release_never_goes_negative(session, plan):
    user_id = await make_user(session, plan=plan)
    tracker = QuotaTracker(session)

    await tracker.release(user_id, tracker.today)
    await tracker.reserve(user_id, plan)
    await tracker.release(user_id, tracker.today)
    await tracker.release(user_id, tracker.today)

    assert await tracker._counter_value(user_id, tracker.today) == 0
