from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.core.config import settings
from studybot.core.db.base import get_session
from studybot.core.db_services import ProfileService
from studybot.apis.deps import CurrentUser
from .schemas import PlanUpdate, UserProfileRead, UserProfileUpdate


router = APIRouter()


@router.get(
    f"/{settings.app.version}/profile",
    response_model=UserProfileRead,
    tags=["user_profile"],
)
async def get_profile(
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    """Get user profile, auto-create a freemium one if it doesn't exist"""
    profile = await ProfileService(session).get_or_create_profile(user.id)
    return UserProfileRead.model_validate(profile)


@router.put(
    f"/{settings.app.version}/profile",
    response_model=UserProfileRead,
    tags=["user_profile"],
)
async def update_profile(
    data: UserProfileUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    profile = await ProfileService(session).get_or_create_profile(user.id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(profile, field, value)

    await session.commit()
    await session.refresh(profile)

    return UserProfileRead.model_validate(profile)


@router.put(
    f"/{settings.app.version}/profile/plan",
    response_model=UserProfileRead,
    tags=["user_profile"],
)
async def change_plan(
    data: PlanUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    """Switch between the freemium and premium plans.

    Billing lives outside this service; the plan is taken as given.
    """
    profile = await ProfileService(session).change_plan(user.id, data.plan_type)
    return UserProfileRead.model_validate(profile)
