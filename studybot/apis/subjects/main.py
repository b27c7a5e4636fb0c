from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.core.config import settings
from studybot.core.db.base import get_session
from studybot.core.db_services import SubjectService
from studybot.core.errors import ResourceNotFound
from studybot.apis.deps import CurrentUser
from .schemas import SubjectCreate, SubjectRead, SubjectUpdate


router = APIRouter()


@router.get(
    f"/{settings.app.version}/subjects",
    response_model=list[SubjectRead],
    tags=["subjects"],
)
async def list_subjects(
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    subjects = await SubjectService(session).list_subjects(user.id)
    return [SubjectRead.model_validate(s) for s in subjects]


@router.post(
    f"/{settings.app.version}/subjects",
    response_model=SubjectRead,
    status_code=status.HTTP_201_CREATED,
    tags=["subjects"],
)
async def create_subject(
    data: SubjectCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    """Create a subject; freemium accounts are limited to three."""
    subject = await SubjectService(session).create_subject(
        user_id=user.id,
        name=data.name,
        description=data.description,
        color=data.color,
    )
    return SubjectRead.model_validate(subject)


@router.get(
    f"/{settings.app.version}/subjects/{{subject_id}}",
    response_model=SubjectRead,
    tags=["subjects"],
)
async def get_subject(
    subject_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    subject = await SubjectService(session).get_subject(user.id, subject_id)
    if not subject:
        raise ResourceNotFound("Subject not found")
    return SubjectRead.model_validate(subject)


@router.put(
    f"/{settings.app.version}/subjects/{{subject_id}}",
    response_model=SubjectRead,
    tags=["subjects"],
)
async def update_subject(
    subject_id: int,
    data: SubjectUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    service = SubjectService(session)
    subject = await service.get_subject(user.id, subject_id)
    if not subject:
        raise ResourceNotFound("Subject not found")
    subject = await service.update_subject(subject, **data.model_dump(exclude_unset=True))
    return SubjectRead.model_validate(subject)


@router.delete(
    f"/{settings.app.version}/subjects/{{subject_id}}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["subjects"],
)
async def delete_subject(
    subject_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
):
    """Delete a subject; its flashcard sets are kept but unlinked."""
    service = SubjectService(session)
    subject = await service.get_subject(user.id, subject_id)
    if not subject:
        raise ResourceNotFound("Subject not found")
    await service.delete_subject(subject)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
