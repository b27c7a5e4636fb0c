from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.core.config import settings
from studybot.core.db.base import get_session
from studybot.core.db_services import FlashcardGenerationService
from studybot.apis.deps import CurrentUser
from studybot.apis.quiz.schemas import CreateSessionRequest, SubmitAnswerRequest
from studybot.modules.flashcards.models.flashcards import Flashcard
from studybot.modules.quiz.generator import build_questions
from studybot.modules.quiz.models import AnswerResult, QuizState
from studybot.modules.quiz.state import quiz_manager


router = APIRouter()


@router.post(
    f"/{settings.app.version}/quiz/sessions",
    response_model=QuizState,
    tags=["quiz"],
)
async def create_session(
    req: CreateSessionRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_session),
) -> QuizState:
    sets = await FlashcardGenerationService(session).list_sets(
        user_id=user.id,
        subject_id=req.subject_id,
        set_ids=req.set_ids,
        completed_only=True,
    )
    cards = [Flashcard.model_validate(c) for s in sets for c in (s.cards or [])]
    questions = build_questions(cards, req.mode, n=req.num_questions)
    quiz = quiz_manager.create_session(
        user_id=user.id, mode=req.mode, questions=questions
    )
    return quiz.to_state()


@router.get(
    f"/{settings.app.version}/quiz/sessions/{{session_id}}",
    response_model=QuizState,
    tags=["quiz"],
)
async def get_session_state(session_id: str, user: CurrentUser) -> QuizState:
    return quiz_manager.get_session(session_id, user.id).to_state()


@router.post(
    f"/{settings.app.version}/quiz/sessions/{{session_id}}/answers",
    response_model=AnswerResult,
    tags=["quiz"],
)
async def submit_answer(
    session_id: str, req: SubmitAnswerRequest, user: CurrentUser
) -> AnswerResult:
    return await quiz_manager.submit_answer(
        session_id,
        user.id,
        question_index=req.question_index,
        answer=req.answer,
        choice_index=req.choice_index,
    )
