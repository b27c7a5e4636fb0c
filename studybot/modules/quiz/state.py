"""In-memory self-quiz session manager.

Sessions are kept in-process only and belong to the user who created them.
Each session grades answers server-side; a question can be answered once and
the session completes when every question has an answer.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import uuid4

from studybot.core.errors import ResourceNotFound, ValidationFailure
from studybot.modules.quiz.generator import is_correct
from studybot.modules.quiz.models import (
    AnswerResult,
    QuestionView,
    QuizMode,
    QuizQuestion,
    QuizState,
)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if not dt:
        return None
    return dt.isoformat().replace("+00:00", "Z")


@dataclass
class QuizSession:
    id: str
    user_id: int
    mode: QuizMode
    questions: list[QuizQuestion]
    created_at: datetime = field(default_factory=_now_utc)
    completed_at: Optional[datetime] = None
    score: int = 0
    answers: Dict[int, bool] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def completed(self) -> bool:
        return len(self.answers) >= len(self.questions)

    def to_state(self) -> QuizState:
        return QuizState(
            id=self.id,
            mode=self.mode,
            questions=[
                QuestionView(
                    index=i,
                    prompt=q.prompt,
                    options=q.options,
                    answered=i in self.answers,
                )
                for i, q in enumerate(self.questions)
            ],
            total_questions=len(self.questions),
            answered_count=len(self.answers),
            score=self.score,
            completed=self.completed,
            created_at=_iso(self.created_at) or "",
            completed_at=_iso(self.completed_at),
        )


class QuizSessionManager:
    def __init__(self, *, max_sessions_per_user: int = 20) -> None:
        self.sessions: Dict[str, QuizSession] = {}
        self.max_sessions_per_user = max_sessions_per_user

    def create_session(
        self, *, user_id: int, mode: QuizMode, questions: list[QuizQuestion]
    ) -> QuizSession:
        if not questions:
            raise ValidationFailure("No flashcards available for this quiz")
        self._evict_oldest(user_id)
        session = QuizSession(
            id=uuid4().hex[:12], user_id=user_id, mode=mode, questions=questions
        )
        self.sessions[session.id] = session
        return session

    def _evict_oldest(self, user_id: int) -> None:
        owned = sorted(
            (s for s in self.sessions.values() if s.user_id == user_id),
            key=lambda s: s.created_at,
        )
        while len(owned) >= self.max_sessions_per_user:
            self.sessions.pop(owned.pop(0).id, None)

    def get_session(self, session_id: str, user_id: int) -> QuizSession:
        session = self.sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise ResourceNotFound("Quiz session not found")
        return session

    async def submit_answer(
        self,
        session_id: str,
        user_id: int,
        *,
        question_index: int,
        answer: Optional[str] = None,
        choice_index: Optional[int] = None,
    ) -> AnswerResult:
        session = self.get_session(session_id, user_id)
        async with session._lock:
            if not 0 <= question_index < len(session.questions):
                raise ValidationFailure("Question index out of range")
            if question_index in session.answers:
                raise ValidationFailure("Question already answered")
            question = session.questions[question_index]
            correct = is_correct(
                question, session.mode, answer=answer, choice_index=choice_index
            )
            session.answers[question_index] = correct
            if correct:
                session.score += 1
            if session.completed and session.completed_at is None:
                session.completed_at = _now_utc()
            return AnswerResult(
                question_index=question_index,
                correct=correct,
                correct_answer=question.answer,
                score=session.score,
                completed=session.completed,
            )


quiz_manager = QuizSessionManager()
