from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from studybot.modules.quiz.models import QuizMode


class CreateSessionRequest(BaseModel):
    mode: QuizMode = QuizMode.MULTIPLE_CHOICE
    set_ids: Optional[list[int]] = None
    subject_id: Optional[int] = None
    num_questions: int = Field(default=5, ge=1, le=50)


class SubmitAnswerRequest(BaseModel):
    question_index: int
    answer: Optional[str] = None
    choice_index: Optional[int] = None
