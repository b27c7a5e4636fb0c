"""Pydantic models for self-quiz sessions built from saved flashcards.

Mirrors the style of the flashcards module: simple Pydantic schemas used by
API handlers and the in-memory quiz session manager.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class QuizMode(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    FILL_BLANK = "fill-blank"
    TRUE_FALSE = "true-false"


class QuizQuestion(BaseModel):
    """A single question; ``answer`` is never sent to the client."""

    prompt: str
    answer: str
    options: list[str] = Field(default_factory=list)


class QuestionView(BaseModel):
    index: int
    prompt: str
    options: list[str] = Field(default_factory=list)
    answered: bool = False


class AnswerResult(BaseModel):
    question_index: int
    correct: bool
    correct_answer: str
    score: int
    completed: bool


class QuizState(BaseModel):
    id: str
    mode: QuizMode
    questions: list[QuestionView] = Field(default_factory=list)
    total_questions: int = 0
    answered_count: int = 0
    score: int = 0
    completed: bool = False
    created_at: str
    completed_at: Optional[str] = None
