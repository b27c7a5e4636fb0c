"""Pydantic models for generated flashcards."""

from pydantic import BaseModel, Field


DEFAULT_SUBJECT = "General"


class Flashcard(BaseModel):
    """Simple question/answer flashcard tagged with its subject label."""

    question: str
    answer: str
    subject: str = DEFAULT_SUBJECT


class GenerationOutcome(BaseModel):
    """What one successful generation hands back to the caller."""

    cards: list[Flashcard] = Field(default_factory=list)
    remaining_count: int
    plan_type: str
    saved_record_id: int
