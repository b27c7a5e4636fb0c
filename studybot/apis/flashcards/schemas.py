from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from studybot.core.db.schemas.flashcards import FlashcardSet as DBSet
from studybot.modules.flashcards.models.flashcards import Flashcard


class GenerateRequest(BaseModel):
    """Body of ``POST /generate``; the legacy ``prompt``/``subject`` keys are accepted too."""

    model_config = ConfigDict(populate_by_name=True)

    study_notes: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("studyNotes", "study_notes", "prompt"),
    )
    subject_label: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("subjectLabel", "subject_label", "subject"),
    )
    subject_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("subjectId", "subject_id"),
    )


class FlashcardSetRead(BaseModel):
    id: int
    title: str
    subject_label: Optional[str] = None
    subject_id: Optional[int] = None
    status: str
    flashcards: list[Flashcard] = Field(default_factory=list)
    created_at: str
    completed_at: Optional[str] = None

    @classmethod
    def from_db(cls, s: DBSet) -> "FlashcardSetRead":
        return cls(
            id=s.id,
            title=s.title,
            subject_label=s.subject_label,
            subject_id=s.subject_id,
            status=s.status.value,
            flashcards=[Flashcard.model_validate(c) for c in (s.cards or [])],
            created_at=s.created_at.isoformat(),
            completed_at=s.completed_at.isoformat() if s.completed_at else None,
        )


class FlashcardSetSummary(BaseModel):
    id: int
    title: str
    subject_label: Optional[str] = None
    subject_id: Optional[int] = None
    status: str
    card_count: int
    created_at: str


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    flashcards: list[Flashcard]
    remaining_count: int = Field(alias="remainingCount")
    plan_type: str = Field(alias="planType")
    saved_record: FlashcardSetRead = Field(alias="savedRecord")


class UsageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_type: str = Field(alias="planType")
    used_today: int = Field(alias="usedToday")
    daily_limit: Optional[int] = Field(alias="dailyLimit")
    remaining_count: int = Field(alias="remainingCount")
