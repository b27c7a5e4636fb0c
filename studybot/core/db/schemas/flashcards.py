from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    Enum,
    text as sa_text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from studybot.core.db.base import Base, utcnow

if TYPE_CHECKING:
    from .auth import User
    from .subjects import Subject


class GenerationStatus(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class FlashcardSet(Base):
    """One generation result: an ordered card list stored as a single JSON payload."""

    __tablename__ = "flashcard_sets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    subject_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("subjects.id"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    subject_label: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    original_notes: Mapped[str] = mapped_column(Text, nullable=False)
    cards: Mapped[list[dict]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        server_default=sa_text("'[]'"),
    )  # [{question, answer, subject}, ...]
    status: Mapped[GenerationStatus] = mapped_column(
        Enum(GenerationStatus, values_callable=lambda e: [m.value for m in e]),
        default=GenerationStatus.PENDING,
        nullable=False,
        index=True,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        index=True,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="flashcard_sets")
    subject: Mapped[Optional["Subject"]] = relationship(
        "Subject", back_populates="flashcard_sets"
    )


__all__ = [
    "GenerationStatus",
    "FlashcardSet",
]
