from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studybot.core.db.base import Base, utcnow

if TYPE_CHECKING:
    from .auth import User
    from .flashcards import FlashcardSet


DEFAULT_SUBJECT_COLOR = "#8B5CF6"


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(
        String, nullable=False, default=DEFAULT_SUBJECT_COLOR
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )

    user: Mapped["User"] = relationship("User", back_populates="subjects")
    flashcard_sets: Mapped[list["FlashcardSet"]] = relationship(
        "FlashcardSet", back_populates="subject"
    )


__all__ = ["DEFAULT_SUBJECT_COLOR", "Subject"]
