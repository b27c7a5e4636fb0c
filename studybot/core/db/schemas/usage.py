from __future__ import annotations

from datetime import date
from sqlalchemy import Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from studybot.core.db.base import Base


class GenerationUsage(Base):
    """Per-user, per-UTC-day generation counter used for guarded reservations."""

    __tablename__ = "generation_usage"
    __table_args__ = (
        UniqueConstraint("user_id", "usage_date", name="uq_generation_usage_user_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    usage_date: Mapped[date] = mapped_column(Date, nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = ["GenerationUsage"]
