from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Enum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from studybot.core.db.base import Base, utcnow

if TYPE_CHECKING:
    from .auth import User


class PlanType(enum.Enum):
    FREEMIUM = "freemium"
    PREMIUM = "premium"


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, unique=True, index=True
    )
    display_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    plan_type: Mapped[PlanType] = mapped_column(
        Enum(PlanType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PlanType.FREEMIUM,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")

    @property
    def is_freemium(self) -> bool:
        return self.plan_type == PlanType.FREEMIUM


__all__ = [
    "PlanType",
    "UserProfile",
]
