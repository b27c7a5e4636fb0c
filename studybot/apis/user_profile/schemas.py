from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from studybot.core.db.schemas.user_profile import PlanType


class UserProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)


class PlanUpdate(BaseModel):
    plan_type: PlanType


class UserProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    display_name: Optional[str] = None
    plan_type: PlanType
    created_at: datetime
    updated_at: datetime
