from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from taskhub.models import GlobalRole


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    global_role: GlobalRole
    is_active: bool
    created_at: datetime


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
