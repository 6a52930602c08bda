from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from taskhub.models import ProjectRole
from taskhub.schemas.envelope import RowId

# The creator role only exists through project creation.
AssignableRole = Literal["lead", "collaborator"]


class ProjectIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    creator_id: int
    created_at: datetime


class MyProjectOut(ProjectOut):
    project_role: ProjectRole


class MemberOut(BaseModel):
    user_id: int
    name: str
    email: str
    project_role: ProjectRole
    joined_at: datetime


class ProjectStatsOut(BaseModel):
    members: int
    tasks: int
    pending: int
    in_progress: int
    completed: int


class ProjectDetailOut(ProjectOut):
    your_role: ProjectRole | None
    members: list[MemberOut]
    stats: ProjectStatsOut


class InviteIn(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    project_role: AssignableRole = "collaborator"


class RoleChangeIn(BaseModel):
    user_id: RowId
    project_role: AssignableRole


class RoleChangeOut(BaseModel):
    user_id: int
    project_id: int
    previous_role: ProjectRole
    new_role: ProjectRole


class RemoveMemberIn(BaseModel):
    user_id: RowId
