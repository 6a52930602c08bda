from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from taskhub.models import TaskStatus
from taskhub.schemas.envelope import RowId


class TaskCreateIn(BaseModel):
    project_id: RowId
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    assignee_id: RowId | None = None
    due_date: date | None = None


class TaskUpdateIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    assignee_id: RowId | None = None
    due_date: date | None = None


class TaskStatusIn(BaseModel):
    status: TaskStatus


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    title: str
    description: str | None
    status: TaskStatus
    assignee_id: int | None
    due_date: date | None
    created_at: datetime
