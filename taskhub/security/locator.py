from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.models import Task
from taskhub.security.errors import TaskNotFound


class TaskLocator:
    """Resolves a task id to its owning project. One read per call."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def locate(self, task_id: int) -> Task:
        task = self._db.get(Task, task_id)
        if task is None:
            raise TaskNotFound()
        return task

    def find_project_id_for_task(self, task_id: int) -> int:
        project_id = self._db.execute(select(Task.project_id).where(Task.id == task_id)).scalar_one_or_none()
        if project_id is None:
            raise TaskNotFound()
        return project_id
