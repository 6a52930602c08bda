from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskhub.db.session import get_db
from taskhub.models import Task
from taskhub.schemas.envelope import Envelope
from taskhub.schemas.tasks import TaskCreateIn, TaskOut, TaskStatusIn, TaskUpdateIn
from taskhub.security.context import AuthorizationContext
from taskhub.security.dependencies import require_authorization
from taskhub.security.errors import InvalidAssignee, TaskNotFound
from taskhub.security.membership import MembershipIndex

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _located_task(authz: AuthorizationContext) -> Task:
    # Task-indirected routes carry the task the resolver already loaded.
    if authz.task is None:
        raise TaskNotFound()
    return authz.task


def _check_assignee(db: Session, project_id: int, assignee_id: int | None) -> None:
    if assignee_id is not None and MembershipIndex(db).get(assignee_id, project_id) is None:
        raise InvalidAssignee()


@router.post("", response_model=Envelope[TaskOut], status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreateIn,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[TaskOut]:
    _check_assignee(db, authz.project_id, payload.assignee_id)

    task = Task(
        project_id=authz.project_id,
        title=payload.title,
        description=payload.description,
        assignee_id=payload.assignee_id,
        due_date=payload.due_date,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("Task created task_id=%s project_id=%s", task.id, task.project_id)
    return Envelope(message="Task created", data=TaskOut.model_validate(task))


@router.get("/{task_id}", response_model=Envelope[TaskOut])
def get_task(task_id: int, authz: AuthorizationContext = Depends(require_authorization)) -> Envelope[TaskOut]:
    return Envelope(data=TaskOut.model_validate(_located_task(authz)))


@router.put("/{task_id}", response_model=Envelope[TaskOut])
def update_task(
    task_id: int,
    payload: TaskUpdateIn,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[TaskOut]:
    task = _located_task(authz)
    _check_assignee(db, task.project_id, payload.assignee_id)

    task.title = payload.title
    task.description = payload.description
    task.status = payload.status
    task.assignee_id = payload.assignee_id
    task.due_date = payload.due_date
    db.commit()
    db.refresh(task)
    return Envelope(message="Task updated", data=TaskOut.model_validate(task))


@router.patch("/{task_id}/status", response_model=Envelope[TaskOut])
def set_status(
    task_id: int,
    payload: TaskStatusIn,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[TaskOut]:
    task = _located_task(authz)
    task.status = payload.status
    db.commit()
    db.refresh(task)
    return Envelope(message=f"Task marked as {payload.status.value}", data=TaskOut.model_validate(task))


@router.delete("/{task_id}", response_model=Envelope[None])
def delete_task(
    task_id: int,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[None]:
    db.delete(_located_task(authz))
    db.commit()
    logger.info("Task deleted task_id=%s project_id=%s", task_id, authz.project_id)
    return Envelope(message="Task deleted")
