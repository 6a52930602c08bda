"""
Project membership index: the (user, project) -> project role fact table.

Every authorization decision reads from here, so reads go through the request's own
session and always see the latest committed write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from taskhub.models import Membership, Project, ProjectRole, Task, TaskStatus, User
from taskhub.security.errors import DuplicateMember

logger = logging.getLogger(__name__)


_ROLE_RANK = case(
    (Membership.project_role == ProjectRole.CREATOR, ProjectRole.CREATOR.rank),
    (Membership.project_role == ProjectRole.LEAD, ProjectRole.LEAD.rank),
    else_=ProjectRole.COLLABORATOR.rank,
)


@dataclass(frozen=True)
class ProjectStats:
    members: int
    tasks: int
    pending: int
    in_progress: int
    completed: int


class MembershipIndex:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, user_id: int, project_id: int) -> Membership | None:
        return self._db.execute(
            select(Membership).where(
                Membership.user_id == user_id,
                Membership.project_id == project_id,
            )
        ).scalar_one_or_none()

    def project_exists(self, project_id: int) -> bool:
        return self._db.execute(select(Project.id).where(Project.id == project_id)).first() is not None

    def add(self, user_id: int, project_id: int, role: ProjectRole) -> Membership:
        """
        Insert a membership row. Never overwrites: an existing row raises DuplicateMember.

        The row is flushed, not committed; the caller owns the transaction and decides
        whether to roll it back when DuplicateMember is raised.
        """

        if self.get(user_id, project_id) is not None:
            raise DuplicateMember()

        membership = Membership(user_id=user_id, project_id=project_id, project_role=role)
        self._db.add(membership)
        try:
            self._db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert for the same pair.
            logger.info("Duplicate membership insert user_id=%s project_id=%s", user_id, project_id)
            raise DuplicateMember() from exc

        logger.info("Membership added user_id=%s project_id=%s role=%s", user_id, project_id, role.value)
        return membership

    def list_by_project(self, project_id: int) -> list[Membership]:
        stmt = (
            select(Membership)
            .join(User, User.id == Membership.user_id)
            .where(Membership.project_id == project_id)
            .options(joinedload(Membership.user))
            .order_by(_ROLE_RANK, User.name, User.id)
        )
        return list(self._db.scalars(stmt).all())

    def list_projects_for_user(self, user_id: int) -> list[tuple[Project, ProjectRole]]:
        stmt = (
            select(Project, Membership.project_role)
            .join(Membership, Membership.project_id == Project.id)
            .where(Membership.user_id == user_id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        return [(project, role) for project, role in self._db.execute(stmt).all()]

    def search_invitable_users(self, project_id: int, term: str = "", limit: int = 20) -> list[User]:
        members = select(Membership.user_id).where(Membership.project_id == project_id)
        pattern = f"%{term}%"
        stmt = (
            select(User)
            .where(User.id.not_in(members), User.is_active.is_(True))
            .where(User.name.like(pattern) | User.email.like(pattern))
            .order_by(User.name, User.id)
            .limit(limit)
        )
        return list(self._db.scalars(stmt).all())

    def project_stats(self, project_id: int) -> ProjectStats:
        members = self._db.scalar(
            select(func.count(Membership.id)).where(Membership.project_id == project_id)
        )
        by_status = dict(
            self._db.execute(
                select(Task.status, func.count(Task.id)).where(Task.project_id == project_id).group_by(Task.status)
            ).all()
        )
        return ProjectStats(
            members=members or 0,
            tasks=sum(by_status.values()),
            pending=by_status.get(TaskStatus.PENDING, 0),
            in_progress=by_status.get(TaskStatus.IN_PROGRESS, 0),
            completed=by_status.get(TaskStatus.COMPLETED, 0),
        )
