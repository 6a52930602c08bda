from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskhub.models import Membership, Project, ProjectRole
from taskhub.security.errors import ProjectCreationFailed

logger = logging.getLogger(__name__)


def create_project(db: Session, creator_id: int, name: str, description: str | None = None) -> Project:
    """
    Insert a project and its creator membership in one transaction.

    A project never exists without its creator membership; any failure rolls back both rows.
    """

    try:
        project = Project(name=name, description=description, creator_id=creator_id)
        project.memberships.append(Membership(user_id=creator_id, project_role=ProjectRole.CREATOR))
        db.add(project)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Project creation failed creator_id=%s", creator_id)
        raise ProjectCreationFailed() from exc

    db.refresh(project)
    logger.info("Project created project_id=%s creator_id=%s", project.id, creator_id)
    return project
