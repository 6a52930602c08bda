"""
Role mutation guard.

The creator's membership is permanent: its role can never be changed and the row can
never be removed, by anyone, including the creator and global admins. Both mutations
are single-row statements committed in their own transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskhub.models import Membership, Project, ProjectRole
from taskhub.security.context import AuthorizationContext
from taskhub.security.errors import (
    CreatorRoleImmutable,
    InsufficientRole,
    InternalError,
    MemberNotFound,
    ProjectNotFound,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleChange:
    user_id: int
    project_id: int
    previous_role: ProjectRole
    new_role: ProjectRole


def change_role(db: Session, authz: AuthorizationContext, target_user_id: int, new_role: ProjectRole) -> RoleChange:
    _require_creator_or_admin(authz)

    creator_id = _creator_id(db, authz.project_id)
    if target_user_id == creator_id or new_role is ProjectRole.CREATOR:
        logger.info(
            "Rejected creator role change project_id=%s actor_id=%s target_id=%s new_role=%s",
            authz.project_id,
            authz.principal.id,
            target_user_id,
            new_role.value,
        )
        raise CreatorRoleImmutable()

    try:
        membership = db.execute(
            select(Membership)
            .where(Membership.user_id == target_user_id, Membership.project_id == authz.project_id)
            .with_for_update()
        ).scalar_one_or_none()
        if membership is None:
            raise MemberNotFound()

        previous_role = membership.project_role
        membership.project_role = new_role
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Role change failed project_id=%s target_id=%s", authz.project_id, target_user_id)
        raise InternalError() from exc

    logger.info(
        "Project role changed project_id=%s target_id=%s %s -> %s",
        authz.project_id,
        target_user_id,
        previous_role.value,
        new_role.value,
    )
    return RoleChange(
        user_id=target_user_id,
        project_id=authz.project_id,
        previous_role=previous_role,
        new_role=new_role,
    )


def remove_member(db: Session, authz: AuthorizationContext, target_user_id: int) -> None:
    _require_creator_or_admin(authz)

    if target_user_id == _creator_id(db, authz.project_id):
        logger.info(
            "Rejected creator removal project_id=%s actor_id=%s", authz.project_id, authz.principal.id
        )
        raise CreatorRoleImmutable("The project creator cannot be removed from the project")

    try:
        result = db.execute(
            delete(Membership).where(
                Membership.user_id == target_user_id,
                Membership.project_id == authz.project_id,
            )
        )
        if result.rowcount == 0:
            raise MemberNotFound()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Member removal failed project_id=%s target_id=%s", authz.project_id, target_user_id)
        raise InternalError() from exc

    logger.info("Member removed project_id=%s target_id=%s", authz.project_id, target_user_id)


def _require_creator_or_admin(authz: AuthorizationContext) -> None:
    if authz.principal.is_admin or authz.effective_role is ProjectRole.CREATOR:
        return
    raise InsufficientRole({ProjectRole.CREATOR})


def _creator_id(db: Session, project_id: int) -> int:
    creator_id = db.execute(select(Project.creator_id).where(Project.id == project_id)).scalar_one_or_none()
    if creator_id is None:
        raise ProjectNotFound()
    return creator_id
