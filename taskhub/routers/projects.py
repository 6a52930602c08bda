from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.db.projects import create_project
from taskhub.db.session import get_db
from taskhub.models import Membership, Project, ProjectRole, Task, User
from taskhub.schemas.envelope import Envelope
from taskhub.schemas.projects import (
    InviteIn,
    MemberOut,
    MyProjectOut,
    ProjectDetailOut,
    ProjectIn,
    ProjectOut,
    ProjectStatsOut,
    RemoveMemberIn,
    RoleChangeIn,
    RoleChangeOut,
)
from taskhub.schemas.tasks import TaskOut
from taskhub.schemas.users import UserBrief
from taskhub.security import guard
from taskhub.security.context import AuthorizationContext, Principal
from taskhub.security.dependencies import require_authorization, require_principal
from taskhub.security.errors import ProjectNotFound, SelfInvitation, UserNotFound
from taskhub.security.membership import MembershipIndex

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


def _member_out(membership: Membership) -> MemberOut:
    return MemberOut(
        user_id=membership.user_id,
        name=membership.user.name,
        email=membership.user.email,
        project_role=membership.project_role,
        joined_at=membership.joined_at,
    )


def _load_project(db: Session, authz: AuthorizationContext) -> Project:
    project = db.get(Project, authz.project_id)
    if project is None:
        raise ProjectNotFound()
    return project


@router.post("", response_model=Envelope[ProjectOut], status_code=status.HTTP_201_CREATED)
def create(
    payload: ProjectIn,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
) -> Envelope[ProjectOut]:
    project = create_project(db, principal.id, payload.name, payload.description)
    return Envelope(message="Project created", data=ProjectOut.model_validate(project))


@router.get("", response_model=Envelope[list[MyProjectOut]])
def list_mine(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
) -> Envelope[list[MyProjectOut]]:
    rows = MembershipIndex(db).list_projects_for_user(principal.id)
    data = [
        MyProjectOut(**ProjectOut.model_validate(project).model_dump(), project_role=role)
        for project, role in rows
    ]
    return Envelope(data=data)


@router.get("/{project_id}", response_model=Envelope[ProjectDetailOut])
def detail(
    project_id: int,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[ProjectDetailOut]:
    project = _load_project(db, authz)
    index = MembershipIndex(db)
    stats = index.project_stats(project.id)
    data = ProjectDetailOut(
        **ProjectOut.model_validate(project).model_dump(),
        your_role=authz.effective_role,
        members=[_member_out(m) for m in index.list_by_project(project.id)],
        stats=ProjectStatsOut(**vars(stats)),
    )
    return Envelope(data=data)


@router.put("/{project_id}", response_model=Envelope[ProjectOut])
def update(
    project_id: int,
    payload: ProjectIn,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[ProjectOut]:
    project = _load_project(db, authz)
    project.name = payload.name
    project.description = payload.description
    db.commit()
    db.refresh(project)
    return Envelope(message="Project updated", data=ProjectOut.model_validate(project))


@router.delete("/{project_id}", response_model=Envelope[None])
def remove(
    project_id: int,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[None]:
    project = _load_project(db, authz)
    db.delete(project)
    db.commit()
    logger.info("Project deleted project_id=%s actor_id=%s", authz.project_id, authz.principal.id)
    return Envelope(message="Project deleted")


@router.get("/{project_id}/members", response_model=Envelope[list[MemberOut]])
def members(
    project_id: int,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[list[MemberOut]]:
    rows = MembershipIndex(db).list_by_project(authz.project_id)
    return Envelope(data=[_member_out(m) for m in rows])


@router.post("/{project_id}/invite", response_model=Envelope[MemberOut], status_code=status.HTTP_201_CREATED)
def invite(
    project_id: int,
    payload: InviteIn,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[MemberOut]:
    user = db.execute(select(User).where(User.email == payload.email)).scalar_one_or_none()
    if user is None or not user.is_active:
        raise UserNotFound()
    if user.id == authz.principal.id:
        raise SelfInvitation()

    membership = MembershipIndex(db).add(user.id, authz.project_id, ProjectRole(payload.project_role))
    db.commit()
    db.refresh(membership)
    return Envelope(message="User invited to the project", data=_member_out(membership))


@router.patch("/{project_id}/role", response_model=Envelope[RoleChangeOut])
def change_role(
    project_id: int,
    payload: RoleChangeIn,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[RoleChangeOut]:
    change = guard.change_role(db, authz, payload.user_id, ProjectRole(payload.project_role))
    return Envelope(message="Role updated", data=RoleChangeOut(**vars(change)))


@router.delete("/{project_id}/members", response_model=Envelope[None])
def remove_member(
    project_id: int,
    payload: RemoveMemberIn,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[None]:
    guard.remove_member(db, authz, payload.user_id)
    return Envelope(message="User removed from the project")


@router.get("/{project_id}/users/search", response_model=Envelope[list[UserBrief]])
def search_invitable(
    project_id: int,
    search: str = Query(default="", max_length=100),
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[list[UserBrief]]:
    users = MembershipIndex(db).search_invitable_users(authz.project_id, search)
    return Envelope(data=[UserBrief.model_validate(u) for u in users])


@router.get("/{project_id}/tasks", response_model=Envelope[list[TaskOut]])
def project_tasks(
    project_id: int,
    authz: AuthorizationContext = Depends(require_authorization),
    db: Session = Depends(get_db),
) -> Envelope[list[TaskOut]]:
    stmt = (
        select(Task)
        .where(Task.project_id == authz.project_id)
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    return Envelope(data=[TaskOut.model_validate(t) for t in db.scalars(stmt).all()])
