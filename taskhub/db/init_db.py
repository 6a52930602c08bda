from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.db.base import Base
from taskhub.db.session import SessionLocal, engine
from taskhub.models import GlobalRole, Membership, Project, ProjectRole, Task, TaskStatus, User


def init_db() -> None:
    """
    Create tables + seed demo data.

    Deliberately small and deterministic so the authorization behavior can be tried
    without additional setup.
    """

    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(User.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    admin = User(name="Administrator", email="admin@example.com", global_role=GlobalRole.ADMIN)
    ana = User(name="Ana Creator", email="ana@example.com", global_role=GlobalRole.MEMBER)
    leo = User(name="Leo Lead", email="leo@example.com", global_role=GlobalRole.MEMBER)
    cora = User(name="Cora Collaborator", email="cora@example.com", global_role=GlobalRole.MEMBER)
    db.add_all([admin, ana, leo, cora])
    db.flush()

    launch = Project(name="Website launch", description="Demo project", creator_id=ana.id)
    db.add(launch)
    db.flush()

    db.add_all(
        [
            Membership(user_id=ana.id, project_id=launch.id, project_role=ProjectRole.CREATOR),
            Membership(user_id=leo.id, project_id=launch.id, project_role=ProjectRole.LEAD),
            Membership(user_id=cora.id, project_id=launch.id, project_role=ProjectRole.COLLABORATOR),
        ]
    )
    db.add_all(
        [
            Task(
                project_id=launch.id,
                title="Draft landing page copy",
                status=TaskStatus.IN_PROGRESS,
                assignee_id=cora.id,
                due_date=date(2026, 11, 30),
            ),
            Task(project_id=launch.id, title="Pick hosting provider", assignee_id=leo.id),
        ]
    )

    db.commit()
