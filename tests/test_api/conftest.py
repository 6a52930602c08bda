from __future__ import annotations

from types import SimpleNamespace

import pytest

from taskhub.db.projects import create_project
from taskhub.models import GlobalRole, ProjectRole, Task
from taskhub.security.membership import MembershipIndex


@pytest.fixture
def world(api_sessionmaker, make_user):
    """
    Project P created by Ana (creator); Leo is lead, Cora collaborator; task T in P.
    Root is a global admin without membership; Olga is an unrelated member.
    """

    with api_sessionmaker() as db:
        ana = make_user(db, "Ana")
        leo = make_user(db, "Leo")
        cora = make_user(db, "Cora")
        olga = make_user(db, "Olga")
        root = make_user(db, "Root", global_role=GlobalRole.ADMIN)
        db.commit()

        project = create_project(db, ana.id, "Launch", "Website launch")
        index = MembershipIndex(db)
        index.add(leo.id, project.id, ProjectRole.LEAD)
        index.add(cora.id, project.id, ProjectRole.COLLABORATOR)
        task = Task(project_id=project.id, title="Draft copy", assignee_id=cora.id)
        db.add(task)
        db.commit()

        return SimpleNamespace(
            ana=ana.id,
            leo=leo.id,
            cora=cora.id,
            olga=olga.id,
            root=root.id,
            project=project.id,
            task=task.id,
        )
