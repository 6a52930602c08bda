"""
Tests for project creation (project row + creator membership in one transaction).
"""
from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taskhub.db.projects import create_project
from taskhub.models import Membership, Project, ProjectRole
from taskhub.security.errors import ProjectCreationFailed


def test_create_project_adds_creator_membership(db_session, make_user):
    ana = make_user(db_session, "Ana")

    project = create_project(db_session, ana.id, "Launch", "Q3 launch")

    assert project.id is not None
    assert project.creator_id == ana.id
    memberships = db_session.scalars(select(Membership).where(Membership.project_id == project.id)).all()
    assert [(m.user_id, m.project_role) for m in memberships] == [(ana.id, ProjectRole.CREATOR)]


def test_create_project_rolls_back_on_failure(tables):
    # Plain session (no outer transaction) so the rollback is observable.
    with Session(tables) as db:
        with pytest.raises(ProjectCreationFailed):
            create_project(db, 99999, "Orphan")

        assert db.scalar(select(func.count(Project.id))) == 0
        assert db.scalar(select(func.count(Membership.id))) == 0
