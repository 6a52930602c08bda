"""Tests for the YAML route security config."""
from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from taskhub.models import GlobalRole, ProjectRole
from taskhub.security.config import (
    ProjectReference,
    ResolutionStrategy,
    SecurityConfig,
    SecurityConfigModel,
    load_security_config,
)

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "security_config.yaml"


def _config(**security) -> SecurityConfig:
    return SecurityConfig(SecurityConfigModel.model_validate(security))


def test_repo_config_declares_task_routes_by_template():
    config = load_security_config(REPO_CONFIG)

    read = config.match("/tasks/{task_id}", "get")
    delete = config.match("/tasks/{task_id}", "DELETE")
    create = config.match("/tasks", "POST")

    assert read.project_ref == ProjectReference(ResolutionStrategy.TASK_INDIRECTED, "task_id")
    assert read.project_roles == frozenset(ProjectRole)
    assert delete.project_roles == frozenset({ProjectRole.CREATOR})
    assert create.project_ref == ProjectReference(ResolutionStrategy.BODY_FIELD, "project_id")
    assert config.admin_bypasses_membership is False


def test_concrete_urls_do_not_match_templates():
    config = load_security_config(REPO_CONFIG)

    rule = config.match("/tasks/5", "GET")

    assert rule.project_ref is None
    assert rule.auth_required is True


def test_unmatched_route_falls_back_to_default():
    config = _config(default={"auth_required": False})

    rule = config.match("/anything", "GET")

    assert rule.auth_required is False
    assert rule.required_roles == frozenset()
    assert rule.project_ref is None


def test_role_requirements_imply_auth():
    config = _config(
        default={"auth_required": False},
        routes=[{"path": "/users", "methods": ["GET"], "required_roles": ["admin"]}],
    )

    rule = config.match("/users", "GET")

    assert rule.auth_required is True
    assert rule.required_roles == frozenset({GlobalRole.ADMIN})


def test_project_ref_uses_strategy_default_field():
    config = _config(
        routes=[
            {
                "path": "/projects/{project_id}",
                "methods": ["PUT"],
                "project_roles": ["creator"],
                "project_ref": {"strategy": "direct"},
            }
        ]
    )

    assert config.match("/projects/{project_id}", "PUT").project_ref.field == "project_id"


def test_project_roles_without_ref_rejected():
    with pytest.raises(ValidationError):
        _config(routes=[{"path": "/x", "project_roles": ["creator"]}])


def test_public_route_with_roles_rejected():
    with pytest.raises(ValidationError):
        _config(
            routes=[
                {
                    "path": "/x/{project_id}",
                    "auth_required": False,
                    "project_roles": ["lead"],
                    "project_ref": {"strategy": "direct"},
                }
            ]
        )


def test_unknown_strategy_rejected():
    with pytest.raises(ValidationError):
        _config(routes=[{"path": "/x", "project_roles": ["lead"], "project_ref": {"strategy": "url_guess"}}])


def test_duplicate_rule_rejected():
    with pytest.raises(ValueError, match="Duplicate security rule"):
        _config(routes=[{"path": "/x", "methods": ["GET"]}, {"path": "/x", "methods": ["get", "POST"]}])


def test_unknown_paths_reported():
    config = _config(routes=[{"path": "/projects"}, {"path": "/projcts/{project_id}"}])

    assert config.unknown_paths(["/projects", "/tasks"]) == ["/projcts/{project_id}"]


def test_missing_security_key(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("routes: []\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Missing top-level 'security' key"):
        load_security_config(path)
