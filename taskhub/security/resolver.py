"""
Project authorization resolver.

Given the route's statically declared ``ProjectReference``, the request parameters and
the authenticated principal, decide which project the request targets and whether the
principal's project role satisfies the route.

Decision order:

1. Resolve the project id with the declared strategy. A task id that does not exist
   fails with ``TaskNotFound`` (never ``MissingProjectReference``).
2. Read the principal's membership. No membership means ``ProjectNotFound`` when the
   project itself is missing, otherwise ``NoProjectAccess``. Global admins are held to
   this check too unless ``admin_bypasses_membership`` is set.
3. Global admins are accepted regardless of the required roles.
4. Members whose role is in ``required_roles`` are accepted.
5. Everyone else gets ``InsufficientRole``.

The only store access is reads through the injected membership index and task locator.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from taskhub.db.base import MAX_ROW_ID
from taskhub.models import ProjectRole, Task
from taskhub.security.config import ProjectReference, ResolutionStrategy
from taskhub.security.context import AuthorizationContext, Principal
from taskhub.security.errors import (
    InsufficientRole,
    MissingProjectReference,
    NoProjectAccess,
    ProjectNotFound,
)
from taskhub.security.locator import TaskLocator
from taskhub.security.membership import MembershipIndex

logger = logging.getLogger(__name__)


def authorize(
    reference: ProjectReference,
    params: Mapping[str, Any],
    principal: Principal,
    required_roles: Iterable[ProjectRole],
    *,
    memberships: MembershipIndex,
    tasks: TaskLocator,
    admin_bypasses_membership: bool = False,
) -> AuthorizationContext:
    required = frozenset(required_roles)
    if not required:
        raise ValueError("required_roles must not be empty")

    project_id, task = resolve_project_id(reference, params, tasks)

    membership = memberships.get(principal.id, project_id)
    if membership is None:
        if not memberships.project_exists(project_id):
            logger.info("Project not found project_id=%s user_id=%s", project_id, principal.id)
            raise ProjectNotFound()
        if principal.is_admin and admin_bypasses_membership:
            logger.info("Admin override without membership project_id=%s user_id=%s", project_id, principal.id)
            return AuthorizationContext(principal=principal, project_id=project_id, effective_role=None, task=task)
        logger.info("No project access project_id=%s user_id=%s", project_id, principal.id)
        raise NoProjectAccess()

    role = membership.project_role
    if not principal.is_admin and role not in required:
        logger.info(
            "Insufficient project role project_id=%s user_id=%s role=%s required=%s",
            project_id,
            principal.id,
            role.value,
            sorted(r.value for r in required),
        )
        raise InsufficientRole(required)

    return AuthorizationContext(principal=principal, project_id=project_id, effective_role=role, task=task)


def resolve_project_id(
    reference: ProjectReference,
    params: Mapping[str, Any],
    tasks: TaskLocator,
) -> tuple[int, Task | None]:
    """
    Return ``(project_id, task)``; ``task`` is only set for task-indirected routes.
    """

    raw = params.get(reference.field)
    value = _as_id(raw)

    if reference.strategy is ResolutionStrategy.TASK_INDIRECTED:
        if value is None:
            raise MissingProjectReference("Task id not provided")
        task = tasks.locate(value)
        return task.project_id, task

    if value is None:
        raise MissingProjectReference()
    return value, None


def _as_id(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str) and raw.strip().isdecimal():
        raw = int(raw.strip())
    if isinstance(raw, int) and 0 <= raw <= MAX_ROW_ID:
        return raw
    # Out of range ids can name no row and would overflow the driver.
    return None
