from __future__ import annotations

from dataclasses import dataclass

from taskhub.models import GlobalRole, ProjectRole, Task


@dataclass(frozen=True)
class Principal:
    """
    Authenticated actor for the lifetime of one request.

    Built from a verified credential; never persisted.
    """

    id: int
    global_role: GlobalRole

    @property
    def is_admin(self) -> bool:
        return self.global_role is GlobalRole.ADMIN


@dataclass(frozen=True)
class AuthorizationContext:
    """
    Outcome of a successful project authorization.

    Returned by the resolver and handed to route handlers through a cached FastAPI
    dependency, so handlers never repeat the membership or task lookup.
    """

    principal: Principal
    project_id: int

    # None only when an admin was let in without a membership (bypass mode).
    effective_role: ProjectRole | None

    # Set when the project was located through a task id.
    task: Task | None = None
