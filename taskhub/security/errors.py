"""
Authorization and membership errors.

Every error is terminal for the request. The app-level exception handler renders
``status_code`` and ``message`` into the response envelope.
"""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import status


class AccessError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Request could not be authorized"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class MissingProjectReference(AccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Project id not provided"


class ProjectNotFound(AccessError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Project not found"


class TaskNotFound(ProjectNotFound):
    message = "Task not found"


class NoProjectAccess(AccessError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "You do not have access to this project"


class InsufficientRole(AccessError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, required_roles: Iterable[object]) -> None:
        self.required_roles = tuple(sorted(getattr(r, "value", str(r)) for r in required_roles))
        super().__init__(f"One of the following project roles is required: {', '.join(self.required_roles)}")


class CreatorRoleImmutable(AccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "The project creator's role cannot be changed or removed"


class MemberNotFound(AccessError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "User is not a member of this project"


class DuplicateMember(AccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "User is already a member of this project"


class UserNotFound(AccessError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"


class SelfInvitation(AccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "You cannot invite yourself"


class InvalidAssignee(AccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Assignee must be a member of the project"


class ProjectCreationFailed(AccessError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Project could not be created"


class InternalError(AccessError):
    """Store unavailable or transaction failure. The only error worth a caller-side retry."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"
