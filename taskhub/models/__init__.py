from taskhub.models.accounts import GlobalRole, User
from taskhub.models.projects import Membership, Project, ProjectRole, Task, TaskStatus

__all__ = [
    "GlobalRole",
    "Membership",
    "Project",
    "ProjectRole",
    "Task",
    "TaskStatus",
    "User",
]
