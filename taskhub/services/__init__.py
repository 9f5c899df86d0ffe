"""TaskHub services — dashboard reads and the task / project mutation paths."""

from taskhub.services.auth import AuthProvider, AuthSession, SessionService  # noqa: F401
from taskhub.services.dashboard import DashboardDataManager  # noqa: F401
from taskhub.services.members import MemberDirectory  # noqa: F401
from taskhub.services.projects import ProjectService, update_project_progress  # noqa: F401
from taskhub.services.tasks import TaskService  # noqa: F401

__all__ = [
    "AuthProvider",
    "AuthSession",
    "SessionService",
    "DashboardDataManager",
    "MemberDirectory",
    "ProjectService",
    "TaskService",
    "update_project_progress",
]
