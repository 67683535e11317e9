"""Business logic services."""

from teamsync.services.comments import CommentService
from teamsync.services.dashboard import DashboardService
from teamsync.services.notification import NotificationService
from teamsync.services.projects import ProjectService
from teamsync.services.tags import TagService
from teamsync.services.tasks import TaskService
from teamsync.services.users import UserService

__all__ = [
    "CommentService",
    "DashboardService",
    "NotificationService",
    "ProjectService",
    "TagService",
    "TaskService",
    "UserService",
]
