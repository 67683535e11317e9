"""SQLAlchemy models."""

from teamsync.models.notification import Notification
from teamsync.models.project import (
    Comment,
    Project,
    ProjectMember,
    Tag,
    Task,
    TaskTag,
)
from teamsync.models.user import User

__all__ = [
    "Comment",
    "Notification",
    "Project",
    "ProjectMember",
    "Tag",
    "Task",
    "TaskTag",
    "User",
]
