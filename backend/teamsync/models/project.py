"""Project, membership, task, tag and comment models."""

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamsync.db.base import BaseModel

if TYPE_CHECKING:
    from teamsync.models.user import User


# Allowed values for the string enum columns
PROJECT_ROLES = ("owner", "admin", "member")
TASK_STATUSES = ("todo", "in_progress", "review", "completed")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")
DEFAULT_TAG_COLOR = "#3B82F6"


class Project(BaseModel):
    """Collaboration workspace holding tasks, tags and members."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    creator_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    creator: Mapped["User | None"] = relationship("User", foreign_keys=[creator_id])
    members: Mapped[list["ProjectMember"]] = relationship(
        "ProjectMember", back_populates="project", passive_deletes=True
    )
    tasks: Mapped[list["Task"]] = relationship(
        "Task", back_populates="project", passive_deletes=True
    )
    tags: Mapped[list["Tag"]] = relationship(
        "Tag", back_populates="project", passive_deletes=True
    )

    def __repr__(self) -> str:
        try:
            return f"<Project {self.name}>"
        except Exception:
            return "<Project detached>"


class ProjectMember(BaseModel):
    """Project membership with role-based access."""

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_member"),
    )

    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="member"
    )  # owner, admin, member

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="members")
    user: Mapped["User"] = relationship("User", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<ProjectMember project={self.project_id} user={self.user_id} role={self.role}>"


class Task(BaseModel):
    """Task within a project."""

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="todo", index=True
    )  # todo, in_progress, review, completed
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default="medium"
    )  # low, medium, high, urgent

    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    creator_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Membership of the assignee is checked by the services, not by a foreign key
    assignee_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="tasks")
    creator: Mapped["User | None"] = relationship("User", foreign_keys=[creator_id])
    assignee: Mapped["User | None"] = relationship("User", foreign_keys=[assignee_id])
    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        secondary="task_tags",
        order_by="Tag.name",
        viewonly=True,
    )
    comments: Mapped[list["Comment"]] = relationship(
        "Comment", back_populates="task", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Task {self.title[:50]}>"


class Tag(BaseModel):
    """Project-scoped label for tasks."""

    __tablename__ = "tags"
    __table_args__ = (
        UniqueConstraint("name", "project_id", name="uq_tag_name_project"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_TAG_COLOR)
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    project: Mapped["Project"] = relationship("Project", back_populates="tags")

    def __repr__(self) -> str:
        return f"<Tag {self.name}>"


# Tag names are unique per project ignoring case
Index(
    "uq_tag_project_lower_name",
    Tag.project_id,
    func.lower(Tag.name),
    unique=True,
)


class TaskTag(BaseModel):
    """Association between a task and a tag."""

    __tablename__ = "task_tags"
    __table_args__ = (
        UniqueConstraint("task_id", "tag_id", name="uq_task_tag"),
    )

    task_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tag_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tags.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<TaskTag task={self.task_id} tag={self.tag_id}>"


class Comment(BaseModel):
    """Comment on a task."""

    __tablename__ = "comments"

    content: Mapped[str] = mapped_column(Text, nullable=False)
    task_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    task: Mapped["Task"] = relationship("Task", back_populates="comments")
    user: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<Comment task={self.task_id} user={self.user_id}>"
