"""Response models shared by several routers."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel

from teamsync.models.project import Task
from teamsync.services.dashboard import ProjectSummary


class UserBrief(BaseModel):
    """Public user information embedded in other responses."""

    id: UUID
    name: str
    email: str
    avatar_url: str | None = None

    class Config:
        from_attributes = True


class TagResponse(BaseModel):
    id: UUID
    name: str
    color: str
    project_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TagBrief(BaseModel):
    id: UUID
    name: str
    color: str

    class Config:
        from_attributes = True


class ProjectBrief(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class TaskResponse(BaseModel):
    """Task with its creator, assignee, project and tags."""

    id: UUID
    title: str
    description: str | None
    status: str
    priority: str
    due_date: date | None
    completed_at: datetime | None
    project_id: UUID
    creator_id: UUID | None
    assignee_id: UUID | None
    created_at: datetime
    updated_at: datetime
    project: ProjectBrief | None = None
    creator: UserBrief | None = None
    assignee: UserBrief | None = None
    tags: list[TagBrief] = []

    class Config:
        from_attributes = True

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls.model_validate(task)


class ProjectSummaryResponse(BaseModel):
    """Project with the caller's role and live counts."""

    id: UUID
    name: str
    description: str
    creator_id: UUID | None
    created_at: datetime
    updated_at: datetime
    role: str
    member_count: int
    task_count: int
    completed_task_count: int

    @classmethod
    def from_summary(cls, summary: ProjectSummary) -> "ProjectSummaryResponse":
        project = summary.project
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            creator_id=project.creator_id,
            created_at=project.created_at,
            updated_at=project.updated_at,
            role=summary.role,
            member_count=summary.stats.member_count,
            task_count=summary.stats.task_count,
            completed_task_count=summary.stats.completed_task_count,
        )
