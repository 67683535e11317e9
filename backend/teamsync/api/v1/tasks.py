"""Tasks API endpoints, including task comments."""

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from teamsync.api.v1.auth import CurrentUser
from teamsync.api.v1.schemas import TaskResponse, UserBrief
from teamsync.db.session import DBSession
from teamsync.models.project import Comment
from teamsync.services.comments import CommentService
from teamsync.services.tasks import TaskFilter, TaskService

router = APIRouter()

STATUS_PATTERN = "^(todo|in_progress|review|completed)$"
PRIORITY_PATTERN = "^(low|medium|high|urgent)$"


# Request/Response Models
class TaskCreate(BaseModel):
    """Create a new task."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    project_id: UUID
    status: str = Field(default="todo", pattern=STATUS_PATTERN)
    priority: str = Field(default="medium", pattern=PRIORITY_PATTERN)
    due_date: date | None = None
    assignee_id: UUID | None = None
    tag_ids: list[UUID] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial task update. Only fields present in the request are applied."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    status: str | None = Field(None, pattern=STATUS_PATTERN)
    priority: str | None = Field(None, pattern=PRIORITY_PATTERN)
    due_date: date | None = None
    assignee_id: UUID | None = None
    tag_ids: list[UUID] | None = None


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    """Comment with its author."""

    id: UUID
    content: str
    task_id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime
    user: UserBrief | None = None

    class Config:
        from_attributes = True


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskResponse:
    """Create a task in a project the caller belongs to."""
    task = await TaskService(db).create_task(
        current_user,
        task_data.project_id,
        title=task_data.title,
        description=task_data.description,
        status=task_data.status,
        priority=task_data.priority,
        due_date=task_data.due_date,
        assignee_id=task_data.assignee_id,
        tag_ids=task_data.tag_ids,
    )
    return TaskResponse.from_task(task)


@router.get("/", response_model=list[TaskResponse])
async def list_tasks(
    current_user: CurrentUser,
    db: DBSession,
    task_filter: TaskFilter = Query("all", alias="filter"),
    project_id: UUID | None = None,
    status_filter: str | None = Query(None, alias="status", pattern=STATUS_PATTERN),
    priority: str | None = Query(None, pattern=PRIORITY_PATTERN),
) -> list[TaskResponse]:
    """List tasks across the caller's projects.

    ``filter`` is one of ``all``, ``assigned`` (assigned to the caller),
    ``upcoming`` (due within a week) or ``overdue``.
    """
    tasks = await TaskService(db).list_tasks(
        current_user.id,
        task_filter=task_filter,
        project_id=project_id,
        status=status_filter,
        priority=priority,
        today=date.today(),
    )
    return [TaskResponse.from_task(task) for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskResponse:
    task = await TaskService(db).get_task(current_user.id, task_id)
    return TaskResponse.from_task(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    updates: TaskUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskResponse:
    """Update a task (its creator, or an owner/admin of the project)."""
    changes = updates.model_dump(exclude_unset=True)
    task = await TaskService(db).update_task(current_user, task_id, changes)
    return TaskResponse.from_task(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await TaskService(db).delete_task(current_user.id, task_id)


# =============================================================================
# Comments
# =============================================================================


@router.get("/{task_id}/comments", response_model=list[CommentResponse])
async def list_task_comments(
    task_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[Comment]:
    """List comments on a task, oldest first."""
    return await CommentService(db).list_comments(current_user.id, task_id)


@router.post(
    "/{task_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task_comment(
    task_id: UUID,
    comment_data: CommentCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> Comment:
    return await CommentService(db).create_comment(current_user, task_id, comment_data.content)
