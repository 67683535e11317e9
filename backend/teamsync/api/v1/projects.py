"""Projects API endpoints: projects, members, and project-scoped tags and tasks."""

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, EmailStr, Field, model_validator

from teamsync.api.v1.auth import CurrentUser
from teamsync.api.v1.schemas import ProjectSummaryResponse, TagResponse, TaskResponse
from teamsync.api.v1.tasks import PRIORITY_PATTERN, STATUS_PATTERN
from teamsync.db.session import DBSession
from teamsync.models.project import DEFAULT_TAG_COLOR, ProjectMember, Tag
from teamsync.models.user import User
from teamsync.services.dashboard import DashboardService
from teamsync.services.projects import ProjectService
from teamsync.services.tags import TagService
from teamsync.services.tasks import TaskFilter, TaskService

router = APIRouter()


# Request/Response Models
class ProjectCreate(BaseModel):
    """Create a new project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class ProjectUpdate(BaseModel):
    """Update a project."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class ProjectMemberAdd(BaseModel):
    """Add a member to a project, by e-mail or user id."""

    email: EmailStr | None = None
    user_id: UUID | None = None
    role: str = Field(default="member", pattern="^(owner|admin|member)$")

    @model_validator(mode="after")
    def check_target(self) -> "ProjectMemberAdd":
        if self.email is None and self.user_id is None:
            raise ValueError("Either email or user_id is required")
        return self


class ProjectMemberUpdate(BaseModel):
    role: str = Field(..., pattern="^(owner|admin|member)$")


class ProjectMemberResponse(BaseModel):
    """Project member response."""

    id: UUID
    user_id: UUID
    role: str
    name: str
    email: str
    avatar_url: str | None = None
    created_at: datetime


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default=DEFAULT_TAG_COLOR, pattern="^#[0-9A-Fa-f]{6}$")


def _member_response(member: ProjectMember, user: User) -> ProjectMemberResponse:
    return ProjectMemberResponse(
        id=member.id,
        user_id=user.id,
        role=member.role,
        name=user.name,
        email=user.email,
        avatar_url=user.avatar_url,
        created_at=member.created_at,
    )


@router.post("/", response_model=ProjectSummaryResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectSummaryResponse:
    """Create a new project owned by the caller."""
    service = ProjectService(db)
    project = await service.create_project(
        current_user, project_data.name, project_data.description
    )
    summary = await service.get_project(current_user.id, project.id)
    return ProjectSummaryResponse.from_summary(summary)


@router.get("/", response_model=list[ProjectSummaryResponse])
async def list_projects(
    current_user: CurrentUser,
    db: DBSession,
) -> list[ProjectSummaryResponse]:
    """List the projects the caller is a member of, newest first."""
    summaries = await DashboardService(db).list_projects(current_user.id)
    return [ProjectSummaryResponse.from_summary(s) for s in summaries]


@router.get("/{project_id}", response_model=ProjectSummaryResponse)
async def get_project(
    project_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectSummaryResponse:
    summary = await ProjectService(db).get_project(current_user.id, project_id)
    return ProjectSummaryResponse.from_summary(summary)


@router.patch("/{project_id}", response_model=ProjectSummaryResponse)
async def update_project(
    project_id: UUID,
    updates: ProjectUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectSummaryResponse:
    """Rename a project or change its description (owner/admin)."""
    service = ProjectService(db)
    await service.update_project(
        current_user.id, project_id, name=updates.name, description=updates.description
    )
    summary = await service.get_project(current_user.id, project_id)
    return ProjectSummaryResponse.from_summary(summary)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    """Delete a project with its tasks, tags and members (owner only)."""
    await ProjectService(db).delete_project(current_user.id, project_id)


# =============================================================================
# Members
# =============================================================================


@router.get("/{project_id}/members", response_model=list[ProjectMemberResponse])
async def list_project_members(
    project_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[ProjectMemberResponse]:
    members = await ProjectService(db).list_members(current_user.id, project_id)
    return [_member_response(member, user) for member, user in members]


@router.post(
    "/{project_id}/members",
    response_model=ProjectMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_project_member(
    project_id: UUID,
    member_data: ProjectMemberAdd,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectMemberResponse:
    """Add an existing user to the project."""
    member, user = await ProjectService(db).add_member(
        current_user,
        project_id,
        role=member_data.role,
        email=member_data.email,
        user_id=member_data.user_id,
    )
    return _member_response(member, user)


@router.delete("/{project_id}/members/me", status_code=status.HTTP_204_NO_CONTENT)
async def leave_project(
    project_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    """Leave a project. The owner cannot leave."""
    await ProjectService(db).leave_project(current_user.id, project_id)


@router.patch("/{project_id}/members/{user_id}", response_model=ProjectMemberResponse)
async def update_project_member(
    project_id: UUID,
    user_id: UUID,
    update: ProjectMemberUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectMemberResponse:
    member, user = await ProjectService(db).update_member_role(
        current_user.id, project_id, user_id, update.role
    )
    return _member_response(member, user)


@router.delete("/{project_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_project_member(
    project_id: UUID,
    user_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await ProjectService(db).remove_member(current_user.id, project_id, user_id)


# =============================================================================
# Tags and tasks scoped to a project
# =============================================================================


@router.get("/{project_id}/tags", response_model=list[TagResponse])
async def list_project_tags(
    project_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[Tag]:
    return await TagService(db).list_tags(current_user.id, project_id)


@router.post(
    "/{project_id}/tags",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project_tag(
    project_id: UUID,
    tag_data: TagCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> Tag:
    """Create a tag (owner/admin). Names are unique per project, ignoring case."""
    return await TagService(db).create_tag(
        current_user.id, project_id, tag_data.name, tag_data.color
    )


@router.get("/{project_id}/tasks", response_model=list[TaskResponse])
async def list_project_tasks(
    project_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
    task_filter: TaskFilter = Query("all", alias="filter"),
    status_filter: str | None = Query(None, alias="status", pattern=STATUS_PATTERN),
    priority: str | None = Query(None, pattern=PRIORITY_PATTERN),
) -> list[TaskResponse]:
    tasks = await TaskService(db).list_tasks(
        current_user.id,
        task_filter=task_filter,
        project_id=project_id,
        status=status_filter,
        priority=priority,
        today=date.today(),
    )
    return [TaskResponse.from_task(task) for task in tasks]
