"""Dashboard endpoint: the caller's projects, tasks and task counts."""

from datetime import date

from fastapi import APIRouter
from pydantic import BaseModel

from teamsync.api.v1.auth import CurrentUser
from teamsync.api.v1.schemas import ProjectSummaryResponse, TaskResponse
from teamsync.db.session import DBSession
from teamsync.services.dashboard import DashboardService

router = APIRouter()


class TaskCountsResponse(BaseModel):
    total: int
    completed: int
    overdue: int


class DashboardResponse(BaseModel):
    projects: list[ProjectSummaryResponse]
    recent_tasks: list[TaskResponse]
    upcoming_tasks: list[TaskResponse]
    task_counts: TaskCountsResponse


@router.get("/", response_model=DashboardResponse)
async def get_dashboard(
    current_user: CurrentUser,
    db: DBSession,
) -> DashboardResponse:
    """Recent projects and tasks, tasks due this week, and task counts."""
    data = await DashboardService(db).get_dashboard(current_user.id, today=date.today())
    return DashboardResponse(
        projects=[ProjectSummaryResponse.from_summary(s) for s in data.projects],
        recent_tasks=[TaskResponse.from_task(t) for t in data.recent_tasks],
        upcoming_tasks=[TaskResponse.from_task(t) for t in data.upcoming_tasks],
        task_counts=TaskCountsResponse(
            total=data.task_counts.total,
            completed=data.task_counts.completed,
            overdue=data.task_counts.overdue,
        ),
    )
