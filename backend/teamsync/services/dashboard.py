"""Read-side aggregation for dashboards and list views.

Counts are derived from the current membership and task rows on every read;
nothing is denormalized.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable
from uuid import UUID

import structlog
from sqlalchemy import and_, case, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamsync.models.project import Project, ProjectMember, Task

logger = structlog.get_logger()

RECENT_LIMIT = 5
UPCOMING_DAYS = 7


@dataclass
class ProjectStats:
    member_count: int = 0
    task_count: int = 0
    completed_task_count: int = 0


@dataclass
class ProjectSummary:
    project: Project
    role: str
    stats: ProjectStats


@dataclass
class TaskCounts:
    total: int = 0
    completed: int = 0
    overdue: int = 0


@dataclass
class DashboardData:
    projects: list[ProjectSummary] = field(default_factory=list)
    recent_tasks: list[Task] = field(default_factory=list)
    upcoming_tasks: list[Task] = field(default_factory=list)
    task_counts: TaskCounts = field(default_factory=TaskCounts)


def _is_member(user_id: UUID):
    """Correlated EXISTS: the task's project has ``user_id`` as a member."""
    return exists().where(
        ProjectMember.project_id == Task.project_id,
        ProjectMember.user_id == user_id,
    )


def overdue_clause(today: date):
    return and_(
        Task.due_date.is_not(None),
        Task.due_date < today,
        Task.status != "completed",
    )


async def project_stats(
    db: AsyncSession, project_ids: Iterable[UUID]
) -> dict[UUID, ProjectStats]:
    """Member, task and completed-task counts for each project id."""
    ids = list(project_ids)
    stats = {project_id: ProjectStats() for project_id in ids}
    if not ids:
        return stats

    member_rows = await db.execute(
        select(ProjectMember.project_id, func.count())
        .where(ProjectMember.project_id.in_(ids))
        .group_by(ProjectMember.project_id)
    )
    for project_id, count in member_rows.all():
        stats[project_id].member_count = count

    task_rows = await db.execute(
        select(
            Task.project_id,
            func.count(),
            func.coalesce(func.sum(case((Task.status == "completed", 1), else_=0)), 0),
        )
        .where(Task.project_id.in_(ids))
        .group_by(Task.project_id)
    )
    for project_id, total, completed in task_rows.all():
        stats[project_id].task_count = total
        stats[project_id].completed_task_count = int(completed)

    return stats


class DashboardService:
    """Per-user aggregation across every project the user belongs to."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_projects(
        self, user_id: UUID, limit: int | None = None
    ) -> list[ProjectSummary]:
        """Projects the user is a member of, most recently joined first."""
        query = (
            select(ProjectMember, Project)
            .join(Project, ProjectMember.project_id == Project.id)
            .where(ProjectMember.user_id == user_id)
            .order_by(ProjectMember.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        rows = (await self.db.execute(query)).all()

        stats = await project_stats(self.db, [project.id for _, project in rows])
        return [
            ProjectSummary(project=project, role=member.role, stats=stats[project.id])
            for member, project in rows
        ]

    async def task_counts(self, user_id: UUID, today: date | None = None) -> TaskCounts:
        """Total/completed over tasks the user created or is assigned to;
        overdue over tasks assigned to the user."""
        today = today or date.today()
        involved = and_(
            or_(Task.creator_id == user_id, Task.assignee_id == user_id),
            _is_member(user_id),
        )

        total = await self.db.scalar(select(func.count()).select_from(Task).where(involved))
        completed = await self.db.scalar(
            select(func.count()).select_from(Task).where(involved, Task.status == "completed")
        )
        overdue = await self.db.scalar(
            select(func.count())
            .select_from(Task)
            .where(Task.assignee_id == user_id, _is_member(user_id), overdue_clause(today))
        )
        return TaskCounts(total=total or 0, completed=completed or 0, overdue=overdue or 0)

    async def recent_tasks(self, user_id: UUID, limit: int = RECENT_LIMIT) -> list[Task]:
        result = await self.db.execute(
            select(Task)
            .options(*task_load_options())
            .where(
                or_(Task.creator_id == user_id, Task.assignee_id == user_id),
                _is_member(user_id),
            )
            .order_by(Task.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def upcoming_tasks(
        self, user_id: UUID, today: date | None = None, limit: int = RECENT_LIMIT
    ) -> list[Task]:
        """Open tasks assigned to the user due within the next week."""
        today = today or date.today()
        result = await self.db.execute(
            select(Task)
            .options(*task_load_options())
            .where(
                Task.assignee_id == user_id,
                _is_member(user_id),
                Task.due_date >= today,
                Task.due_date <= today + timedelta(days=UPCOMING_DAYS),
                Task.status != "completed",
            )
            .order_by(Task.due_date.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_dashboard(self, user_id: UUID, today: date | None = None) -> DashboardData:
        today = today or date.today()
        data = DashboardData(
            projects=await self.list_projects(user_id, limit=RECENT_LIMIT),
            recent_tasks=await self.recent_tasks(user_id),
            upcoming_tasks=await self.upcoming_tasks(user_id, today=today),
            task_counts=await self.task_counts(user_id, today=today),
        )
        logger.debug(
            "dashboard_computed",
            user_id=str(user_id),
            projects=len(data.projects),
            overdue=data.task_counts.overdue,
        )
        return data


def task_load_options():
    """Eager-load options needed to render a task response."""
    return (
        selectinload(Task.project),
        selectinload(Task.creator),
        selectinload(Task.assignee),
        selectinload(Task.tags),
    )
