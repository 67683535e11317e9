"""Task service: creation, updates, tag associations and listing."""

from datetime import date, timedelta
from typing import Any, Literal
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamsync.db.base import utcnow
from teamsync.exceptions import NotFoundError, ValidationError
from teamsync.models.project import (
    TASK_PRIORITIES,
    TASK_STATUSES,
    Comment,
    Project,
    ProjectMember,
    Tag,
    Task,
    TaskTag,
)
from teamsync.models.user import User
from teamsync.services import access_control as ac
from teamsync.services.access_control import ProjectAction
from teamsync.services.dashboard import UPCOMING_DAYS, overdue_clause, task_load_options
from teamsync.services.notification import NotificationService

logger = structlog.get_logger()

TaskFilter = Literal["all", "assigned", "upcoming", "overdue"]

# Fields a caller may change through update_task
UPDATABLE_FIELDS = frozenset(
    {"title", "description", "status", "priority", "due_date", "assignee_id", "tag_ids"}
)


class TaskService:
    """Service for project tasks."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    async def create_task(
        self,
        actor: User,
        project_id: UUID,
        title: str,
        description: str | None = None,
        status: str = "todo",
        priority: str = "medium",
        due_date: date | None = None,
        assignee_id: UUID | None = None,
        tag_ids: list[UUID] | None = None,
    ) -> Task:
        await ac.require(
            self.db, actor.id, project_id, ProjectAction.CREATE_TASK, for_update=True
        )
        _validate_title(title)
        _validate_choice("status", status, TASK_STATUSES)
        _validate_choice("priority", priority, TASK_PRIORITIES)
        if assignee_id is not None:
            await self._ensure_member(project_id, assignee_id)

        task = Task(
            title=title.strip(),
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
            project_id=project_id,
            creator_id=actor.id,
            assignee_id=assignee_id,
            completed_at=utcnow() if status == "completed" else None,
        )
        self.db.add(task)
        await self.db.flush()

        if tag_ids:
            await self._replace_tags(task, tag_ids)
        if assignee_id is not None:
            await self._notify_assignee(actor, task)

        await self.db.commit()
        logger.info(
            "task_created",
            task_id=str(task.id),
            project_id=str(project_id),
            created_by=str(actor.id),
        )
        return await self._reload(task.id)

    async def get_task(self, actor_id: UUID, task_id: UUID) -> Task:
        task, _ = await self._load_for(actor_id, task_id)
        return await self._reload(task.id)

    async def update_task(self, actor: User, task_id: UUID, changes: dict[str, Any]) -> Task:
        """Apply a partial update.

        ``tag_ids``, when present, replaces the whole tag set: existing
        associations are deleted and the given ones inserted.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        task, membership = await self._load_for(actor.id, task_id, for_update=True)
        ac.evaluate_task_change(membership, task, ProjectAction.EDIT_ANY_TASK).raise_for_denial()

        if "title" in changes:
            _validate_title(changes["title"])
            task.title = changes["title"].strip()
        if "description" in changes:
            task.description = changes["description"]
        if "priority" in changes:
            _validate_choice("priority", changes["priority"], TASK_PRIORITIES)
            task.priority = changes["priority"]
        if "due_date" in changes:
            task.due_date = changes["due_date"]
        if "status" in changes:
            _validate_choice("status", changes["status"], TASK_STATUSES)
            self._set_status(task, changes["status"])

        reassigned = False
        if "assignee_id" in changes and changes["assignee_id"] != task.assignee_id:
            if changes["assignee_id"] is not None:
                await self._ensure_member(task.project_id, changes["assignee_id"])
            task.assignee_id = changes["assignee_id"]
            reassigned = task.assignee_id is not None

        if changes.get("tag_ids") is not None:
            await self._replace_tags(task, changes["tag_ids"])

        if reassigned:
            await self._notify_assignee(actor, task)

        await self.db.commit()
        logger.info("task_updated", task_id=str(task_id), updated_by=str(actor.id))
        return await self._reload(task_id)

    async def delete_task(self, actor_id: UUID, task_id: UUID) -> None:
        task, membership = await self._load_for(actor_id, task_id, for_update=True)
        ac.evaluate_task_change(
            membership, task, ProjectAction.DELETE_ANY_TASK
        ).raise_for_denial()

        await self.db.execute(delete(TaskTag).where(TaskTag.task_id == task_id))
        await self.db.execute(delete(Comment).where(Comment.task_id == task_id))
        await self.db.execute(delete(Task).where(Task.id == task_id))
        await self.db.commit()
        logger.info("task_deleted", task_id=str(task_id), deleted_by=str(actor_id))

    async def list_tasks(
        self,
        actor_id: UUID,
        task_filter: TaskFilter = "all",
        project_id: UUID | None = None,
        status: str | None = None,
        priority: str | None = None,
        today: date | None = None,
    ) -> list[Task]:
        """Tasks across the caller's projects, or one project when given."""
        today = today or date.today()

        if project_id is not None:
            await ac.require(self.db, actor_id, project_id, ProjectAction.VIEW)
            project_scope = Task.project_id == project_id
        else:
            project_scope = Task.project_id.in_(
                select(ProjectMember.project_id).where(ProjectMember.user_id == actor_id)
            )

        query = select(Task).options(*task_load_options()).where(project_scope)

        if task_filter == "assigned":
            query = query.where(Task.assignee_id == actor_id)
        elif task_filter == "upcoming":
            query = query.where(
                Task.due_date >= today,
                Task.due_date <= today + timedelta(days=UPCOMING_DAYS),
                Task.status != "completed",
            )
        elif task_filter == "overdue":
            query = query.where(overdue_clause(today))

        if status is not None:
            query = query.where(Task.status == status)
        if priority is not None:
            query = query.where(Task.priority == priority)

        # Undated tasks go last
        query = query.order_by(
            Task.due_date.is_(None), Task.due_date.asc(), Task.created_at.desc()
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load_for(
        self, actor_id: UUID, task_id: UUID, for_update: bool = False
    ) -> tuple[Task, ProjectMember]:
        """Fetch a task and the actor's membership in its project.

        A missing task and a task in a project the actor cannot see look
        the same.
        """
        task = await self.db.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found", resource="task")
        membership = await ac.get_membership(
            self.db, task.project_id, actor_id, for_update=for_update
        )
        if membership is None:
            raise NotFoundError("Task not found", resource="task")
        return task, membership

    async def _reload(self, task_id: UUID) -> Task:
        result = await self.db.execute(
            select(Task)
            .options(*task_load_options())
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _ensure_member(self, project_id: UUID, user_id: UUID) -> None:
        # Locked so a concurrent removal waits for this assignment to commit
        membership = await ac.get_membership(self.db, project_id, user_id, for_update=True)
        if membership is None:
            raise ValidationError(
                "Assignee must be a member of the project", field="assignee_id"
            )

    async def _replace_tags(self, task: Task, tag_ids: list[UUID]) -> None:
        wanted = list(dict.fromkeys(tag_ids))
        if wanted:
            found = await self.db.scalar(
                select(func.count())
                .select_from(Tag)
                .where(Tag.id.in_(wanted), Tag.project_id == task.project_id)
            )
            if found != len(wanted):
                raise ValidationError(
                    "Tags must belong to the task's project", field="tag_ids"
                )

        await self.db.execute(delete(TaskTag).where(TaskTag.task_id == task.id))
        for tag_id in wanted:
            self.db.add(TaskTag(task_id=task.id, tag_id=tag_id))
        await self.db.flush()

    @staticmethod
    def _set_status(task: Task, status: str) -> None:
        # Any status may follow any other; only completed_at tracks the change
        if status == "completed" and task.status != "completed":
            task.completed_at = utcnow()
        elif status != "completed":
            task.completed_at = None
        task.status = status

    async def _notify_assignee(self, actor: User, task: Task) -> None:
        project = await self.db.get(Project, task.project_id)
        await self.notifications.notify(
            user_id=task.assignee_id,
            notification_type="task_assigned",
            title="Task assigned to you",
            message=f"{actor.name} assigned you to task: {task.title} ({project.name})",
            sender_id=actor.id,
            project_id=task.project_id,
            task_id=task.id,
        )


def _validate_title(title: str | None) -> None:
    if title is None or not title.strip():
        raise ValidationError("Task title is required", field="title")


def _validate_choice(field: str, value: str, allowed: tuple[str, ...]) -> None:
    if value not in allowed:
        raise ValidationError(
            f"Invalid {field} '{value}'. Expected one of: {', '.join(allowed)}",
            field=field,
        )
