"""Task comment service."""

from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamsync.exceptions import NotFoundError, ValidationError
from teamsync.models.project import Comment, ProjectMember, Task
from teamsync.models.user import User
from teamsync.services import access_control as ac
from teamsync.services.access_control import ProjectAction
from teamsync.services.notification import NotificationService

logger = structlog.get_logger()


class CommentService:
    """Comments on tasks. Creating one notifies the task's assignee."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    async def list_comments(self, actor_id: UUID, task_id: UUID) -> list[Comment]:
        await self._task_for(actor_id, task_id, ProjectAction.VIEW)
        result = await self.db.execute(
            select(Comment)
            .options(selectinload(Comment.user))
            .where(Comment.task_id == task_id)
            .order_by(Comment.created_at.asc())
        )
        return list(result.scalars().all())

    async def create_comment(self, actor: User, task_id: UUID, content: str) -> Comment:
        """Create a comment.

        Exactly one ``comment`` notification goes to the task's assignee,
        unless there is no assignee or the assignee wrote the comment.
        """
        content = _clean_content(content)
        task = await self._task_for(actor.id, task_id, ProjectAction.COMMENT, for_update=True)

        comment = Comment(content=content, task_id=task_id, user_id=actor.id)
        self.db.add(comment)
        await self.db.flush()

        if task.assignee_id is not None and task.assignee_id != actor.id:
            await self.notifications.notify(
                user_id=task.assignee_id,
                notification_type="comment",
                title="New comment on task",
                message=f"{actor.name or 'Someone'} commented on task: {task.title}",
                sender_id=actor.id,
                project_id=task.project_id,
                task_id=task.id,
                comment_id=comment.id,
            )

        await self.db.commit()
        logger.info("comment_created", comment_id=str(comment.id), task_id=str(task_id))
        return await self._reload(comment.id)

    async def update_comment(self, actor_id: UUID, comment_id: UUID, content: str) -> Comment:
        content = _clean_content(content)
        comment = await self._authorize_change(actor_id, comment_id)
        comment.content = content
        await self.db.commit()
        logger.info("comment_updated", comment_id=str(comment_id))
        return await self._reload(comment_id)

    async def delete_comment(self, actor_id: UUID, comment_id: UUID) -> None:
        await self._authorize_change(actor_id, comment_id)
        await self.db.execute(delete(Comment).where(Comment.id == comment_id))
        await self.db.commit()
        logger.info("comment_deleted", comment_id=str(comment_id), deleted_by=str(actor_id))

    async def _task_for(
        self,
        actor_id: UUID,
        task_id: UUID,
        action: ProjectAction,
        for_update: bool = False,
    ) -> Task:
        task = await self.db.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found", resource="task")
        membership = await ac.get_membership(
            self.db, task.project_id, actor_id, for_update=for_update
        )
        if membership is None:
            raise NotFoundError("Task not found", resource="task")
        ac.evaluate(membership, action).raise_for_denial()
        return task

    async def _authorize_change(self, actor_id: UUID, comment_id: UUID) -> Comment:
        result = await self.db.execute(
            select(Comment, Task.project_id)
            .join(Task, Comment.task_id == Task.id)
            .where(Comment.id == comment_id)
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Comment not found", resource="comment")
        comment, project_id = row

        membership: ProjectMember | None = await ac.get_membership(
            self.db, project_id, actor_id, for_update=True
        )
        if membership is None:
            raise NotFoundError("Comment not found", resource="comment")
        ac.evaluate_comment_change(membership, comment).raise_for_denial()
        return comment

    async def _reload(self, comment_id: UUID) -> Comment:
        result = await self.db.execute(
            select(Comment)
            .options(selectinload(Comment.user))
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()


def _clean_content(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content is required", field="content")
    return content
