"""Notification service for creating and managing in-app notifications."""

from uuid import UUID

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamsync.db.base import utcnow
from teamsync.exceptions import NotFoundError
from teamsync.models.notification import Notification

logger = structlog.get_logger()


class NotificationService:
    """Service for creating and managing user notifications.

    ``notify`` only adds the row to the session; it is committed together with
    the change that caused it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: UUID,
        notification_type: str,
        title: str,
        message: str,
        sender_id: UUID | None = None,
        project_id: UUID | None = None,
        task_id: UUID | None = None,
        comment_id: UUID | None = None,
    ) -> Notification | None:
        """
        Create a notification for a user.

        Args:
            user_id: The recipient user's ID
            notification_type: Type of notification (e.g., 'comment')
            title: Notification title
            message: Notification body
            sender_id: Optional sender/actor user ID
            project_id: Optional project for navigation
            task_id: Optional task for navigation
            comment_id: Optional comment for navigation

        Returns:
            Created Notification, or None when the recipient is the sender
        """
        # Don't notify users about their own actions
        if sender_id and sender_id == user_id:
            logger.debug(
                "skipping_self_notification",
                user_id=str(user_id),
                notification_type=notification_type,
            )
            return None

        notification = Notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            sender_id=sender_id,
            project_id=project_id,
            task_id=task_id,
            comment_id=comment_id,
            is_read=False,
        )
        self.db.add(notification)
        await self.db.flush()

        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            user_id=str(user_id),
            notification_type=notification_type,
        )

        return notification

    async def list_for_user(
        self,
        user_id: UUID,
        is_read: bool | None = None,
        notification_type: str | None = None,
    ) -> list[Notification]:
        """List a user's notifications, newest first."""
        query = (
            select(Notification)
            .options(selectinload(Notification.sender))
            .where(Notification.user_id == user_id)
        )
        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        if notification_type is not None:
            query = query.where(Notification.notification_type == notification_type)
        query = query.order_by(Notification.created_at.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def unread_count(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return result.scalar() or 0

    async def mark_read(self, user_id: UUID, notification_id: UUID) -> None:
        """Mark one of the user's notifications as read."""
        result = await self.db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True, updated_at=utcnow())
        )
        if result.rowcount == 0:
            raise NotFoundError("Notification not found", resource="notification")
        await self.db.commit()

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user as read."""
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, updated_at=utcnow())
        )
        await self.db.commit()
        logger.info("notifications_marked_read", user_id=str(user_id), count=result.rowcount)
        return result.rowcount

    async def delete(self, user_id: UUID, notification_id: UUID) -> None:
        """Delete one of the user's notifications."""
        result = await self.db.execute(
            delete(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError("Notification not found", resource="notification")
        await self.db.commit()
