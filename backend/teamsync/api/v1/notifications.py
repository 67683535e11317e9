"""Notification endpoints. Every route only sees the caller's own notifications."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from teamsync.api.v1.auth import CurrentUser
from teamsync.api.v1.schemas import UserBrief
from teamsync.db.session import DBSession
from teamsync.models.notification import Notification
from teamsync.services.notification import NotificationService

router = APIRouter()


class NotificationResponse(BaseModel):
    """Notification response."""

    id: UUID
    notification_type: str
    title: str
    message: str
    is_read: bool
    sender: UserBrief | None = None
    project_id: UUID | None = None
    task_id: UUID | None = None
    comment_id: UUID | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    marked: int


@router.get("/", response_model=list[NotificationResponse])
async def list_notifications(
    current_user: CurrentUser,
    db: DBSession,
    is_read: bool | None = None,
    notification_type: str | None = Query(None, alias="type"),
) -> list[Notification]:
    """List the caller's notifications, newest first."""
    return await NotificationService(db).list_for_user(
        current_user.id, is_read=is_read, notification_type=notification_type
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: CurrentUser,
    db: DBSession,
) -> UnreadCountResponse:
    count = await NotificationService(db).unread_count(current_user.id)
    return UnreadCountResponse(count=count)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    current_user: CurrentUser,
    db: DBSession,
) -> MarkAllReadResponse:
    marked = await NotificationService(db).mark_all_read(current_user.id)
    return MarkAllReadResponse(marked=marked)


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
    notification_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await NotificationService(db).mark_read(current_user.id, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await NotificationService(db).delete(current_user.id, notification_id)
