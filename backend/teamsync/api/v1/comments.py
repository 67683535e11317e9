"""Comment endpoints addressed by comment id."""

from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from teamsync.api.v1.auth import CurrentUser
from teamsync.api.v1.tasks import CommentResponse
from teamsync.db.session import DBSession
from teamsync.models.project import Comment
from teamsync.services.comments import CommentService

router = APIRouter()


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1)


@router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: UUID,
    update: CommentUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> Comment:
    """Edit a comment (its author, or an owner/admin of the project)."""
    return await CommentService(db).update_comment(current_user.id, comment_id, update.content)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await CommentService(db).delete_comment(current_user.id, comment_id)
