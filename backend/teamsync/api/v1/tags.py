"""Tag endpoints addressed by tag id."""

from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from teamsync.api.v1.auth import CurrentUser
from teamsync.api.v1.schemas import TagResponse
from teamsync.db.session import DBSession
from teamsync.models.project import Tag
from teamsync.services.tags import TagService

router = APIRouter()


class TagUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, pattern="^#[0-9A-Fa-f]{6}$")


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: UUID,
    updates: TagUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> Tag:
    return await TagService(db).update_tag(
        current_user.id, tag_id, name=updates.name, color=updates.color
    )


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    """Delete a tag and detach it from every task."""
    await TagService(db).delete_tag(current_user.id, tag_id)
