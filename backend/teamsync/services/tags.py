"""Project tag service."""

import re
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamsync.exceptions import ConflictError, NotFoundError, ValidationError
from teamsync.models.project import DEFAULT_TAG_COLOR, Tag, TaskTag
from teamsync.services import access_control as ac
from teamsync.services.access_control import ProjectAction

logger = structlog.get_logger()

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class TagService:
    """Tags are readable by every member and managed by owners and admins."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_tags(self, actor_id: UUID, project_id: UUID) -> list[Tag]:
        await ac.require(self.db, actor_id, project_id, ProjectAction.VIEW)
        result = await self.db.execute(
            select(Tag).where(Tag.project_id == project_id).order_by(Tag.name)
        )
        return list(result.scalars().all())

    async def create_tag(
        self,
        actor_id: UUID,
        project_id: UUID,
        name: str,
        color: str = DEFAULT_TAG_COLOR,
    ) -> Tag:
        await ac.require(
            self.db, actor_id, project_id, ProjectAction.MANAGE_TAGS, for_update=True
        )
        name = _clean_name(name)
        _validate_color(color)
        await self._ensure_unique(project_id, name)

        tag = Tag(name=name, color=color, project_id=project_id)
        self.db.add(tag)
        await self.db.commit()

        logger.info("tag_created", tag_id=str(tag.id), project_id=str(project_id))
        return tag

    async def update_tag(
        self,
        actor_id: UUID,
        tag_id: UUID,
        name: str | None = None,
        color: str | None = None,
    ) -> Tag:
        tag = await self._get_tag(tag_id)
        await self._require_manage(actor_id, tag)

        if name is not None:
            name = _clean_name(name)
            await self._ensure_unique(tag.project_id, name, exclude_id=tag.id)
            tag.name = name
        if color is not None:
            _validate_color(color)
            tag.color = color

        await self.db.commit()
        logger.info("tag_updated", tag_id=str(tag_id))
        return tag

    async def delete_tag(self, actor_id: UUID, tag_id: UUID) -> None:
        """Delete a tag, removing its task associations first."""
        tag = await self._get_tag(tag_id)
        await self._require_manage(actor_id, tag)

        await self.db.execute(delete(TaskTag).where(TaskTag.tag_id == tag_id))
        await self.db.execute(delete(Tag).where(Tag.id == tag_id))
        await self.db.commit()
        logger.info("tag_deleted", tag_id=str(tag_id), project_id=str(tag.project_id))

    async def _get_tag(self, tag_id: UUID) -> Tag:
        tag = await self.db.get(Tag, tag_id)
        if tag is None:
            raise NotFoundError("Tag not found", resource="tag")
        return tag

    async def _require_manage(self, actor_id: UUID, tag: Tag) -> None:
        decision = await ac.can_perform(
            self.db, actor_id, tag.project_id, ProjectAction.MANAGE_TAGS, for_update=True
        )
        if decision.membership is None:
            raise NotFoundError("Tag not found", resource="tag")
        decision.raise_for_denial()

    async def _ensure_unique(
        self, project_id: UUID, name: str, exclude_id: UUID | None = None
    ) -> None:
        """Tag names are unique per project, ignoring case."""
        query = select(Tag.id).where(
            Tag.project_id == project_id,
            func.lower(Tag.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(Tag.id != exclude_id)
        if (await self.db.execute(query)).first() is not None:
            raise ConflictError("A tag with this name already exists in this project")


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Tag name is required", field="name")
    return name


def _validate_color(color: str) -> None:
    if not COLOR_PATTERN.match(color or ""):
        raise ValidationError("Color must be a hex value like #3B82F6", field="color")
