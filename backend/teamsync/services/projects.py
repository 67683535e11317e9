"""Project and membership service."""

from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from teamsync.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from teamsync.models.project import (
    PROJECT_ROLES,
    Comment,
    Project,
    ProjectMember,
    Tag,
    Task,
    TaskTag,
)
from teamsync.models.user import User
from teamsync.services import access_control as ac
from teamsync.services.access_control import ProjectAction, ProjectRole
from teamsync.services.dashboard import ProjectSummary, project_stats
from teamsync.services.notification import NotificationService

logger = structlog.get_logger()


class ProjectService:
    """Create, update and delete projects and manage their members.

    Every mutation re-reads the actor's membership with a row lock inside the
    transaction it commits, so a concurrent role change cannot slip between
    the check and the write.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    # =========================================================================
    # Projects
    # =========================================================================

    async def create_project(
        self, actor: User, name: str, description: str | None = None
    ) -> Project:
        """Create a project; the creator becomes its sole owner."""
        name = name.strip()
        if not name:
            raise ValidationError("Project name is required", field="name")

        project = Project(name=name, description=description or "", creator_id=actor.id)
        self.db.add(project)
        await self.db.flush()

        self.db.add(
            ProjectMember(project_id=project.id, user_id=actor.id, role=ProjectRole.OWNER.value)
        )
        await self.db.commit()

        logger.info("project_created", project_id=str(project.id), created_by=str(actor.id))
        return project

    async def get_project(self, actor_id: UUID, project_id: UUID) -> ProjectSummary:
        membership = await ac.require(self.db, actor_id, project_id, ProjectAction.VIEW)
        project = await self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found", resource="project")
        stats = await project_stats(self.db, [project_id])
        return ProjectSummary(project=project, role=membership.role, stats=stats[project_id])

    async def update_project(
        self,
        actor_id: UUID,
        project_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> Project:
        await ac.require(
            self.db, actor_id, project_id, ProjectAction.EDIT_PROJECT, for_update=True
        )
        project = await self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found", resource="project")

        if name is not None:
            if not name.strip():
                raise ValidationError("Project name is required", field="name")
            project.name = name.strip()
        if description is not None:
            project.description = description

        await self.db.commit()
        logger.info("project_updated", project_id=str(project_id), updated_by=str(actor_id))
        return project

    async def delete_project(self, actor_id: UUID, project_id: UUID) -> None:
        """Delete a project and everything hanging off it."""
        await ac.require(
            self.db, actor_id, project_id, ProjectAction.DELETE_PROJECT, for_update=True
        )

        task_ids = select(Task.id).where(Task.project_id == project_id)
        tag_ids = select(Tag.id).where(Tag.project_id == project_id)

        # Children first so the cascade does not depend on database FK support
        await self.db.execute(
            delete(TaskTag).where(TaskTag.task_id.in_(task_ids) | TaskTag.tag_id.in_(tag_ids))
        )
        await self.db.execute(delete(Comment).where(Comment.task_id.in_(task_ids)))
        await self.db.execute(delete(Task).where(Task.project_id == project_id))
        await self.db.execute(delete(Tag).where(Tag.project_id == project_id))
        await self.db.execute(delete(ProjectMember).where(ProjectMember.project_id == project_id))
        await self.db.execute(delete(Project).where(Project.id == project_id))
        await self.db.commit()

        logger.info("project_deleted", project_id=str(project_id), deleted_by=str(actor_id))

    # =========================================================================
    # Members
    # =========================================================================

    async def list_members(
        self, actor_id: UUID, project_id: UUID
    ) -> list[tuple[ProjectMember, User]]:
        await ac.require(self.db, actor_id, project_id, ProjectAction.VIEW)
        result = await self.db.execute(
            select(ProjectMember, User)
            .join(User, ProjectMember.user_id == User.id)
            .where(ProjectMember.project_id == project_id)
            .order_by(User.name)
        )
        return [(member, user) for member, user in result.all()]

    async def add_member(
        self,
        actor: User,
        project_id: UUID,
        role: str = "member",
        email: str | None = None,
        user_id: UUID | None = None,
    ) -> tuple[ProjectMember, User]:
        """Add an existing user, found by e-mail or id, to the project."""
        _validate_role(role)
        actor_membership = await ac.get_membership(
            self.db, project_id, actor.id, for_update=True
        )
        ac.evaluate_member_grant(actor_membership, role).raise_for_denial()

        user = await self._find_user(email=email, user_id=user_id)

        existing = await ac.get_membership(self.db, project_id, user.id)
        if existing is not None:
            raise ConflictError("User is already a member of this project")

        member = ProjectMember(project_id=project_id, user_id=user.id, role=role)
        self.db.add(member)
        await self.db.flush()

        project = await self.db.get(Project, project_id)
        await self.notifications.notify(
            user_id=user.id,
            notification_type="project_invite",
            title="Added to project",
            message=f"{actor.name} added you to {project.name} as {role}",
            sender_id=actor.id,
            project_id=project_id,
        )
        await self.db.commit()

        logger.info(
            "project_member_added",
            project_id=str(project_id),
            user_id=str(user.id),
            role=role,
            added_by=str(actor.id),
        )
        return member, user

    async def update_member_role(
        self, actor_id: UUID, project_id: UUID, user_id: UUID, role: str
    ) -> tuple[ProjectMember, User]:
        _validate_role(role)
        actor_membership = await ac.get_membership(
            self.db, project_id, actor_id, for_update=True
        )
        if actor_membership is None:
            raise NotFoundError("Project not found", resource="project")
        target = await self._get_target(project_id, user_id)
        ac.evaluate_member_change(actor_membership, target, new_role=role).raise_for_denial()

        previous = target.role
        target.role = role
        await self.db.commit()

        logger.info(
            "project_member_role_updated",
            project_id=str(project_id),
            user_id=str(user_id),
            old_role=previous,
            new_role=role,
            updated_by=str(actor_id),
        )
        user = await self.db.get(User, user_id)
        return target, user

    async def remove_member(self, actor_id: UUID, project_id: UUID, user_id: UUID) -> None:
        actor_membership = await ac.get_membership(
            self.db, project_id, actor_id, for_update=True
        )
        if actor_membership is None:
            raise NotFoundError("Project not found", resource="project")
        target = await self._get_target(project_id, user_id)
        ac.evaluate_member_change(actor_membership, target).raise_for_denial()

        await self._delete_membership(target)
        logger.info(
            "project_member_removed",
            project_id=str(project_id),
            user_id=str(user_id),
            removed_by=str(actor_id),
        )

    async def leave_project(self, actor_id: UUID, project_id: UUID) -> None:
        """Remove the caller's own membership. The owner can never leave."""
        membership = await ac.require(
            self.db, actor_id, project_id, ProjectAction.VIEW, for_update=True
        )
        if membership.role == ProjectRole.OWNER.value:
            raise ForbiddenError("The project owner cannot leave the project")

        await self._delete_membership(membership)
        logger.info("project_left", project_id=str(project_id), user_id=str(actor_id))

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _delete_membership(self, membership: ProjectMember) -> None:
        # Assignments must point at members, so drop the leaver's ones
        await self.db.execute(
            update(Task)
            .where(
                Task.project_id == membership.project_id,
                Task.assignee_id == membership.user_id,
            )
            .values(assignee_id=None)
        )
        await self.db.delete(membership)
        await self.db.commit()

    async def _get_target(self, project_id: UUID, user_id: UUID) -> ProjectMember:
        target = await ac.get_membership(self.db, project_id, user_id, for_update=True)
        if target is None:
            raise NotFoundError("User is not a member of this project", resource="member")
        return target

    async def _find_user(self, email: str | None, user_id: UUID | None) -> User:
        if user_id is not None:
            user = await self.db.get(User, user_id)
        elif email:
            result = await self.db.execute(
                select(User).where(User.email == email.strip().lower())
            )
            user = result.scalar_one_or_none()
        else:
            raise ValidationError("Either email or user_id is required", field="email")

        if user is None or not user.is_active:
            raise NotFoundError("User not found", resource="user")
        return user


def _validate_role(role: str) -> None:
    if role not in PROJECT_ROLES:
        raise ValidationError(f"Invalid role '{role}'", field="role")
