"""Project access control.

Every project-scoped operation goes through this module: the actor's
membership row is looked up and matched against a static role/action table.
Checks return a ``Decision`` instead of raising so callers can inspect the
reason; ``Decision.raise_for_denial`` converts a denial into the matching
domain exception.

Non-members are always answered with NotFound so that probing a project id
does not reveal whether the project exists.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamsync.exceptions import ForbiddenError, NotFoundError, TeamSyncError
from teamsync.models.project import Comment, ProjectMember, Task

logger = structlog.get_logger()


class ProjectRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class ProjectAction(str, Enum):
    VIEW = "view"
    CREATE_TASK = "create_task"
    COMMENT = "comment"
    EDIT_ANY_TASK = "edit_any_task"
    DELETE_ANY_TASK = "delete_any_task"
    MODERATE_COMMENTS = "moderate_comments"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_TAGS = "manage_tags"
    EDIT_PROJECT = "edit_project"
    DELETE_PROJECT = "delete_project"


_MEMBER_ACTIONS = frozenset(
    {ProjectAction.VIEW, ProjectAction.CREATE_TASK, ProjectAction.COMMENT}
)
_ADMIN_ACTIONS = _MEMBER_ACTIONS | {
    ProjectAction.EDIT_ANY_TASK,
    ProjectAction.DELETE_ANY_TASK,
    ProjectAction.MODERATE_COMMENTS,
    ProjectAction.MANAGE_MEMBERS,
    ProjectAction.MANAGE_TAGS,
    ProjectAction.EDIT_PROJECT,
}

ROLE_PERMISSIONS: dict[ProjectRole, frozenset[ProjectAction]] = {
    ProjectRole.MEMBER: _MEMBER_ACTIONS,
    ProjectRole.ADMIN: _ADMIN_ACTIONS,
    ProjectRole.OWNER: frozenset(ProjectAction),
}

# Roles an actor may act on (add, re-role, remove) when managing members
MANAGEABLE_ROLES: dict[ProjectRole, frozenset[ProjectRole]] = {
    ProjectRole.MEMBER: frozenset(),
    ProjectRole.ADMIN: frozenset({ProjectRole.MEMBER}),
    ProjectRole.OWNER: frozenset({ProjectRole.ADMIN, ProjectRole.MEMBER}),
}

# Roles that can be handed out through add_member / update_member_role
ASSIGNABLE_ROLES: dict[ProjectRole, frozenset[ProjectRole]] = {
    ProjectRole.MEMBER: frozenset(),
    ProjectRole.ADMIN: frozenset({ProjectRole.ADMIN, ProjectRole.MEMBER}),
    ProjectRole.OWNER: frozenset({ProjectRole.ADMIN, ProjectRole.MEMBER}),
}

NOT_A_MEMBER = "not a member"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str | None = None
    error: type[TeamSyncError] | None = None
    membership: ProjectMember | None = None

    @classmethod
    def allow(cls, membership: ProjectMember | None = None) -> "Decision":
        return cls(allowed=True, membership=membership)

    @classmethod
    def deny(
        cls,
        reason: str,
        error: type[TeamSyncError] = ForbiddenError,
        membership: ProjectMember | None = None,
    ) -> "Decision":
        return cls(allowed=False, reason=reason, error=error, membership=membership)

    def __bool__(self) -> bool:
        return self.allowed

    def raise_for_denial(self) -> ProjectMember | None:
        """Raise the matching domain error if denied, else return the membership."""
        if not self.allowed:
            if self.error is NotFoundError:
                # Same answer whether the project is missing or just hidden
                raise NotFoundError("Project not found", resource="project")
            error = self.error or ForbiddenError
            raise error(self.reason or "Forbidden")
        return self.membership


def role_allows(role: str, action: ProjectAction) -> bool:
    """Static role table lookup. Unknown roles get nothing."""
    try:
        return action in ROLE_PERMISSIONS[ProjectRole(role)]
    except ValueError:
        return False


def evaluate(membership: ProjectMember | None, action: ProjectAction) -> Decision:
    """Decide ``action`` for an already-resolved membership."""
    if membership is None:
        return Decision.deny(NOT_A_MEMBER, NotFoundError)
    if role_allows(membership.role, action):
        return Decision.allow(membership)
    return Decision.deny(
        f"role '{membership.role}' cannot {action.value.replace('_', ' ')}",
        membership=membership,
    )


def evaluate_task_change(
    membership: ProjectMember | None,
    task: Task,
    action: ProjectAction,
) -> Decision:
    """Edit/delete check for a task.

    The creator of a task may always change it, independently of the role
    table; everyone else needs ``edit_any_task`` / ``delete_any_task``.
    """
    if membership is None:
        return Decision.deny(NOT_A_MEMBER, NotFoundError)
    if task.creator_id is not None and task.creator_id == membership.user_id:
        return Decision.allow(membership)
    decision = evaluate(membership, action)
    if decision:
        return decision
    verb = "edit" if action == ProjectAction.EDIT_ANY_TASK else "delete"
    return Decision.deny(
        f"only the task creator or a project admin can {verb} this task",
        membership=membership,
    )


def evaluate_comment_change(
    membership: ProjectMember | None,
    comment: Comment,
) -> Decision:
    """Edit/delete check for a comment: its author, or owner/admin."""
    if membership is None:
        return Decision.deny(NOT_A_MEMBER, NotFoundError)
    if comment.user_id == membership.user_id:
        return Decision.allow(membership)
    if role_allows(membership.role, ProjectAction.MODERATE_COMMENTS):
        return Decision.allow(membership)
    return Decision.deny(
        "only the comment author or a project admin can change this comment",
        membership=membership,
    )


def evaluate_member_grant(actor: ProjectMember | None, role: str) -> Decision:
    """Check that ``actor`` may add a member with ``role``."""
    decision = evaluate(actor, ProjectAction.MANAGE_MEMBERS)
    if not decision:
        return decision
    if role == ProjectRole.OWNER.value:
        return Decision.deny("a project has exactly one owner", membership=actor)
    if ProjectRole(role) not in ASSIGNABLE_ROLES[ProjectRole(actor.role)]:
        return Decision.deny(f"cannot grant role '{role}'", membership=actor)
    return decision


def evaluate_member_change(
    actor: ProjectMember | None,
    target: ProjectMember,
    new_role: str | None = None,
) -> Decision:
    """Check that ``actor`` may re-role (``new_role`` set) or remove ``target``.

    The owner row is immutable for everyone, the owner included. Admins can
    only act on plain members.
    """
    decision = evaluate(actor, ProjectAction.MANAGE_MEMBERS)
    if not decision:
        return decision
    if target.role == ProjectRole.OWNER.value:
        return Decision.deny("the project owner cannot be changed or removed", membership=actor)
    if ProjectRole(target.role) not in MANAGEABLE_ROLES[ProjectRole(actor.role)]:
        return Decision.deny(
            f"role '{actor.role}' cannot manage a member with role '{target.role}'",
            membership=actor,
        )
    if new_role is not None:
        return evaluate_member_grant(actor, new_role)
    return decision


async def get_membership(
    db: AsyncSession,
    project_id: UUID,
    user_id: UUID,
    *,
    for_update: bool = False,
) -> ProjectMember | None:
    """Fetch a membership row.

    With ``for_update`` the row is locked for the rest of the transaction so
    the role cannot change between the check and the mutation.
    """
    query = select(ProjectMember).where(
        ProjectMember.project_id == project_id,
        ProjectMember.user_id == user_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def can_perform(
    db: AsyncSession,
    actor_id: UUID,
    project_id: UUID,
    action: ProjectAction,
    *,
    for_update: bool = False,
) -> Decision:
    """Decide whether ``actor_id`` may perform ``action`` in ``project_id``."""
    membership = await get_membership(db, project_id, actor_id, for_update=for_update)
    decision = evaluate(membership, action)
    if not decision:
        logger.info(
            "access_denied",
            project_id=str(project_id),
            user_id=str(actor_id),
            action=action.value,
            reason=decision.reason,
        )
    return decision


async def require(
    db: AsyncSession,
    actor_id: UUID,
    project_id: UUID,
    action: ProjectAction,
    *,
    for_update: bool = False,
) -> ProjectMember:
    """Like ``can_perform`` but raises on denial and returns the membership."""
    decision = await can_perform(db, actor_id, project_id, action, for_update=for_update)
    return decision.raise_for_denial()
