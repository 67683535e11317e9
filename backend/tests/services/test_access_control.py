"""Role table and decision helpers, evaluated without a database."""

from uuid import uuid4

import pytest

from teamsync.exceptions import ForbiddenError, NotFoundError
from teamsync.models.project import Comment, ProjectMember, Task
from teamsync.services.access_control import (
    NOT_A_MEMBER,
    Decision,
    ProjectAction,
    evaluate,
    evaluate_comment_change,
    evaluate_member_change,
    evaluate_member_grant,
    evaluate_task_change,
    role_allows,
)

PROJECT_ID = uuid4()


def member(role: str) -> ProjectMember:
    return ProjectMember(project_id=PROJECT_ID, user_id=uuid4(), role=role)


class TestRoleTable:
    @pytest.mark.parametrize(
        "action", [ProjectAction.VIEW, ProjectAction.CREATE_TASK, ProjectAction.COMMENT]
    )
    def test_member_basics(self, action):
        assert role_allows("member", action)

    @pytest.mark.parametrize(
        "action",
        [
            ProjectAction.EDIT_ANY_TASK,
            ProjectAction.DELETE_ANY_TASK,
            ProjectAction.MANAGE_MEMBERS,
            ProjectAction.MANAGE_TAGS,
            ProjectAction.EDIT_PROJECT,
            ProjectAction.DELETE_PROJECT,
        ],
    )
    def test_member_cannot_manage(self, action):
        assert not role_allows("member", action)

    def test_admin_cannot_delete_project(self):
        assert role_allows("admin", ProjectAction.EDIT_PROJECT)
        assert not role_allows("admin", ProjectAction.DELETE_PROJECT)

    def test_owner_can_do_everything(self):
        assert all(role_allows("owner", action) for action in ProjectAction)

    def test_unknown_role_gets_nothing(self):
        assert not role_allows("viewer", ProjectAction.VIEW)


class TestDecision:
    def test_non_member_is_not_found(self):
        decision = evaluate(None, ProjectAction.VIEW)
        assert not decision
        assert decision.reason == NOT_A_MEMBER
        with pytest.raises(NotFoundError) as exc_info:
            decision.raise_for_denial()
        assert exc_info.value.message == "Project not found"

    def test_role_denial_is_forbidden(self):
        decision = evaluate(member("member"), ProjectAction.MANAGE_TAGS)
        assert not decision
        with pytest.raises(ForbiddenError):
            decision.raise_for_denial()

    def test_allow_returns_membership(self):
        m = member("admin")
        assert Decision.allow(m).raise_for_denial() is m


class TestTaskChange:
    def test_creator_override(self):
        m = member("member")
        task = Task(project_id=PROJECT_ID, creator_id=m.user_id, title="Mine")
        assert evaluate_task_change(m, task, ProjectAction.EDIT_ANY_TASK)
        assert evaluate_task_change(m, task, ProjectAction.DELETE_ANY_TASK)

    def test_member_cannot_edit_others_task(self):
        task = Task(project_id=PROJECT_ID, creator_id=uuid4(), title="Theirs")
        decision = evaluate_task_change(member("member"), task, ProjectAction.EDIT_ANY_TASK)
        assert not decision
        assert decision.error is ForbiddenError

    def test_admin_edits_any_task(self):
        task = Task(project_id=PROJECT_ID, creator_id=uuid4(), title="Theirs")
        assert evaluate_task_change(member("admin"), task, ProjectAction.EDIT_ANY_TASK)


class TestCommentChange:
    def test_author_and_moderators(self):
        author = member("member")
        comment = Comment(task_id=uuid4(), user_id=author.user_id, content="hi")
        assert evaluate_comment_change(author, comment)
        assert evaluate_comment_change(member("admin"), comment)
        assert evaluate_comment_change(member("owner"), comment)
        assert not evaluate_comment_change(member("member"), comment)


class TestMemberManagement:
    def test_owner_cannot_be_granted(self):
        decision = evaluate_member_grant(member("owner"), "owner")
        assert not decision
        assert decision.error is ForbiddenError

    def test_admin_can_grant_admin(self):
        assert evaluate_member_grant(member("admin"), "admin")

    def test_member_cannot_grant(self):
        assert not evaluate_member_grant(member("member"), "member")

    @pytest.mark.parametrize("actor_role", ["owner", "admin"])
    def test_owner_row_is_immutable(self, actor_role):
        target = member("owner")
        assert not evaluate_member_change(member(actor_role), target)
        assert not evaluate_member_change(member(actor_role), target, new_role="member")

    def test_owner_cannot_change_own_row(self):
        owner = member("owner")
        assert not evaluate_member_change(owner, owner, new_role="admin")

    def test_admin_cannot_touch_admin(self):
        decision = evaluate_member_change(member("admin"), member("admin"))
        assert not decision
        assert decision.error is ForbiddenError

    def test_admin_manages_members(self):
        assert evaluate_member_change(member("admin"), member("member"))
        assert evaluate_member_change(member("admin"), member("member"), new_role="admin")

    def test_owner_demotes_admin(self):
        assert evaluate_member_change(member("owner"), member("admin"), new_role="member")
