import pytest
from sqlalchemy import select

from teamsync.exceptions import ForbiddenError, NotFoundError, ValidationError
from teamsync.models.notification import Notification
from teamsync.services.comments import CommentService
from teamsync.services.projects import ProjectService
from teamsync.services.tasks import TaskService


@pytest.fixture
async def bob(session, owner, project, make_user):
    user = await make_user("Bob")
    await ProjectService(session).add_member(owner, project.id, user_id=user.id)
    return user


async def comment_notifications(session, user_id):
    result = await session.execute(
        select(Notification).where(
            Notification.user_id == user_id, Notification.notification_type == "comment"
        )
    )
    return result.scalars().all()


async def test_comment_notifies_assignee_once(session, owner, project, bob):
    task = await TaskService(session).create_task(owner, project.id, "Ship", assignee_id=bob.id)

    comment = await CommentService(session).create_comment(owner, task.id, "Status?")

    notes = await comment_notifications(session, bob.id)
    assert len(notes) == 1
    assert notes[0].task_id == task.id
    assert notes[0].comment_id == comment.id
    assert notes[0].sender_id == owner.id
    assert notes[0].title == "New comment on task"


async def test_no_notification_for_own_comment(session, owner, project, bob):
    task = await TaskService(session).create_task(owner, project.id, "Ship", assignee_id=bob.id)

    await CommentService(session).create_comment(bob, task.id, "Working on it")

    assert await comment_notifications(session, bob.id) == []


async def test_no_notification_without_assignee(session, owner, project, bob):
    task = await TaskService(session).create_task(owner, project.id, "Ship")

    await CommentService(session).create_comment(bob, task.id, "Anyone?")

    assert await comment_notifications(session, owner.id) == []


async def test_non_member_cannot_comment(session, owner, project, make_user):
    stranger = await make_user("Mallory")
    task = await TaskService(session).create_task(owner, project.id, "Ship")

    with pytest.raises(NotFoundError):
        await CommentService(session).create_comment(stranger, task.id, "Hi")


async def test_empty_comment_rejected(session, owner, project):
    task = await TaskService(session).create_task(owner, project.id, "Ship")

    with pytest.raises(ValidationError):
        await CommentService(session).create_comment(owner, task.id, "   ")


async def test_author_and_owner_can_change(session, owner, project, bob, make_user):
    service = CommentService(session)
    task = await TaskService(session).create_task(owner, project.id, "Ship")
    comment = await service.create_comment(bob, task.id, "first")

    edited = await service.update_comment(bob.id, comment.id, "first, edited")
    assert edited.content == "first, edited"
    assert edited.user.name == "Bob"

    await service.delete_comment(owner.id, comment.id)
    assert await service.list_comments(bob.id, task.id) == []


async def test_other_member_cannot_change(session, owner, project, bob, make_user):
    eve = await make_user("Eve")
    await ProjectService(session).add_member(owner, project.id, user_id=eve.id)
    service = CommentService(session)
    task = await TaskService(session).create_task(owner, project.id, "Ship")
    comment = await service.create_comment(bob, task.id, "mine")

    with pytest.raises(ForbiddenError):
        await service.update_comment(eve.id, comment.id, "not yours")
    with pytest.raises(ForbiddenError):
        await service.delete_comment(eve.id, comment.id)
