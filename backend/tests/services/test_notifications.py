import pytest

from teamsync.exceptions import NotFoundError
from teamsync.services.notification import NotificationService


@pytest.fixture
async def bob(make_user):
    return await make_user("Bob")


async def seed(session, recipient, sender, count=2):
    service = NotificationService(session)
    for i in range(count):
        await service.notify(
            user_id=recipient.id,
            notification_type="comment" if i % 2 == 0 else "task_assigned",
            title=f"Note {i}",
            message="",
            sender_id=sender.id,
        )
    await session.commit()


async def test_self_notification_skipped(session, owner):
    result = await NotificationService(session).notify(
        user_id=owner.id,
        notification_type="comment",
        title="Self",
        message="",
        sender_id=owner.id,
    )

    assert result is None
    assert await NotificationService(session).unread_count(owner.id) == 0


async def test_list_and_filter(session, owner, bob):
    await seed(session, bob, owner, count=3)
    service = NotificationService(session)

    assert len(await service.list_for_user(bob.id)) == 3
    comments = await service.list_for_user(bob.id, notification_type="comment")
    assert len(comments) == 2
    assert await service.list_for_user(owner.id) == []


async def test_mark_read_and_counts(session, owner, bob):
    await seed(session, bob, owner, count=3)
    service = NotificationService(session)
    first = (await service.list_for_user(bob.id))[0]

    await service.mark_read(bob.id, first.id)
    assert await service.unread_count(bob.id) == 2
    assert len(await service.list_for_user(bob.id, is_read=True)) == 1

    assert await service.mark_all_read(bob.id) == 2
    assert await service.unread_count(bob.id) == 0


async def test_other_users_notification_not_found(session, owner, bob):
    await seed(session, bob, owner, count=1)
    service = NotificationService(session)
    note = (await service.list_for_user(bob.id))[0]

    with pytest.raises(NotFoundError):
        await service.mark_read(owner.id, note.id)
    with pytest.raises(NotFoundError):
        await service.delete(owner.id, note.id)

    await service.delete(bob.id, note.id)
    assert await service.list_for_user(bob.id) == []
