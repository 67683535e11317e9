from datetime import date, timedelta

import pytest
from sqlalchemy import select

from teamsync.exceptions import ForbiddenError, NotFoundError, ValidationError
from teamsync.models.notification import Notification
from teamsync.models.project import TaskTag
from teamsync.services import access_control as ac
from teamsync.services.projects import ProjectService
from teamsync.services.tags import TagService
from teamsync.services.tasks import TaskService


@pytest.fixture
async def bob(session, owner, project, make_user):
    user = await make_user("Bob")
    await ProjectService(session).add_member(owner, project.id, user_id=user.id)
    return user


@pytest.fixture
async def carol(session, owner, project, make_user):
    user = await make_user("Carol")
    await ProjectService(session).add_member(owner, project.id, role="admin", user_id=user.id)
    return user


async def test_create_task_defaults(session, owner, project):
    task = await TaskService(session).create_task(owner, project.id, "Write plan")

    assert task.status == "todo"
    assert task.priority == "medium"
    assert task.creator_id == owner.id
    assert task.completed_at is None
    assert task.tags == []
    assert task.project.name == "Launch"


async def test_create_task_rejects_bad_values(session, owner, project):
    service = TaskService(session)
    with pytest.raises(ValidationError):
        await service.create_task(owner, project.id, "   ")
    with pytest.raises(ValidationError):
        await service.create_task(owner, project.id, "Plan", status="done")
    with pytest.raises(ValidationError):
        await service.create_task(owner, project.id, "Plan", priority="critical")


async def test_assignee_must_be_member(session, owner, project, make_user):
    stranger = await make_user("Mallory")

    with pytest.raises(ValidationError):
        await TaskService(session).create_task(
            owner, project.id, "Plan", assignee_id=stranger.id
        )


async def test_assignee_membership_is_locked(session, owner, project, bob, monkeypatch):
    lookups = []
    get_membership = ac.get_membership

    async def recording(db, project_id, user_id, *, for_update=False):
        lookups.append((user_id, for_update))
        return await get_membership(db, project_id, user_id, for_update=for_update)

    monkeypatch.setattr(ac, "get_membership", recording)

    await TaskService(session).create_task(owner, project.id, "Plan", assignee_id=bob.id)

    assert (bob.id, True) in lookups


async def test_assignment_notifies_assignee(session, owner, project, bob):
    task = await TaskService(session).create_task(owner, project.id, "Plan", assignee_id=bob.id)

    notes = (
        await session.execute(
            select(Notification).where(
                Notification.user_id == bob.id,
                Notification.notification_type == "task_assigned",
            )
        )
    ).scalars().all()
    assert len(notes) == 1
    assert notes[0].task_id == task.id


async def test_non_member_cannot_create_task(session, project, make_user):
    stranger = await make_user("Mallory")

    with pytest.raises(NotFoundError):
        await TaskService(session).create_task(stranger, project.id, "Sneaky")


class TestEditRights:
    async def test_member_edits_own_task(self, session, project, bob):
        service = TaskService(session)
        task = await service.create_task(bob, project.id, "Mine")

        updated = await service.update_task(bob, task.id, {"title": "Still mine"})

        assert updated.title == "Still mine"

    async def test_member_cannot_edit_or_delete_others_task(self, session, owner, project, bob):
        service = TaskService(session)
        task = await service.create_task(owner, project.id, "Owner's")

        with pytest.raises(ForbiddenError):
            await service.update_task(bob, task.id, {"title": "Hijacked"})
        with pytest.raises(ForbiddenError):
            await service.delete_task(bob.id, task.id)

        assert (await service.get_task(owner.id, task.id)).title == "Owner's"

    async def test_admin_edits_and_deletes_any_task(self, session, project, bob, carol):
        service = TaskService(session)
        task = await service.create_task(bob, project.id, "Bob's")

        await service.update_task(carol, task.id, {"priority": "urgent"})
        await service.delete_task(carol.id, task.id)

        with pytest.raises(NotFoundError):
            await service.get_task(carol.id, task.id)

    async def test_non_member_gets_not_found(self, session, owner, project, make_user):
        stranger = await make_user("Mallory")
        task = await TaskService(session).create_task(owner, project.id, "Hidden")

        with pytest.raises(NotFoundError):
            await TaskService(session).get_task(stranger.id, task.id)


async def test_status_drives_completed_at(session, owner, project):
    service = TaskService(session)
    task = await service.create_task(owner, project.id, "Ship")

    task = await service.update_task(owner, task.id, {"status": "completed"})
    assert task.completed_at is not None

    # Any status may follow any other
    task = await service.update_task(owner, task.id, {"status": "todo"})
    assert task.status == "todo"
    assert task.completed_at is None


async def test_partial_update_leaves_other_fields(session, owner, project):
    service = TaskService(session)
    due = date(2030, 1, 15)
    task = await service.create_task(owner, project.id, "Ship", description="v1", due_date=due)

    task = await service.update_task(owner, task.id, {"priority": "high"})

    assert task.description == "v1"
    assert task.due_date == due
    assert task.priority == "high"


async def test_unknown_field_rejected(session, owner, project):
    service = TaskService(session)
    task = await service.create_task(owner, project.id, "Ship")

    with pytest.raises(ValidationError):
        await service.update_task(owner, task.id, {"project_id": project.id})


async def test_tag_ids_replace_whole_set(session, owner, project):
    tags = TagService(session)
    red = await tags.create_tag(owner.id, project.id, "Red", "#FF0000")
    blue = await tags.create_tag(owner.id, project.id, "Blue", "#0000FF")
    service = TaskService(session)
    task = await service.create_task(owner, project.id, "Paint", tag_ids=[red.id])

    task = await service.update_task(owner, task.id, {"tag_ids": [blue.id]})

    assert [t.name for t in task.tags] == ["Blue"]
    rows = (await session.execute(select(TaskTag).where(TaskTag.task_id == task.id))).scalars().all()
    assert [r.tag_id for r in rows] == [blue.id]

    task = await service.update_task(owner, task.id, {"tag_ids": []})
    assert task.tags == []


async def test_tags_from_other_project_rejected(session, owner, project):
    other = await ProjectService(session).create_project(owner, "Other")
    foreign = await TagService(session).create_tag(owner.id, other.id, "Foreign")

    with pytest.raises(ValidationError):
        await TaskService(session).create_task(owner, project.id, "Mixed", tag_ids=[foreign.id])


class TestListing:
    async def test_filters(self, session, owner, project, bob):
        today = date(2026, 3, 10)
        service = TaskService(session)
        overdue = await service.create_task(
            owner, project.id, "Late", assignee_id=bob.id, due_date=today - timedelta(days=1)
        )
        soon = await service.create_task(
            owner, project.id, "Soon", assignee_id=bob.id, due_date=today + timedelta(days=3)
        )
        later = await service.create_task(
            owner, project.id, "Later", due_date=today + timedelta(days=30)
        )
        undated = await service.create_task(owner, project.id, "Someday")

        all_tasks = await service.list_tasks(bob.id, today=today)
        assert [t.id for t in all_tasks] == [overdue.id, soon.id, later.id, undated.id]

        assigned = await service.list_tasks(bob.id, task_filter="assigned", today=today)
        assert {t.id for t in assigned} == {overdue.id, soon.id}

        upcoming = await service.list_tasks(bob.id, task_filter="upcoming", today=today)
        assert [t.id for t in upcoming] == [soon.id]

        late = await service.list_tasks(bob.id, task_filter="overdue", today=today)
        assert [t.id for t in late] == [overdue.id]

    async def test_scoped_to_membership(self, session, owner, project, make_user):
        stranger = await make_user("Mallory")
        await TaskService(session).create_task(owner, project.id, "Private")

        assert await TaskService(session).list_tasks(stranger.id) == []
        with pytest.raises(NotFoundError):
            await TaskService(session).list_tasks(stranger.id, project_id=project.id)
