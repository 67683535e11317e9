import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from teamsync.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from teamsync.models.project import DEFAULT_TAG_COLOR, Tag, TaskTag
from teamsync.services.projects import ProjectService
from teamsync.services.tags import TagService
from teamsync.services.tasks import TaskService


async def test_create_tag_default_color(session, owner, project):
    tag = await TagService(session).create_tag(owner.id, project.id, " Urgent ")

    assert tag.name == "Urgent"
    assert tag.color == DEFAULT_TAG_COLOR


async def test_duplicate_name_ignores_case(session, owner, project):
    tags = TagService(session)
    await tags.create_tag(owner.id, project.id, "Urgent")

    with pytest.raises(ConflictError):
        await tags.create_tag(owner.id, project.id, "urgent")

    assert [t.name for t in await tags.list_tags(owner.id, project.id)] == ["Urgent"]


async def test_store_rejects_case_variant_name(session, owner, project):
    await TagService(session).create_tag(owner.id, project.id, "Urgent")

    session.add(Tag(name="urgent", project_id=project.id))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()


async def test_same_name_in_other_project(session, owner, project):
    other = await ProjectService(session).create_project(owner, "Other")
    tags = TagService(session)
    await tags.create_tag(owner.id, project.id, "Urgent")

    tag = await tags.create_tag(owner.id, other.id, "URGENT")

    assert tag.project_id == other.id


async def test_rename_checks_uniqueness(session, owner, project):
    tags = TagService(session)
    await tags.create_tag(owner.id, project.id, "Bug")
    feature = await tags.create_tag(owner.id, project.id, "Feature")

    with pytest.raises(ConflictError):
        await tags.update_tag(owner.id, feature.id, name="BUG")

    renamed = await tags.update_tag(owner.id, feature.id, name="FEATURE", color="#00FF00")
    assert renamed.name == "FEATURE"
    assert renamed.color == "#00FF00"


async def test_invalid_color(session, owner, project):
    with pytest.raises(ValidationError):
        await TagService(session).create_tag(owner.id, project.id, "Bug", color="red")


async def test_members_cannot_manage_tags(session, owner, project, make_user):
    bob = await make_user("Bob")
    stranger = await make_user("Mallory")
    await ProjectService(session).add_member(owner, project.id, user_id=bob.id)
    tags = TagService(session)
    tag = await tags.create_tag(owner.id, project.id, "Bug")

    with pytest.raises(ForbiddenError):
        await tags.create_tag(bob.id, project.id, "Feature")
    with pytest.raises(ForbiddenError):
        await tags.delete_tag(bob.id, tag.id)
    with pytest.raises(NotFoundError):
        await tags.update_tag(stranger.id, tag.id, name="Mine")

    assert len(await tags.list_tags(bob.id, project.id)) == 1


async def test_delete_tag_detaches_from_tasks(session, owner, project):
    tags = TagService(session)
    bug = await tags.create_tag(owner.id, project.id, "Bug")
    task = await TaskService(session).create_task(owner, project.id, "Fix", tag_ids=[bug.id])

    await tags.delete_tag(owner.id, bug.id)

    remaining = await session.scalar(
        select(func.count()).select_from(TaskTag).where(TaskTag.task_id == task.id)
    )
    assert remaining == 0
    task = await TaskService(session).get_task(owner.id, task.id)
    assert task.tags == []
