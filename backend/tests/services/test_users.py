import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from teamsync.exceptions import ConflictError, ValidationError
from teamsync.services.users import UserService


def upload(filename: str, content: bytes, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


async def test_register_and_authenticate(session, settings):
    service = UserService(session, settings)

    user = await service.register("Olivia", "Olivia@Example.com", "hunter22")

    assert user.email == "olivia@example.com"
    assert user.password_hash != "hunter22"
    assert (await service.authenticate("OLIVIA@example.com", "hunter22")).id == user.id
    assert await service.authenticate("olivia@example.com", "wrong-password") is None
    assert await service.authenticate("nobody@example.com", "hunter22") is None


async def test_register_rejects_duplicates_and_short_passwords(session, settings):
    service = UserService(session, settings)
    await service.register("Olivia", "olivia@example.com", "hunter22")

    with pytest.raises(ConflictError):
        await service.register("Other", "OLIVIA@example.com", "hunter22")
    with pytest.raises(ValidationError):
        await service.register("Short", "short@example.com", "12345")


async def test_search_excludes_caller(session, settings, make_user):
    alice = await make_user("Alice")
    await make_user("Alan")
    await make_user("Bob")

    found = await UserService(session, settings).search(alice.id, "al")

    assert [u.name for u in found] == ["Alan"]


class TestAvatar:
    async def test_saves_file_and_url(self, session, settings, make_user):
        user = await make_user("Alice")

        url = await UserService(session, settings).save_avatar(
            user, upload("me.PNG", b"\x89PNG fake image", "image/png")
        )

        assert url.startswith("/uploads/avatars/")
        assert url.endswith(".png")
        assert user.avatar_url == url
        stored = settings.upload_dir / "avatars" / url.rsplit("/", 1)[1]
        assert stored.read_bytes() == b"\x89PNG fake image"

    async def test_replacing_avatar_deletes_previous_file(self, session, settings, make_user):
        user = await make_user("Alice")
        service = UserService(session, settings)
        avatars = settings.upload_dir / "avatars"

        first = await service.save_avatar(user, upload("one.png", b"first", "image/png"))
        second = await service.save_avatar(user, upload("two.jpg", b"second", "image/jpeg"))

        assert user.avatar_url == second
        assert not (avatars / first.rsplit("/", 1)[1]).exists()
        assert [p.name for p in avatars.iterdir()] == [second.rsplit("/", 1)[1]]

    async def test_external_avatar_url_left_alone(self, session, settings, make_user):
        user = await make_user("Alice")
        user.avatar_url = "https://cdn.example.com/alice.png"
        await session.commit()

        url = await UserService(session, settings).save_avatar(
            user, upload("me.png", b"image", "image/png")
        )

        assert url.startswith("/uploads/avatars/")

    async def test_rejects_wrong_type(self, session, settings, make_user):
        user = await make_user("Alice")

        with pytest.raises(ValidationError):
            await UserService(session, settings).save_avatar(
                user, upload("script.exe", b"MZ", "application/octet-stream")
            )

    async def test_rejects_oversized_file(self, session, settings, make_user):
        user = await make_user("Alice")
        too_big = b"x" * (settings.avatar_max_bytes + 1)

        with pytest.raises(ValidationError):
            await UserService(session, settings).save_avatar(
                user, upload("big.jpg", too_big, "image/jpeg")
            )

        assert user.avatar_url is None
        assert list((settings.upload_dir / "avatars").iterdir()) == []
