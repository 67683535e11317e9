"""User accounts: registration, credentials, profile and avatar."""

import asyncio
import uuid
from pathlib import Path
from uuid import UUID

import bcrypt
import structlog
from fastapi import UploadFile
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamsync.config import Settings
from teamsync.exceptions import ConflictError, NotFoundError, ValidationError
from teamsync.models.user import User

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6
AVATAR_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
AVATAR_MIME_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}
CHUNK_SIZE = 1024 * 1024
AVATAR_URL_PREFIX = "/uploads/avatars"


async def hash_password(password: str, rounds: int = 12) -> str:
    """bcrypt-hash a password off the event loop."""
    hashed = await asyncio.to_thread(
        bcrypt.hashpw, password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)
    )
    return hashed.decode("utf-8")


async def verify_password(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(
        bcrypt.checkpw, password.encode("utf-8"), password_hash.encode("utf-8")
    )


class UserService:
    """Service for user accounts."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def register(self, name: str, email: str, password: str) -> User:
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name:
            raise ValidationError("Name is required", field="name")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
            )

        existing = await self.db.execute(select(User.id).where(User.email == email))
        if existing.first() is not None:
            raise ConflictError("Email already in use")

        user = User(
            name=name,
            email=email,
            password_hash=await hash_password(password, self.settings.bcrypt_rounds),
        )
        self.db.add(user)
        await self.db.commit()

        logger.info("user_registered", user_id=str(user.id))
        return user

    async def authenticate(self, email: str, password: str) -> User | None:
        """Return the user for valid credentials, else None."""
        result = await self.db.execute(
            select(User).where(User.email == (email or "").strip().lower())
        )
        user = result.scalar_one_or_none()
        if user is None or not user.password_hash or not user.is_active:
            return None
        if not await verify_password(password, user.password_hash):
            return None
        return user

    async def get_user(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found", resource="user")
        return user

    async def search(self, actor_id: UUID, query: str, limit: int = 10) -> list[User]:
        """Find users by name or e-mail, excluding the caller."""
        pattern = f"%{query.strip().lower()}%"
        result = await self.db.execute(
            select(User)
            .where(
                or_(User.name.ilike(pattern), User.email.ilike(pattern)),
                User.id != actor_id,
                User.is_active.is_(True),
            )
            .order_by(User.name)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update_profile(
        self, user: User, name: str | None = None, avatar_url: str | None = None
    ) -> User:
        if name is not None:
            if not name.strip():
                raise ValidationError("Name is required", field="name")
            user.name = name.strip()
        if avatar_url is not None:
            user.avatar_url = avatar_url
        await self.db.commit()
        logger.info("user_profile_updated", user_id=str(user.id))
        return user

    async def save_avatar(self, user: User, upload: UploadFile) -> str:
        """Store an uploaded avatar image and point the user at it.

        The file is streamed to disk in chunks and removed again if it turns
        out larger than the configured limit. The previously stored avatar is
        deleted once the new one is committed.
        """
        extension = Path(upload.filename or "").suffix.lower()
        if extension not in AVATAR_EXTENSIONS:
            raise ValidationError(
                f"File type not allowed. Allowed extensions: {', '.join(sorted(AVATAR_EXTENSIONS))}",
                field="avatar",
            )
        if upload.content_type not in AVATAR_MIME_TYPES:
            raise ValidationError(f"MIME type not allowed: {upload.content_type}", field="avatar")

        avatar_dir = self.settings.upload_dir / "avatars"
        await asyncio.to_thread(avatar_dir.mkdir, parents=True, exist_ok=True)
        filename = f"{user.id}-{uuid.uuid4()}{extension}"
        path = avatar_dir / filename

        total = 0
        out = await asyncio.to_thread(open, path, "wb")
        try:
            while chunk := await upload.read(CHUNK_SIZE):
                total += len(chunk)
                if total > self.settings.avatar_max_bytes:
                    break
                await asyncio.to_thread(out.write, chunk)
        finally:
            await asyncio.to_thread(out.close)
        if total > self.settings.avatar_max_bytes:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            limit_mb = self.settings.avatar_max_bytes / (1024 * 1024)
            raise ValidationError(f"File too large. Maximum size: {limit_mb:.0f}MB", field="avatar")
        if total == 0:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            raise ValidationError("No file uploaded", field="avatar")

        previous = user.avatar_url
        user.avatar_url = f"{AVATAR_URL_PREFIX}/{filename}"
        await self.db.commit()
        await self._remove_stored_avatar(previous)

        logger.info("avatar_uploaded", user_id=str(user.id), size=total)
        return user.avatar_url

    async def _remove_stored_avatar(self, avatar_url: str | None) -> None:
        """Delete a file previously saved by ``save_avatar``. External URLs are left alone."""
        if not avatar_url or not avatar_url.startswith(f"{AVATAR_URL_PREFIX}/"):
            return
        filename = avatar_url[len(AVATAR_URL_PREFIX) + 1 :]
        if Path(filename).name != filename:
            return
        path = self.settings.upload_dir / "avatars" / filename
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.debug("avatar_removed", path=str(path))
