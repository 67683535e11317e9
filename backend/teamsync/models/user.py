"""User model."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamsync.db.base import BaseModel

if TYPE_CHECKING:
    from teamsync.models.project import ProjectMember


class User(BaseModel):
    """Registered user. Roles live on project memberships, never on the user."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # bcrypt hash; null for accounts provisioned without a password
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    memberships: Mapped[list["ProjectMember"]] = relationship(
        "ProjectMember", back_populates="user", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"
