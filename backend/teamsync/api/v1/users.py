"""User profile endpoints."""

from uuid import UUID

from fastapi import APIRouter, File, Query, UploadFile
from pydantic import BaseModel, Field

from teamsync.api.deps import AppSettings
from teamsync.api.v1.auth import CurrentUser, UserResponse
from teamsync.api.v1.schemas import ProjectSummaryResponse, UserBrief
from teamsync.db.session import DBSession
from teamsync.models.user import User
from teamsync.services.dashboard import DashboardService
from teamsync.services.users import UserService

router = APIRouter()


class ProfileUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    avatar_url: str | None = Field(None, max_length=500)


class AvatarResponse(BaseModel):
    avatar_url: str


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> User:
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    updates: ProfileUpdate,
    current_user: CurrentUser,
    db: DBSession,
    settings: AppSettings,
) -> User:
    """Update the caller's name or avatar URL."""
    return await UserService(db, settings).update_profile(
        current_user, name=updates.name, avatar_url=updates.avatar_url
    )


@router.post("/me/avatar", response_model=AvatarResponse)
async def upload_avatar(
    current_user: CurrentUser,
    db: DBSession,
    settings: AppSettings,
    avatar: UploadFile = File(...),
) -> AvatarResponse:
    """Upload an avatar image (multipart field ``avatar``)."""
    url = await UserService(db, settings).save_avatar(current_user, avatar)
    return AvatarResponse(avatar_url=url)


@router.get("/me/projects", response_model=list[ProjectSummaryResponse])
async def list_my_projects(
    current_user: CurrentUser,
    db: DBSession,
) -> list[ProjectSummaryResponse]:
    summaries = await DashboardService(db).list_projects(current_user.id)
    return [ProjectSummaryResponse.from_summary(s) for s in summaries]


@router.get("/search", response_model=list[UserBrief])
async def search_users(
    current_user: CurrentUser,
    db: DBSession,
    settings: AppSettings,
    query: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
) -> list[User]:
    """Search users by name or e-mail."""
    return await UserService(db, settings).search(current_user.id, query, limit)


@router.get("/{user_id}", response_model=UserBrief)
async def get_user(
    user_id: UUID,
    current_user: CurrentUser,
    db: DBSession,
    settings: AppSettings,
) -> User:
    return await UserService(db, settings).get_user(user_id)
