"""Authentication endpoints: registration, password login and JWT tokens."""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select

from teamsync.api.deps import AppSettings
from teamsync.config import Settings
from teamsync.db.session import DBSession
from teamsync.exceptions import ForbiddenError, UnauthenticatedError
from teamsync.models.user import User
from teamsync.services.users import MIN_PASSWORD_LENGTH, UserService

router = APIRouter()
logger = structlog.get_logger()
security = HTTPBearer(auto_error=False)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_token: str | None = None


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """User information response."""

    id: UUID
    email: str
    name: str
    avatar_url: str | None
    created_at: datetime

    class Config:
        from_attributes = True


def _encode(settings: Settings, user_id: UUID, token_type: str, expire: datetime) -> str:
    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "type": token_type,
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


def create_access_token(
    settings: Settings, user_id: UUID, expires_delta: timedelta | None = None
) -> str:
    """Create a JWT access token."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    return _encode(settings, user_id, "access", expire)


def create_refresh_token(settings: Settings, user_id: UUID) -> str:
    """Create a JWT refresh token."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.jwt_refresh_token_expire_days)
    return _encode(settings, user_id, "refresh", expire)


def decode_token(settings: Settings, token: str, expected_type: str) -> UUID:
    """Validate a token and return the user id it was issued for."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise UnauthenticatedError("Invalid token")

    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != expected_type:
        raise UnauthenticatedError("Invalid token")
    try:
        return UUID(user_id)
    except ValueError:
        raise UnauthenticatedError("Invalid token")


def _token_pair(settings: Settings, user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(settings, user.id),
        refresh_token=create_refresh_token(settings, user.id),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
    settings: AppSettings,
) -> User:
    """Get the current authenticated user from JWT token."""
    if not credentials:
        raise UnauthenticatedError("Not authenticated")

    user_id = decode_token(settings, credentials.credentials, "access")
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise UnauthenticatedError("User not found")
    if not user.is_active:
        raise ForbiddenError("User account is disabled")

    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user


# Type alias for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: DBSession,
    settings: AppSettings,
) -> User:
    """Create an account with e-mail and password."""
    return await UserService(db, settings).register(
        request.name, request.email, request.password
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: DBSession,
    settings: AppSettings,
) -> TokenResponse:
    """Exchange e-mail and password for tokens."""
    user = await UserService(db, settings).authenticate(request.email, request.password)
    if user is None:
        logger.info("login_failed", email=request.email)
        raise UnauthenticatedError("Invalid email or password")

    logger.info("user_logged_in", user_id=str(user.id))
    return _token_pair(settings, user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
    settings: AppSettings,
) -> TokenResponse:
    """Refresh access token using refresh token."""
    if not credentials:
        raise UnauthenticatedError("Not authenticated")
    user_id = decode_token(settings, credentials.credentials, "refresh")

    # Verify user still exists and is active
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthenticatedError("User not found or disabled")

    return _token_pair(settings, user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: CurrentUser) -> User:
    """Get current user information."""
    return current_user


@router.post("/logout")
async def logout(current_user: CurrentUser) -> dict[str, str]:
    """Logout current user (client should discard tokens)."""
    logger.info("user_logged_out", user_id=str(current_user.id))
    return {"message": "Successfully logged out"}
