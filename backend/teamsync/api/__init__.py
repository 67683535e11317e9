"""API router package."""

from fastapi import APIRouter

from teamsync.api.v1 import (
    auth,
    comments,
    dashboard,
    health,
    notifications,
    projects,
    tags,
    tasks,
    users,
)

router = APIRouter()

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(tags.router, prefix="/tags", tags=["Tags"])
router.include_router(comments.router, prefix="/comments", tags=["Comments"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
