"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from teamsync.config import Settings


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was created with."""
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_app_settings)]
