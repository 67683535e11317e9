"""Middleware package."""

from teamsync.middleware.logging import LoggingMiddleware
from teamsync.middleware.request_id import RequestIDMiddleware

__all__ = ["LoggingMiddleware", "RequestIDMiddleware"]
