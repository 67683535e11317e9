"""Database package."""

from teamsync.db.base import Base, BaseModel
from teamsync.db.session import Database, DBSession, get_db_session

__all__ = ["Base", "BaseModel", "Database", "DBSession", "get_db_session"]
