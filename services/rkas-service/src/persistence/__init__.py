"""Persistence primitives for the RKAS service."""

from persistence.data_access import COLLECTIONS, REFERENCE_COLLECTIONS, DataAccess
from persistence.database import (
    DB_URL_ENV_VAR,
    DEFAULT_DB_FILENAME,
    DEFAULT_DB_PATH,
    SessionLocal,
    get_database_url,
    get_engine,
    init_db,
)
from persistence.memory import InMemoryDataAccess
from persistence.models import AuditEvent, Base, RecordRow
from persistence.repository import SqlAlchemyDataAccess

__all__ = [
    "AuditEvent",
    "Base",
    "COLLECTIONS",
    "DataAccess",
    "DB_URL_ENV_VAR",
    "DEFAULT_DB_FILENAME",
    "DEFAULT_DB_PATH",
    "InMemoryDataAccess",
    "RecordRow",
    "REFERENCE_COLLECTIONS",
    "SessionLocal",
    "SqlAlchemyDataAccess",
    "get_database_url",
    "get_engine",
    "init_db",
]
