"""Database configuration helpers for the RKAS service."""

from __future__ import annotations

from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, URL, make_url
from sqlalchemy.orm import Session, sessionmaker

from shared.service_settings import DB_URL_ENV_VAR, load_service_settings

DEFAULT_DB_FILENAME = "rkas.db"
DEFAULT_DB_PATH = Path(__file__).resolve().parents[2] / "data" / DEFAULT_DB_FILENAME

_engine: Engine | None = None


def get_database_url() -> str:
    """Return the configured database URL (defaults to a SQLite file)."""
    configured = load_service_settings().database_url
    if configured:
        return configured
    return f"sqlite:///{DEFAULT_DB_PATH}"


def _prepare_sqlite_path(url: URL) -> None:
    """Ensure on-disk SQLite paths exist before engine creation."""
    database = url.database
    if not database or database == ":memory:":
        return

    db_path = Path(database)
    if not db_path.is_absolute():
        db_path = (Path.cwd() / db_path).resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)


def build_engine(database_url: str) -> Engine:
    parsed_url = make_url(database_url)
    if parsed_url.drivername.startswith("sqlite"):
        _prepare_sqlite_path(parsed_url)
        connect_args = {"check_same_thread": False}
    else:
        connect_args = {}
    return create_engine(database_url, future=True, connect_args=connect_args)


def get_engine() -> Engine:
    """Create (or return) the global SQLAlchemy engine."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_database_url())
    return _engine


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    future=True,
)


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency for DB sessions (yield pattern)."""
    session = SessionLocal(bind=get_engine())
    try:
        yield session
    finally:
        session.close()


def init_db(engine: Engine | None = None) -> None:
    """Create tables if they are missing."""
    from . import models  # noqa: WPS433 (import inside function)

    models.Base.metadata.create_all(bind=engine or get_engine())
