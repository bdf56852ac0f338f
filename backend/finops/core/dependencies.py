from collections.abc import Generator
from functools import lru_cache
from typing import Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from finops.core.config import get_settings
from finops.services.ai.action_analysis.catalog import ActionCatalog, build_default_catalog


def _build_engine(database_url: str) -> Optional[Engine]:
    if not database_url:
        return None

    is_sqlite = database_url.startswith("sqlite")
    # Sync endpoints run in a threadpool; SQLite connections must cross threads.
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}
    db_engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)

    if is_sqlite:
        @event.listens_for(db_engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.close()

    return db_engine


engine = _build_engine(get_settings().database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine else None


def get_db() -> Generator[Session, None, None]:
    """Customer lookups are read-only; the session is closed, never committed."""
    if SessionLocal is None:
        raise RuntimeError("DATABASE_URL is not configured")
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_action_catalog() -> ActionCatalog:
    """The process-wide action catalog, shared across requests."""
    return build_default_catalog()
