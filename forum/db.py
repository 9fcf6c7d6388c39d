import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from tenacity import before_sleep_log, retry, stop_after_attempt, wait_exponential

from forum.config import (
    DATABASE_URL,
    DB_CONNECT_ATTEMPTS,
    DB_CONNECT_MAX_WAIT,
    DB_CONNECT_MIN_WAIT,
)

logger = logging.getLogger(__name__)

engine = create_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE clauses unless this is set per connection.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@contextmanager
def get_session() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session, one transaction per request."""
    with get_session() as session:
        yield session


@retry(
    stop=stop_after_attempt(DB_CONNECT_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=DB_CONNECT_MIN_WAIT, max=DB_CONNECT_MAX_WAIT),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
def wait_for_database() -> None:
    """Block until the database accepts connections. Used at start-up only."""
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
