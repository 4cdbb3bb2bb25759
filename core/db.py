"""
core/db.py -- Engine construction and storage error mapping shared by stores.

auth/store.py and listings/store.py both build their engine here so SQLite
connections get the same pragmas, and both wrap their queries in
storage_errors() so callers only ever see core.errors types.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.errors import DuplicateKeyError, StorageError

logger = logging.getLogger("carmarket.db")


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys on every new SQLite connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url; SQLite connections may cross threads."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def duplicate_field(exc: IntegrityError) -> str | None:
    """Best-effort name of the unique column an IntegrityError collided on.

    SQLite says "UNIQUE constraint failed: users.email", PostgreSQL names the
    constraint ("users_email_key"). Both mention the column. Returns None for
    any other constraint.
    """
    message = str(exc.orig).lower()
    for field in ("email", "name"):
        if field in message:
            return field
    return None


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures raised inside the block into core.errors.

    IntegrityError becomes DuplicateKeyError; anything else from SQLAlchemy
    (lost connection, locked database, timeout) becomes StorageError. The
    transaction opened inside the block has already rolled back by the time
    the translated error propagates.
    """
    try:
        yield
    except IntegrityError as exc:
        raise DuplicateKeyError(f"Duplicate value during {operation}.", field=duplicate_field(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Storage failure during %s", operation)
        raise StorageError("A storage error occurred.") from exc
