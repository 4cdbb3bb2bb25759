"""
auth/store.py -- SQLAlchemy Core persistence layer for identities and favorites.

Pattern: Repository + Data Mapper (same as listings/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and gate code
never touches SQL directly.

Favorites are an explicit join table keyed by (user_id, car_id) rather than a
list column on users. toggle_favorite() changes exactly one row inside one
transaction, so two requests toggling different listings for the same user
never overwrite each other's result.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, listings/, favorites/, or notify/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, UniqueConstraint, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.db import make_engine, storage_errors

logger = logging.getLogger("carmarket.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(20), nullable=False, unique=True),
    Column("email", String(254), nullable=False, unique=True),  # stored lowercase
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_favorites = Table(
    "user_favorites",
    _metadata,
    # Autoincrement id doubles as the favoriting order.
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    # No FK: listings live in their own store and may be deleted independently.
    Column("car_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("user_id", "car_id", name="uq_user_car"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _favorite_ids(conn: Connection, user_id: int) -> list[int]:
    rows = conn.execute(
        select(_favorites.c.car_id).where(_favorites.c.user_id == user_id).order_by(_favorites.c.id)
    ).fetchall()
    return [r.car_id for r in rows]


def _apply_toggle(conn: Connection, user_id: int, car_id: int) -> list[int] | None:
    removed = conn.execute(
        _favorites.delete().where((_favorites.c.user_id == user_id) & (_favorites.c.car_id == car_id))
    ).rowcount
    exists = conn.execute(select(_users.c.id).where(_users.c.id == user_id)).first()
    if exists is None:
        conn.rollback()
        return None
    if not removed:
        conn.execute(_favorites.insert().values(user_id=user_id, car_id=car_id, created_at=_now_iso()))
    return _favorite_ids(conn, user_id)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities and their favorite relation.

    Usage:
        store = UserStore("sqlite:///carmarket.db")
        uid = store.create_user(User(name="ann", email="a@x.com", hashed_password=hash_password("p1")))
        store.toggle_favorite(uid, 7)   # -> [7]
        store.toggle_favorite(uid, 7)   # -> []
        store.close()

    Every method raises core.errors.StorageError on database failure and
    DuplicateKeyError on a uniqueness violation.
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        with storage_errors("schema creation"):
            _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateKeyError (field "name" or "email") if either unique
        column already holds the value.
        """
        with storage_errors("create_user"), self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email.lower(),
                    hashed_password=user.hashed_password,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key, favorites included. Returns None if not found."""
        with storage_errors("get_by_id"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
            if row is None:
                return None
            return _row_to_user(row, _favorite_ids(conn, row.id))

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive via lowercase storage)."""
        with storage_errors("get_by_email"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.lower())).fetchone()
            if row is None:
                return None
            return _row_to_user(row, _favorite_ids(conn, row.id))

    def get_by_name(self, name: str) -> User | None:
        """Look up a user by exact name. Returns None if not found."""
        with storage_errors("get_by_name"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.name == name)).fetchone()
            if row is None:
                return None
            return _row_to_user(row, _favorite_ids(conn, row.id))

    def delete_user(self, user_id: int) -> bool:
        """Delete a user and its favorite rows. Returns True if a user was deleted.

        Not exposed over HTTP; used by maintenance scripts and tests to produce
        sessions whose identity is gone.
        """
        with storage_errors("delete_user"), self.engine.begin() as conn:
            conn.execute(_favorites.delete().where(_favorites.c.user_id == user_id))
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    def get_favorite_ids(self, user_id: int) -> list[int]:
        """Return the user's favorite listing ids in favoriting order."""
        with storage_errors("get_favorite_ids"), self.engine.connect() as conn:
            return _favorite_ids(conn, user_id)

    def toggle_favorite(self, user_id: int, car_id: int) -> list[int] | None:
        """Flip membership of car_id in the user's favorites; return the new list.

        Returns None (and writes nothing) if the user does not exist.

        The DELETE runs first so the transaction takes the write lock before
        it reads anything: if a row was removed the toggle was a removal,
        otherwise the pair is inserted. The resulting list is read inside the
        same transaction, so it reflects this toggle plus every toggle that
        committed before it.

        Under READ COMMITTED (PostgreSQL) two toggles of the same pair can both
        delete nothing and both insert. The loser's INSERT hits uq_user_car;
        the pair is then present, which is what that toggle asked for, so the
        committed list is returned instead of a DuplicateKeyError.
        """
        with storage_errors("toggle_favorite"):
            try:
                with self.engine.begin() as conn:
                    return _apply_toggle(conn, user_id, car_id)
            except IntegrityError:
                logger.info("Concurrent toggle already added car %s for user %s", car_id, user_id)
                with self.engine.connect() as conn:
                    if conn.execute(select(_users.c.id).where(_users.c.id == user_id)).first() is None:
                        return None
                    return _favorite_ids(conn, user_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with storage_errors("ping"), self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row, favorites: list[int]) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        favorites=favorites,
        created_at=row.created_at,
    )
