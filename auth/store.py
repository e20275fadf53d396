"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
UserStore and LoginHistoryStore are the repositories; _row_to_user /
_row_to_entry are the mappers. Service and route code never touches SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is the authority for account uniqueness. Two concurrent
  sign-ups for the same address both pass the service's lookup; the second
  INSERT fails the constraint and surfaces as ConflictError.

Error mapping:
  IntegrityError on users  -> ConflictError("Email already in use")
  any other SQLAlchemyError -> StorageError (driver exception chained)

Both stores share one Engine so login_history.user_id can reference users.id.
SQLite connections get WAL journaling and foreign_keys=ON.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import LoginHistoryEntry, Role, User
from auth.repository import DEFAULT_HISTORY_LIMIT
from core.errors import ConflictError, StorageError

logger = logging.getLogger("civicauth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(320), nullable=False, unique=True),  # stored lower-case
    Column("full_name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("role", String(16), nullable=False),
    Column("created_at", String(32), nullable=False),  # ISO 8601 UTC
    CheckConstraint("role IN ('admin', 'ngo', 'citizen')", name="ck_users_role"),
)

_login_history = Table(
    "login_history",
    _metadata,
    # Insertion order; breaks ties between attempts with the same attempted_at.
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(36), nullable=False, unique=True),
    # NULL when the attempted email matched no account.
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE")),
    Column("email", String(320), nullable=False),
    Column("success", Integer, nullable=False),
    Column("ip_address", String(64)),
    Column("user_agent", Text),
    Column("attempted_at", String(32), nullable=False),  # ISO 8601 UTC
    CheckConstraint("success IN (0, 1)", name="ck_login_history_success"),
)

Index("idx_login_history_user_id", _login_history.c.user_id)
Index("idx_login_history_email", _login_history.c.email)
Index("idx_login_history_attempted_at", _login_history.c.attempted_at)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journaling and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _ensure_sqlite_dir(db_url: str) -> None:
    url = make_url(db_url)
    database = url.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    if url.query.get("mode") == "memory":
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url and make sure both tables exist.

    create_all() is idempotent -- safe to call on every startup.
    """
    connect_args: dict = {}
    is_sqlite = db_url.startswith("sqlite")
    if is_sqlite:
        connect_args["check_same_thread"] = False
        _ensure_sqlite_dir(db_url)
    engine = create_engine(db_url, connect_args=connect_args)
    if is_sqlite:
        event.listen(engine, "connect", _set_sqlite_pragmas)
    _metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class UserStore:
    """SQL-backed UserRepository.

    Usage:
        engine = make_engine("sqlite:///data/app.db")
        users = UserStore(engine)
        created = users.create(User(email="a@b.org", full_name="A", password_hash=h,
                                    role=Role.citizen, created_at=now))
        users.find_by_email("A@B.org")   # -> created
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, user: User) -> User:
        """Insert user with a fresh id. Returns the stored record.

        Raises ConflictError if the email is already registered (any case).
        """
        stored = User(
            id=_new_id(),
            email=user.email.lower(),
            full_name=user.full_name,
            password_hash=user.password_hash,
            role=Role(user.role),
            created_at=user.created_at,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=stored.id,
                        email=stored.email,
                        full_name=stored.full_name,
                        password_hash=stored.password_hash,
                        role=stored.role.value,
                        created_at=_to_iso(stored.created_at),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            logger.exception("User insert failed")
            raise StorageError() from exc
        return stored

    def find_by_email(self, email: str) -> User | None:
        """Case-insensitive lookup. Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == email.lower())).fetchone()
        except SQLAlchemyError as exc:
            logger.exception("User lookup by email failed")
            raise StorageError() from exc
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: str) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            logger.exception("User lookup by id failed")
            raise StorageError() from exc
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Run a trivial query to verify the database is reachable."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def close(self) -> None:
        self.engine.dispose()


class LoginHistoryStore:
    """SQL-backed LoginHistoryRepository. Append-only: no update or delete methods."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, entry: LoginHistoryEntry) -> LoginHistoryEntry:
        stored = LoginHistoryEntry(
            id=_new_id(),
            user_id=entry.user_id,
            email=entry.email.lower(),
            success=entry.success,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            attempted_at=entry.attempted_at,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _login_history.insert().values(
                        id=stored.id,
                        user_id=stored.user_id,
                        email=stored.email,
                        success=1 if stored.success else 0,
                        ip_address=stored.ip_address,
                        user_agent=stored.user_agent,
                        attempted_at=_to_iso(stored.attempted_at),
                    )
                )
                conn.commit()
        except SQLAlchemyError as exc:
            logger.exception("Login history insert failed")
            raise StorageError() from exc
        return stored

    def find_by_user_id(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[LoginHistoryEntry]:
        """Return the user's attempts, newest first, at most limit rows."""
        return self._query(_login_history.c.user_id == user_id, limit)

    def find_by_email(self, email: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[LoginHistoryEntry]:
        """Return attempts against email (any case), newest first, at most limit rows.

        Includes attempts made before the account existed, where user_id is NULL.
        """
        return self._query(_login_history.c.email == email.lower(), limit)

    def _query(self, clause, limit: int) -> list[LoginHistoryEntry]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    _login_history.select()
                    .where(clause)
                    .order_by(_login_history.c.attempted_at.desc(), _login_history.c.seq.desc())
                    .limit(max(limit, 0))
                ).fetchall()
        except SQLAlchemyError as exc:
            logger.exception("Login history query failed")
            raise StorageError() from exc
        return [_row_to_entry(r) for r in rows]


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        password_hash=row.password_hash,
        role=Role(row.role),
        created_at=datetime.fromisoformat(row.created_at),
    )


def _row_to_entry(row) -> LoginHistoryEntry:
    return LoginHistoryEntry(
        id=row.id,
        user_id=row.user_id,
        email=row.email,
        success=bool(row.success),
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        attempted_at=datetime.fromisoformat(row.attempted_at),
    )
