"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(account) is enforced by the database. AuthService still runs a
  count_by_account() pre-check for a friendly error, but the IntegrityError
  raised by create_user() is the authoritative duplicate signal -- two
  concurrent registrations can both pass the pre-check.

DB path: auth/accounts.db by default.

Layer rule: no imports from api/ or sessions/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine

from auth.models import User, UserQuery
from auth.query import build_user_select

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'accounts.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account", String(255), nullable=False, unique=True),
    Column("password_digest", String(64), nullable=False),  # 64 lowercase hex chars
    Column("display_name", String(255)),
    Column("avatar_url", Text),
    Column("profile", Text),
    Column("role", String(30), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(account="alice", password_digest=hash_password("secret99")))
        user = store.find_by_id(user_id)
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def count_by_account(self, account: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_users).where(_users.c.account == account)
            ).scalar()
        return result or 0

    def find_by_account(self, account: str) -> User | None:
        """Look up a user by exact account (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.account == account)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_one_by_account_and_digest(self, account: str, digest: str) -> User | None:
        """Single combined credential lookup: both account and digest must match.

        The plaintext password never reaches this layer -- callers hash first.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.account == account) & (_users.c.password_digest == digest))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def search_users(self, query: UserQuery) -> tuple[list[User], int]:
        """Return one page of users matching query, plus the total match count.

        Filtering and ordering come from auth.query.build_user_select(); this
        method only adds paging and the count.
        """
        stmt = build_user_select(query, _users)
        offset = (query.page - 1) * query.page_size
        with self.engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar()
            rows = conn.execute(stmt.limit(query.page_size).offset(offset)).fetchall()
        return [_row_to_user(r) for r in rows], total or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the account already exists.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    account=user.account,
                    password_digest=user.password_digest,
                    display_name=user.display_name,
                    avatar_url=user.avatar_url,
                    profile=user.profile,
                    role=user.role,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_role(self, user_id: int, role: str) -> bool:
        """Set a user's role. Returns True if a row was updated, False if user_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(role=role, updated_at=_now_iso()))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        account=row.account,
        password_digest=row.password_digest,
        display_name=row.display_name,
        avatar_url=row.avatar_url,
        profile=row.profile,
        role=row.role,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
