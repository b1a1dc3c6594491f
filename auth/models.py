"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, the session coordinator and the service do the work.

Layer rule: no imports from api/ or sessions/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    """Closed set of authorization roles, lowest privilege first."""

    USER = "user"
    ADMIN = "admin"


DEFAULT_ROLE = UserRole.USER

# SQLite INTEGER is a signed 64-bit value; larger ids cannot be bound.
MAX_ROW_ID = 2**63 - 1


@dataclass
class User:
    """Identity record as persisted in the users table.

    account is the immutable business key chosen at registration and is
    globally unique (UNIQUE constraint in auth/store.py).

    password_digest is the salted one-way digest from auth/hashing.py. It must
    never leave the service -- auth/views.py projections omit it.
    """

    account: str
    password_digest: str
    role: str = DEFAULT_ROLE.value
    id: int | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    profile: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """The authenticated subset of a User carried in session state.

    A Principal is a pointer, not a copy of truth: every authorization decision
    re-resolves the User by id against the store.
    """

    id: int
    account: str
    role: str


@dataclass(frozen=True)
class SessionRecord:
    """One logical login state, written identically to both session stores."""

    session_key: str
    principal_id: int
    written_at: float
    expires_at: float


@dataclass
class UserQuery:
    """Filter request for the admin user search.

    Text fields (display_name, account, profile) are substring filters applied
    only when non-blank; id and role are exact-match filters applied only when
    present. sort_order "ascend" sorts ascending, any other value descending.
    """

    id: int | None = None
    display_name: str | None = None
    account: str | None = None
    profile: str | None = None
    role: str | None = None
    sort_field: str | None = None
    sort_order: str = "descend"
    page: int = 1
    page_size: int = 10
