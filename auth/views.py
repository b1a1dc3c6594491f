"""
auth/views.py -- Desensitized, external-facing projections of User.

PublicView is what other users may see; LoginView is what the logged-in user
sees about themselves. Neither carries password_digest, and because both are
built by copying named fields (never by dumping the dataclass) a new secret
column on User cannot leak by accident.

Views are created fresh per request and frozen -- never cached, never mutated.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth.models import User


class PublicView(BaseModel):
    """User as shown to other users and in admin listings."""

    model_config = ConfigDict(frozen=True)

    id: int
    account: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    profile: Optional[str] = None
    role: str
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "PublicView":
        return cls(
            id=user.id,
            account=user.account,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            profile=user.profile,
            role=user.role,
            created_at=user.created_at,
        )


class LoginView(BaseModel):
    """User as returned to themselves after login and on GET /auth/current."""

    model_config = ConfigDict(frozen=True)

    id: int
    account: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    profile: Optional[str] = None
    role: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "LoginView":
        return cls(
            id=user.id,
            account=user.account,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            profile=user.profile,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


def to_public_view(user: User | None) -> PublicView | None:
    return PublicView.from_user(user) if user is not None else None


def to_login_view(user: User | None) -> LoginView | None:
    return LoginView.from_user(user) if user is not None else None


def to_public_view_list(users: Sequence[User] | None) -> list[PublicView]:
    """Project users in order. None or empty input yields an empty list."""
    if not users:
        return []
    return [PublicView.from_user(u) for u in users]
