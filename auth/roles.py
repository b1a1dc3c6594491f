"""auth/roles.py -- Authorization predicates derived from a resolved User."""

from __future__ import annotations

from auth.models import User, UserRole


def is_admin(user: User | None) -> bool:
    """True iff user is present and holds the admin role."""
    return user is not None and user.role == UserRole.ADMIN.value
