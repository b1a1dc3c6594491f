"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two ways in, one per session store:
  1. Session cookie ("session_id") -- the primary store. Used by every
     account route.
  2. Authorization: Bearer <capability token> -- the token store. Used by
     authorization checks outside the cookie flow.

Both converge on a freshly re-resolved User. Failures raise core.errors
exceptions; api/main.py renders them as the shared error envelope.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import User
from auth.roles import is_admin
from auth.service import AuthService
from auth.tokens import SESSION_COOKIE
from core.errors import PermissionDenied


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_session_key(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE) or None


def get_current_user(request: Request) -> User:
    """Require a live cookie session. Raises NotAuthenticated otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    return get_auth_service(request).get_current_principal(get_session_key(request))


def require_admin(request: Request) -> User:
    """Require admin role. Raises NotAuthenticated if not logged in, PermissionDenied if not admin."""
    user = get_current_user(request)
    if not is_admin(user):
        raise PermissionDenied()
    return user


def get_capability_user(request: Request) -> User:
    """Require a valid capability token in the Authorization header."""
    token: str | None = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:]
    return get_auth_service(request).get_capability_principal(token)
