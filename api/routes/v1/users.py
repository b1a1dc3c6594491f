"""
api/routes/v1/users.py -- User lookup and admin search.

Routes:
  POST /api/v1/users/search -- filtered, sorted, paged list of PublicView (admin only)
  GET  /api/v1/users/{id}   -- PublicView of one user (login required)

POST rather than GET for search because the filter set is a structured body,
not a handful of query params.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from api.models import UserPage, UserSearchRequest
from auth.dependencies import get_auth_service, get_current_user, require_admin
from auth.models import MAX_ROW_ID, User
from auth.service import AuthService
from auth.views import PublicView

router = APIRouter()


@router.post("/users/search", response_model=UserPage)
def search_users(
    body: UserSearchRequest,
    current_user: User = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
) -> UserPage:
    """List users matching the filter. Password digests never appear in the output."""
    items, total = service.search_users(body.to_query())
    return UserPage(items=items, total=total, page=body.page, page_size=body.page_size)


@router.get("/users/{user_id}", response_model=PublicView)
def get_user(
    user_id: int = Path(ge=1, le=MAX_ROW_ID),
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> PublicView:
    return service.get_user(user_id)
