"""
auth/query.py -- Translate a UserQuery filter request into a SQLAlchemy SELECT.

Rules:
  - id and role are exact-match filters, applied only when present/non-blank.
  - display_name, account and profile are substring (LIKE %value%) filters,
    applied only when non-blank.
  - Ordering is applied only when sort_field is non-blank. sort_order equal to
    ASCEND sorts ascending; any other value sorts descending.

sort_field is validated against _SORTABLE_FIELDS before it is used as a
column reference, so a client cannot order by password_digest or inject an
arbitrary expression.

The table is passed in by the caller (auth/store.py owns the schema).
"""

from __future__ import annotations

from sqlalchemy import Select, Table, select

from auth.models import MAX_ROW_ID, UserQuery
from core.errors import InvalidInput

ASCEND = "ascend"

_SORTABLE_FIELDS: frozenset[str] = frozenset(
    {"id", "account", "display_name", "profile", "role", "created_at", "updated_at"}
)

MAX_PAGE_SIZE = 100


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def build_user_select(query: UserQuery | None, users: Table) -> Select:
    """Return a SELECT over users with the filters and ordering of query.

    Raises InvalidInput for a missing request, an unknown sort field, an id
    outside the storable range, or out-of-range paging values.
    """
    if query is None:
        raise InvalidInput("Query request is empty.")
    if query.page < 1 or not (1 <= query.page_size <= MAX_PAGE_SIZE):
        raise InvalidInput(f"page must be >= 1 and page_size between 1 and {MAX_PAGE_SIZE}.")
    if (query.page - 1) * query.page_size > MAX_ROW_ID:
        raise InvalidInput("page is out of range.")
    if query.id is not None and not (1 <= query.id <= MAX_ROW_ID):
        raise InvalidInput("id is out of range.")

    stmt = select(users)
    if query.id is not None:
        stmt = stmt.where(users.c.id == query.id)
    if not _is_blank(query.display_name):
        stmt = stmt.where(users.c.display_name.contains(query.display_name, autoescape=True))
    if not _is_blank(query.account):
        stmt = stmt.where(users.c.account.contains(query.account, autoescape=True))
    if not _is_blank(query.profile):
        stmt = stmt.where(users.c.profile.contains(query.profile, autoescape=True))
    if not _is_blank(query.role):
        stmt = stmt.where(users.c.role == query.role)

    if not _is_blank(query.sort_field):
        if query.sort_field not in _SORTABLE_FIELDS:
            raise InvalidInput(f"Cannot sort by {query.sort_field!r}.")
        column = users.c[query.sort_field]
        stmt = stmt.order_by(column.asc() if query.sort_order == ASCEND else column.desc())
    return stmt
