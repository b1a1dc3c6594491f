"""
tests/conftest.py -- Shared test fixtures for the account service tests.

This module provides:
  - make_service(): an AuthService over isolated in-memory stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_app: module-scoped TestClient plus the AuthService behind it
  - client: function-scoped view of api_app with an empty cookie jar

Design: the user store uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs route handlers in a thread pool. Plain
:memory: DBs are per-connection under SQLAlchemy's pool and would present a
blank schema to each worker thread. The session stores hold a single sqlite3
connection each, so plain :memory: is enough there.

Environment must be set before any auth/core import:
  DEBUG=true                  -- get_settings() auto-generates SECRET_KEY
  PASSWORD_HASH_ROUNDS=1      -- keeps bcrypt-pbkdf cheap in tests
  LOGIN_RATE_LIMIT            -- high enough that login-heavy modules never hit 429
"""

from __future__ import annotations

import asyncio
import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import UserRole
from auth.service import AuthService
from auth.store import UserStore
from sessions.coordinator import SessionCoordinator
from sessions.store import PRIMARY_TABLE, TOKEN_TABLE, SessionStore

ADMIN_ACCOUNT = "rootadmin"
ADMIN_PASSWORD = "adminpass123"

_db_counter = itertools.count()


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_service(db_suffix: str | None = None, ttl: int = 3600) -> AuthService:
    """Build an AuthService over isolated in-memory stores.

    Args:
        db_suffix: Unique string appended to the shared-memory DB name so test
                   modules don't share state. Defaults to a fresh counter value.
    """
    suffix = db_suffix if db_suffix is not None else f"unit{next(_db_counter)}"
    user_store = UserStore(db_url=f"sqlite:///file:test_accounts_{suffix}?mode=memory&cache=shared&uri=true")
    sessions = SessionCoordinator(
        SessionStore(":memory:", table=PRIMARY_TABLE, ttl=ttl),
        SessionStore(":memory:", table=TOKEN_TABLE, ttl=ttl),
        ttl_seconds=ttl,
    )
    return AuthService(user_store, sessions)


def close_service(service: AuthService) -> None:
    service.sessions.close()
    service.store.close()


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.store
        app.state.sessions = service.sessions
        app.state.auth_service = service
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def service() -> Generator[AuthService, None, None]:
    """Function-scoped AuthService over fresh in-memory stores."""
    svc = make_service()
    yield svc
    close_service(svc)


@pytest.fixture(scope="module")
def api_app(request) -> Generator[tuple[TestClient, AuthService], None, None]:
    """Yield (client, service) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores. An admin
    account (ADMIN_ACCOUNT / ADMIN_PASSWORD) exists before the client starts.
    """
    svc = make_service(db_suffix=f"api_{request.module.__name__.rsplit('.', 1)[-1]}")
    svc.register(ADMIN_ACCOUNT, ADMIN_PASSWORD, ADMIN_PASSWORD)
    svc.set_role(ADMIN_ACCOUNT, UserRole.ADMIN.value)

    app.router.lifespan_context = _patch_lifespan(svc)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as test_client:
        yield test_client, svc

    close_service(svc)


@pytest.fixture
def client(api_app: tuple[TestClient, AuthService]) -> TestClient:
    """The module's TestClient with its cookie jar emptied for this test."""
    test_client, _svc = api_app
    test_client.cookies.clear()
    return test_client
