"""
sessions/coordinator.py -- Keep the two session stores in lockstep.

One logical login state lives in two physical stores:
  primary -- backs the session cookie; read on every authenticated request.
  tokens  -- backs capability tokens used by authorization checks outside the
             cookie flow (see auth/tokens.py).

Invariants:
  - Both stores are written under the same session key with the same
    expires_at, computed once per login.
  - If the second write fails after the first succeeded, the first is rolled
    back and StorageFailure is raised. Callers never observe one store logged
    in and the other not.
  - Logout clears both stores.

Reads are typed optional lookups: a missing key, an expired entry or a value
of the wrong shape all come back as None, never as a half-built Principal.
"""

from __future__ import annotations

import logging
import secrets
import sqlite3
import time

from auth.models import Principal, SessionRecord
from core.errors import StorageFailure
from sessions.store import SessionStore

logger = logging.getLogger("accounts.sessions")

USER_LOGIN_STATE = "user_login_state"


def _to_principal(value: dict | None) -> Principal | None:
    if not value:
        return None
    principal_id = value.get("principal_id")
    account = value.get("account")
    role = value.get("role")
    # bool is an int subclass; a JSON true must not pass as user id 1.
    if not isinstance(principal_id, int) or isinstance(principal_id, bool):
        return None
    if not isinstance(account, str) or not isinstance(role, str):
        return None
    return Principal(id=principal_id, account=account, role=role)


class SessionCoordinator:
    """The only writer of the primary and token session stores.

    Usage:
        coordinator = SessionCoordinator(SessionStore(table=PRIMARY_TABLE),
                                         SessionStore(table=TOKEN_TABLE), ttl_seconds=3600)
        record = coordinator.establish(Principal(id=1, account="alice", role="user"))
        coordinator.read_principal(record.session_key)
        coordinator.clear(record.session_key)
    """

    def __init__(self, primary: SessionStore, tokens: SessionStore, ttl_seconds: int) -> None:
        self.primary = primary
        self.tokens = tokens
        self.ttl_seconds = ttl_seconds

    def establish(self, principal: Principal) -> SessionRecord:
        """Write principal into both stores under a fresh session key."""
        session_key = secrets.token_urlsafe(32)
        written_at = time.time()
        expires_at = written_at + self.ttl_seconds
        value = {
            "principal_id": principal.id,
            "account": principal.account,
            "role": principal.role,
            "written_at": written_at,
        }

        try:
            self.primary.set(session_key, USER_LOGIN_STATE, value, expires_at=expires_at)
        except sqlite3.Error as exc:
            logger.error("Primary session write failed for user_id=%s: %s", principal.id, exc)
            raise StorageFailure("Could not establish session.") from exc

        try:
            self.tokens.set(session_key, USER_LOGIN_STATE, value, expires_at=expires_at)
        except sqlite3.Error as exc:
            logger.error("Token session write failed for user_id=%s, rolling back primary: %s", principal.id, exc)
            try:
                self.primary.remove(session_key, USER_LOGIN_STATE)
            except sqlite3.Error:
                logger.exception("Rollback of primary session failed for user_id=%s", principal.id)
            raise StorageFailure("Could not establish session.") from exc

        return SessionRecord(
            session_key=session_key,
            principal_id=principal.id,
            written_at=written_at,
            expires_at=expires_at,
        )

    def read_principal(self, session_key: str | None) -> Principal | None:
        """Principal held by the primary store, or None."""
        return self._read(self.primary, session_key)

    def read_capability(self, session_key: str | None) -> Principal | None:
        """Principal held by the token store, or None."""
        return self._read(self.tokens, session_key)

    def _read(self, store: SessionStore, session_key: str | None) -> Principal | None:
        if not session_key:
            return None
        try:
            value = store.get(session_key, USER_LOGIN_STATE)
        except sqlite3.Error as exc:
            logger.error("Session read failed on %s: %s", store.table, exc)
            raise StorageFailure("Could not read session.") from exc
        return _to_principal(value)

    def clear(self, session_key: str) -> bool:
        """Remove the login state from both stores.

        Returns True if the primary store held an entry. Both removals are
        attempted even if the first one fails.
        """
        failures: list[sqlite3.Error] = []
        removed = False
        try:
            removed = self.primary.remove(session_key, USER_LOGIN_STATE)
        except sqlite3.Error as exc:
            failures.append(exc)
        try:
            self.tokens.remove(session_key, USER_LOGIN_STATE)
        except sqlite3.Error as exc:
            failures.append(exc)
        if failures:
            logger.error("Session clear failed for %d store(s): %s", len(failures), failures[0])
            raise StorageFailure("Could not clear session.") from failures[0]
        return removed

    def purge_expired(self) -> int:
        """Trim expired entries from both stores. Returns total rows removed."""
        return self.primary.purge_expired() + self.tokens.purge_expired()

    def close(self) -> None:
        self.primary.close()
        self.tokens.close()
