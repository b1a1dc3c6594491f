"""
auth/tokens.py -- Capability tokens and the session cookie helper.

Security design decisions:
  Capability token: python-jose with HS256, signed with SECRET_KEY. The token
       carries the user id (sub), the session key (sid) and the shared expiry
       (exp). It addresses the token session store; it is NOT a credential on
       its own -- sessions.coordinator must still hold the sid, and the stored
       principal id must equal sub. Verification returns None on any failure.

  Session cookie: the primary session key travels as an httpOnly cookie whose
       max_age equals SESSION_TTL_SECONDS, so the cookie, the capability token
       and both store entries all expire at the same horizon.

  SECRET_KEY: sourced from core.config.get_settings(). The Settings class
       validates the key at startup: dev mode (DEBUG=true) auto-generates a
       random key with a warning; production mode refuses to start without one.

Layer rule: no imports from api/ or sessions/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from jose import JWTError, jwt

from auth.models import SessionRecord
from core.config import get_settings

logger = logging.getLogger("accounts.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

SESSION_COOKIE = "session_id"
CAPABILITY_HEADER = "X-Capability-Token"


# ---------------------------------------------------------------------------
# Capability token encode / decode
# ---------------------------------------------------------------------------


def create_capability_token(record: SessionRecord) -> str:
    """Encode a signed JWT that points at record's token-store entry.

    exp is taken from the record, not recomputed, so the token cannot outlive
    the session entries it refers to.
    """
    payload = {
        "sub": str(record.principal_id),
        "sid": record.session_key,
        "iat": datetime.fromtimestamp(record.written_at, tz=timezone.utc),
        "exp": datetime.fromtimestamp(record.expires_at, tz=timezone.utc),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_capability_token(token: str) -> dict | None:
    """Decode and verify a capability token. Returns the payload dict or None on any failure.

    Returning None (rather than raising) keeps the caller simple: any invalid
    token is treated as unauthenticated.
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sid") or not str(payload.get("sub", "")).isdigit():
        logger.warning("Capability token with valid signature but malformed claims rejected")
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_session_cookie(response, session_key: str) -> None:
    """Write the primary session key as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation for most cases.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the session store expiry so both expire together.
    """
    response.set_cookie(
        SESSION_COOKIE,
        value=session_key,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.session_ttl_seconds,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(SESSION_COOKIE)
