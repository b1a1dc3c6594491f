"""
auth/hashing.py -- Deterministic salted password digest.

hash_password() must be deterministic: login looks up the user by
(account, digest) in one query, so the same plaintext must always produce the
same digest. That rules out bcrypt.hashpw() with a random per-call salt.

Instead the digest is bcrypt-pbkdf (bcrypt.kdf) over the plaintext with the
fixed PASSWORD_SALT from settings and PASSWORD_HASH_ROUNDS rounds. The KDF
keeps bcrypt's cost factor against offline guessing while staying
deterministic. Output is 32 bytes rendered as 64 lowercase hex characters.

Never pass an already-hashed value in -- the result would be a digest of a
digest and would never match at login.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings

DIGEST_BYTES = 32


def hash_password(plain: str) -> str:
    """Return the 64-char lowercase hex digest of plain under the fixed salt."""
    settings = get_settings()
    derived = bcrypt.kdf(
        password=plain.encode("utf-8"),
        salt=settings.password_salt.encode("utf-8"),
        desired_key_bytes=DIGEST_BYTES,
        rounds=settings.password_hash_rounds,
        # Round count is bounded by Settings; low values are legitimate in tests.
        ignore_few_rounds=True,
    )
    return derived.hex()
