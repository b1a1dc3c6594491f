"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the account service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_ttl_seconds -> SESSION_TTL_SECONDS).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Used for the DEBUG-conditional SECRET_KEY logic: dev mode
      generates a key with a warning, production mode refuses to start.

Security notes:
  SECRET_KEY signs capability tokens. Keys shorter than 32 chars are rejected.

  PASSWORD_SALT is the fixed salt mixed into every password digest. Changing
  it invalidates every stored digest, so it is read once and never rotated
  at runtime.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or sessions/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("accounts.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    password_salt: str = "account-service:static-salt"
    # bcrypt-pbkdf rounds. Every login pays this cost once.
    password_hash_rounds: int = 64

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # One horizon for the primary store, the token store, the session cookie
    # and the capability token.
    session_ttl_seconds: int = 3600
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    default_avatar_url: str = "/static/avatars/default.webp"

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("password_salt")
    @classmethod
    def validate_password_salt(cls, v: str) -> str:
        if not v:
            raise ValueError("PASSWORD_SALT must be non-empty.")
        return v

    @field_validator("password_hash_rounds")
    @classmethod
    def validate_password_hash_rounds(cls, v: int) -> int:
        if v < 1 or v > 1000:
            raise ValueError("PASSWORD_HASH_ROUNDS must be between 1 and 1000.")
        return v

    @field_validator("session_ttl_seconds")
    @classmethod
    def validate_session_ttl(cls, v: int) -> int:
        if v < 60 or v > 30 * 24 * 3600:
            raise ValueError("SESSION_TTL_SECONDS must be between 60 and 2592000 (30 days).")
        return v

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Capability tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Capability tokens will not persist across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    All modules should call get_settings() rather than constructing Settings()
    directly. In tests: call get_settings.cache_clear() between test cases if
    you need to inject different environment variables.
    """
    return Settings()
