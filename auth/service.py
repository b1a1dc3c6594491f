"""
auth/service.py -- Registration, login, logout and principal resolution.

AuthService is the only place that combines the user store, the password
hasher and the session coordinator. Routes and the CLI call it; they never
touch the stores directly.

Ordering guarantees:
  register -- all validation and the duplicate pre-check complete before the
              insert. The UNIQUE constraint on users.account is the
              authoritative duplicate signal; the pre-check only gives an early,
              cheap error.
  login    -- the credential match completes before any session write.

Failures are raised once, at the point of detection, and never retried here.
Unexpected SQLAlchemy errors surface as StorageFailure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.hashing import hash_password
from auth.models import DEFAULT_ROLE, MAX_ROW_ID, Principal, SessionRecord, User, UserQuery, UserRole
from auth.store import UserStore
from auth.tokens import create_capability_token, decode_capability_token
from auth.views import LoginView, PublicView, to_login_view, to_public_view, to_public_view_list
from core.config import get_settings
from core.errors import (
    AuthenticationFailed,
    DuplicateAccount,
    InvalidInput,
    NotAuthenticated,
    NotLoggedIn,
    StorageFailure,
    UserNotFound,
)
from sessions.coordinator import SessionCoordinator

logger = logging.getLogger("accounts.auth")

REGISTER_ACCOUNT_MIN_LEN = 2
LOGIN_ACCOUNT_MIN_LEN = 4
PASSWORD_MIN_LEN = 8


def _has_blank(*values: str | None) -> bool:
    return any(v is None or not v.strip() for v in values)


def _has_unencodable(*values: str) -> bool:
    """True if any value cannot be stored or hashed as UTF-8 (e.g. a lone surrogate)."""
    for value in values:
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            return True
    return False


@dataclass(frozen=True)
class LoginResult:
    """Everything a transport needs after a successful login.

    view is the only part meant for the response body. session.session_key
    goes into the session cookie and capability_token into its own header.
    """

    view: LoginView
    session: SessionRecord
    capability_token: str


class AuthService:
    def __init__(self, store: UserStore, sessions: SessionCoordinator) -> None:
        self.store = store
        self.sessions = sessions

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, account: str, password: str, confirm_password: str) -> int:
        """Create a user with the default role and return its id.

        Raises InvalidInput, DuplicateAccount or StorageFailure.
        """
        if _has_blank(account, password, confirm_password):
            raise InvalidInput("Account, password and confirmation are required.")
        if _has_unencodable(account, password, confirm_password):
            raise InvalidInput("Account and password must be valid text.")
        if len(account) < REGISTER_ACCOUNT_MIN_LEN:
            raise InvalidInput("Account is too short.")
        if len(password) < PASSWORD_MIN_LEN or len(confirm_password) < PASSWORD_MIN_LEN:
            raise InvalidInput("Password is too short.")
        if password != confirm_password:
            raise InvalidInput("Passwords do not match.")

        try:
            existing = self.store.count_by_account(account)
        except SQLAlchemyError as exc:
            logger.error("Duplicate check failed: %s", exc)
            raise StorageFailure("Registration failed.") from exc
        if existing > 0:
            raise DuplicateAccount()

        user = User(
            account=account,
            password_digest=hash_password(password),
            display_name=account,
            avatar_url=get_settings().default_avatar_url,
            role=DEFAULT_ROLE.value,
        )
        try:
            user_id = self.store.create_user(user)
        except IntegrityError as exc:
            # Lost the race against a concurrent registration of the same account.
            raise DuplicateAccount() from exc
        except SQLAlchemyError as exc:
            logger.error("User insert failed: %s", exc)
            raise StorageFailure("Registration failed.") from exc
        if not user_id:
            raise StorageFailure("Registration failed.")

        logger.info("User registered: user_id=%s", user_id)
        return user_id

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, account: str, password: str) -> LoginResult:
        """Verify credentials and establish login state in both session stores.

        Unknown account and wrong password both raise AuthenticationFailed with
        the same message. Only the log line tells them apart.
        """
        if _has_blank(account, password):
            raise InvalidInput("Account and password are required.")
        if _has_unencodable(account, password):
            raise InvalidInput("Account and password must be valid text.")
        if len(account) < LOGIN_ACCOUNT_MIN_LEN:
            raise InvalidInput("Account is invalid.")
        if len(password) < PASSWORD_MIN_LEN:
            raise InvalidInput("Password is invalid.")

        digest = hash_password(password)
        try:
            user = self.store.find_one_by_account_and_digest(account, digest)
        except SQLAlchemyError as exc:
            logger.error("Credential lookup failed: %s", exc)
            raise StorageFailure("Login failed.") from exc
        if user is None:
            if logger.isEnabledFor(logging.INFO):
                known = self._account_exists(account)
                logger.info("Login failed: account cannot match password (account_known=%s)", known)
            raise AuthenticationFailed()

        record = self.sessions.establish(Principal(id=user.id, account=user.account, role=user.role))
        token = create_capability_token(record)
        logger.info("User logged in: user_id=%s", user.id)
        return LoginResult(view=to_login_view(user), session=record, capability_token=token)

    def logout(self, session_key: str | None) -> bool:
        """Clear the login state for session_key from both session stores.

        Raises NotLoggedIn if the primary store holds no principal.
        """
        if self.sessions.read_principal(session_key) is None:
            raise NotLoggedIn()
        self.sessions.clear(session_key)
        return True

    # ------------------------------------------------------------------
    # Principal resolution
    # ------------------------------------------------------------------

    def get_current_principal(self, session_key: str | None) -> User:
        """Return the freshly re-resolved User behind the primary session.

        The session copy is never trusted for authorization: a user deleted
        since login resolves to NotAuthenticated.
        """
        principal = self.sessions.read_principal(session_key)
        if principal is None:
            raise NotAuthenticated()
        return self._resolve(principal.id)

    def get_capability_principal(self, token: str | None) -> User:
        """Resolve a capability token through the token session store.

        The token must verify, its sid must still be present in the token
        store, and the stored principal must be the token's subject.
        """
        payload = decode_capability_token(token) if token else None
        if payload is None:
            raise NotAuthenticated()
        principal = self.sessions.read_capability(payload["sid"])
        if principal is None or principal.id != int(payload["sub"]):
            raise NotAuthenticated()
        return self._resolve(principal.id)

    def _resolve(self, user_id: int) -> User:
        try:
            user = self.store.find_by_id(user_id)
        except SQLAlchemyError as exc:
            logger.error("Principal lookup failed: %s", exc)
            raise StorageFailure() from exc
        if user is None:
            raise NotAuthenticated()
        return user

    def _account_exists(self, account: str) -> bool:
        try:
            return self.store.find_by_account(account) is not None
        except SQLAlchemyError as exc:
            logger.warning("Account existence check failed during login diagnostics: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def search_users(self, query: UserQuery | None) -> tuple[list[PublicView], int]:
        """Return one page of desensitized users matching query, plus the total."""
        if query is None:
            raise InvalidInput("Query request is empty.")
        try:
            users, total = self.store.search_users(query)
        except SQLAlchemyError as exc:
            logger.error("User search failed: %s", exc)
            raise StorageFailure() from exc
        return to_public_view_list(users), total

    def get_user(self, user_id: int) -> PublicView:
        if not (1 <= user_id <= MAX_ROW_ID):
            raise UserNotFound()
        try:
            user = self.store.find_by_id(user_id)
        except SQLAlchemyError as exc:
            logger.error("User lookup failed: %s", exc)
            raise StorageFailure() from exc
        if user is None:
            raise UserNotFound()
        return to_public_view(user)

    def set_role(self, account: str, role: str) -> User:
        """Assign role to the user with account. Used by the admin CLI."""
        if role not in {r.value for r in UserRole}:
            raise InvalidInput(f"Unknown role {role!r}.")
        if _has_blank(account) or _has_unencodable(account):
            raise InvalidInput("Account must be valid text.")
        user = self.store.find_by_account(account)
        if user is None:
            raise InvalidInput(f"No such account: {account!r}.")
        self.store.update_role(user.id, role)
        logger.info("Role changed: user_id=%s role=%s", user.id, role)
        return self._resolve(user.id)
