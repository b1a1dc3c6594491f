"""Unit tests for auth/service.py -- registration, login, logout, principal resolution.

Covers:
- register validation order and boundaries (account >= 2, password >= 8, match)
- duplicate account via pre-check and via the UNIQUE constraint
- storage failure on insert
- login validation, generic authentication failure, dual-store session write
- logout NotLoggedIn and session teardown
- get_current_principal re-resolves by id (deleted user -> NotAuthenticated)
- capability token resolution through the token store
"""

from unittest.mock import patch

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.models import DEFAULT_ROLE
from auth.roles import is_admin
from auth.store import _users
from auth.tokens import create_capability_token
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

PASSWORD = "password1"


def _register(service, account="alice", password=PASSWORD):
    return service.register(account, password, password)


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------


class TestRegister:
    def test_returns_fresh_positive_ids(self, service):
        ids = [_register(service, account=f"user{i}") for i in range(3)]
        assert all(i > 0 for i in ids)
        assert len(set(ids)) == 3

    def test_two_char_account_is_accepted(self, service):
        assert _register(service, account="ab") > 0

    def test_one_char_account_is_rejected(self, service):
        with pytest.raises(InvalidInput):
            _register(service, account="a")

    @pytest.mark.parametrize(
        "account, password, confirm",
        [
            ("", PASSWORD, PASSWORD),
            ("alice", "", PASSWORD),
            ("alice", PASSWORD, ""),
            ("   ", PASSWORD, PASSWORD),
            ("alice", "        ", "        "),
            (None, PASSWORD, PASSWORD),
        ],
    )
    def test_blank_inputs_are_rejected(self, service, account, password, confirm):
        with pytest.raises(InvalidInput):
            service.register(account, password, confirm)

    def test_seven_char_password_is_rejected(self, service):
        with pytest.raises(InvalidInput):
            service.register("alice", "1234567", "1234567")

    def test_short_confirmation_is_rejected(self, service):
        with pytest.raises(InvalidInput):
            service.register("alice", PASSWORD, "1234567")

    def test_mismatched_passwords_are_rejected(self, service):
        with pytest.raises(InvalidInput):
            service.register("alice", "password1", "password2")

    def test_validation_runs_before_duplicate_check(self, service):
        _register(service)
        with pytest.raises(InvalidInput):
            service.register("alice", "password1", "password2")

    def test_duplicate_account_is_rejected(self, service):
        _register(service)
        with pytest.raises(DuplicateAccount):
            _register(service)

    def test_unique_constraint_is_authoritative(self, service):
        """A race past the pre-check still surfaces as DuplicateAccount."""
        _register(service)
        with patch.object(service.store, "count_by_account", return_value=0):
            with pytest.raises(DuplicateAccount):
                _register(service)

    def test_new_user_defaults(self, service):
        user_id = _register(service)
        user = service.store.find_by_id(user_id)
        assert user.role == DEFAULT_ROLE.value
        assert user.display_name == "alice"
        assert user.avatar_url == get_settings().default_avatar_url
        assert user.password_digest != PASSWORD
        assert not is_admin(user)

    def test_insert_failure_is_storage_failure(self, service):
        with patch.object(service.store, "create_user", side_effect=OperationalError("INSERT", {}, Exception("boom"))):
            with pytest.raises(StorageFailure):
                _register(service)

    def test_integrity_error_is_not_storage_failure(self, service):
        with patch.object(service.store, "create_user", side_effect=IntegrityError("INSERT", {}, Exception("dup"))):
            with pytest.raises(DuplicateAccount):
                _register(service)


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_login_returns_desensitized_view(self, service):
        user_id = _register(service)
        result = service.login("alice", PASSWORD)
        assert result.view.id == user_id
        assert result.view.account == "alice"
        dumped = result.view.model_dump()
        assert "password_digest" not in dumped
        assert all(v != service.store.find_by_id(user_id).password_digest for v in dumped.values())

    def test_login_writes_both_session_stores(self, service):
        user_id = _register(service)
        result = service.login("alice", PASSWORD)
        key = result.session.session_key
        assert service.sessions.read_principal(key).id == user_id
        assert service.sessions.read_capability(key).id == user_id

    def test_wrong_password_fails(self, service):
        _register(service)
        with pytest.raises(AuthenticationFailed):
            service.login("alice", "wrongpass1")

    def test_unknown_account_and_wrong_password_are_indistinguishable(self, service):
        _register(service)
        with pytest.raises(AuthenticationFailed) as wrong_pw:
            service.login("alice", "wrongpass1")
        with pytest.raises(AuthenticationFailed) as unknown:
            service.login("nobody", PASSWORD)
        assert wrong_pw.value.code == unknown.value.code
        assert wrong_pw.value.message == unknown.value.message

    def test_failed_login_writes_no_session(self, service):
        _register(service)
        with pytest.raises(AuthenticationFailed):
            service.login("alice", "wrongpass1")
        assert service.sessions.purge_expired() == 0
        count = service.sessions.primary._conn.execute("SELECT COUNT(*) FROM http_sessions").fetchone()[0]
        assert count == 0

    @pytest.mark.parametrize(
        "account, password",
        [("", PASSWORD), ("alice", ""), ("abc", PASSWORD), ("alice", "1234567")],
    )
    def test_login_validation(self, service, account, password):
        with pytest.raises(InvalidInput):
            service.login(account, password)

    def test_two_char_account_cannot_log_in(self, service):
        """Login requires 4+ chars even though registration allows 2."""
        _register(service, account="ab")
        with pytest.raises(InvalidInput):
            service.login("ab", PASSWORD)


# ---------------------------------------------------------------------------
# logout / current principal
# ---------------------------------------------------------------------------


class TestSessionLifecycle:
    def test_current_principal_after_login(self, service):
        user_id = _register(service)
        key = service.login("alice", PASSWORD).session.session_key
        assert service.get_current_principal(key).id == user_id

    def test_logout_then_current_principal_fails(self, service):
        _register(service)
        key = service.login("alice", PASSWORD).session.session_key
        assert service.logout(key) is True
        with pytest.raises(NotAuthenticated):
            service.get_current_principal(key)

    def test_logout_clears_token_store_too(self, service):
        _register(service)
        key = service.login("alice", PASSWORD).session.session_key
        service.logout(key)
        assert service.sessions.read_capability(key) is None

    def test_logout_without_session(self, service):
        with pytest.raises(NotLoggedIn):
            service.logout("never-issued")
        with pytest.raises(NotLoggedIn):
            service.logout(None)

    def test_double_logout(self, service):
        _register(service)
        key = service.login("alice", PASSWORD).session.session_key
        service.logout(key)
        with pytest.raises(NotLoggedIn):
            service.logout(key)

    def test_no_session_is_not_authenticated(self, service):
        with pytest.raises(NotAuthenticated):
            service.get_current_principal(None)

    def test_deleted_user_invalidates_session(self, service):
        user_id = _register(service)
        key = service.login("alice", PASSWORD).session.session_key
        with service.store.engine.connect() as conn:
            conn.execute(delete(_users).where(_users.c.id == user_id))
            conn.commit()
        with pytest.raises(NotAuthenticated):
            service.get_current_principal(key)

    def test_role_change_is_seen_without_relogin(self, service):
        _register(service)
        key = service.login("alice", PASSWORD).session.session_key
        service.set_role("alice", "admin")
        assert is_admin(service.get_current_principal(key))

    def test_sessions_are_independent(self, service):
        _register(service)
        first = service.login("alice", PASSWORD).session.session_key
        second = service.login("alice", PASSWORD).session.session_key
        service.logout(first)
        assert service.get_current_principal(second).account == "alice"


# ---------------------------------------------------------------------------
# capability tokens
# ---------------------------------------------------------------------------


class TestCapability:
    def test_token_resolves_user(self, service):
        user_id = _register(service)
        result = service.login("alice", PASSWORD)
        assert service.get_capability_principal(result.capability_token).id == user_id

    def test_token_dies_with_logout(self, service):
        _register(service)
        result = service.login("alice", PASSWORD)
        service.logout(result.session.session_key)
        with pytest.raises(NotAuthenticated):
            service.get_capability_principal(result.capability_token)

    def test_garbage_token(self, service):
        for token in (None, "", "not.a.jwt"):
            with pytest.raises(NotAuthenticated):
                service.get_capability_principal(token)

    def test_token_subject_must_match_stored_principal(self, service):
        _register(service)
        bob_id = _register(service, account="bobby")
        alice_session = service.login("alice", PASSWORD).session
        forged = create_capability_token(
            type(alice_session)(
                session_key=alice_session.session_key,
                principal_id=bob_id,
                written_at=alice_session.written_at,
                expires_at=alice_session.expires_at,
            )
        )
        with pytest.raises(NotAuthenticated):
            service.get_capability_principal(forged)


# ---------------------------------------------------------------------------
# set_role
# ---------------------------------------------------------------------------


class TestSetRole:
    def test_unknown_role(self, service):
        _register(service)
        with pytest.raises(InvalidInput):
            service.set_role("alice", "superuser")

    def test_unknown_account(self, service):
        with pytest.raises(InvalidInput):
            service.set_role("ghost", "admin")

    def test_promote(self, service):
        _register(service)
        assert is_admin(service.set_role("alice", "admin"))


class TestGetUser:
    def test_returns_public_view(self, service):
        user_id = _register(service)
        view = service.get_user(user_id)
        assert view.account == "alice"
        assert "password_digest" not in view.model_dump()

    def test_unknown_id(self, service):
        with pytest.raises(UserNotFound):
            service.get_user(12345)


class TestUnencodableText:
    """Lone surrogates cannot be hashed or stored; they are invalid input."""

    def test_register_password(self, service):
        with pytest.raises(InvalidInput):
            service.register("surrogate", "\ud800aaaaaaaa", "\ud800aaaaaaaa")

    def test_register_account(self, service):
        with pytest.raises(InvalidInput):
            service.register("bad\udfffname", PASSWORD, PASSWORD)

    def test_login_password(self, service):
        _register(service)
        with pytest.raises(InvalidInput):
            service.login("alice", "\ud800aaaaaaaa")

    def test_set_role_account(self, service):
        with pytest.raises(InvalidInput):
            service.set_role("ghost\ud800", "admin")


class TestGetUserRange:
    @pytest.mark.parametrize("user_id", [0, -1, 2**63, 10**20])
    def test_unstorable_ids_are_not_found(self, service, user_id):
        with pytest.raises(UserNotFound):
            service.get_user(user_id)
