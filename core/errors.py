"""
core/errors.py -- Business error kinds for the account service.

Every error here is an expected, recoverable-by-caller condition, not a crash.
Each kind carries a stable machine-readable code and the HTTP status the API
layer answers with, so clients can branch on `code` without parsing messages.

api/main.py turns any AccountError into the shared ErrorResponse envelope:
    {"error": {"code": "duplicate_account", "message": "..."}}

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or sessions/.
"""

from __future__ import annotations


class AccountError(Exception):
    """Base class for all account-service business errors."""

    code: str = "account_error"
    status_code: int = 400
    default_message: str = "Request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AccountError):
    """Malformed, missing or too-short fields, or a malformed filter request."""

    code = "invalid_input"
    status_code = 400
    default_message = "Invalid input."


class DuplicateAccount(AccountError):
    code = "duplicate_account"
    status_code = 409
    default_message = "Account already exists."


class AuthenticationFailed(AccountError):
    """Credentials matched no user.

    The message is fixed: unknown account and wrong password are reported
    identically so the response cannot be used to enumerate accounts.
    """

    code = "authentication_failed"
    status_code = 401
    default_message = "Account does not exist or password is incorrect."

    def __init__(self) -> None:
        super().__init__()


class NotAuthenticated(AccountError):
    """No valid session principal, or its backing user no longer exists."""

    code = "not_authenticated"
    status_code = 401
    default_message = "Not logged in."


class NotLoggedIn(AccountError):
    """Logout attempted on a session that holds no principal."""

    code = "not_logged_in"
    status_code = 400
    default_message = "Not logged in."


class PermissionDenied(AccountError):
    code = "forbidden"
    status_code = 403
    default_message = "Admin access required."


class StorageFailure(AccountError):
    """A persistence or session-store operation failed unexpectedly."""

    code = "storage_failure"
    status_code = 500
    default_message = "Storage operation failed."


class UserNotFound(AccountError):
    code = "not_found"
    status_code = 404
    default_message = "User not found."
