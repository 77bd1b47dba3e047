"""
auth/errors.py -- Domain exceptions for the auth subsystem.

Each class carries a machine-readable code, the HTTP status the API layer
should use, and a caller-safe default message. The exception handler in
api/main.py turns any AuthError into the standard error envelope, so route
and guard code simply raises.

Layer rule: no imports from api/ or tasks/. No FastAPI types here.
"""

from __future__ import annotations


class AuthError(Exception):
    code = "auth_error"
    status_code = 400
    default_message = "Request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    # Unknown email and wrong password share this error on purpose.
    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid credentials."


class AccountLocked(AuthError):
    code = "account_locked"
    status_code = 423
    default_message = "Account temporarily locked. Please try again later."


class AccountDeactivated(AuthError):
    code = "account_deactivated"
    status_code = 401
    default_message = "Account deactivated."


class InvalidToken(AuthError):
    """Missing, malformed, expired, or badly signed token -- one outward message."""

    code = "invalid_token"
    status_code = 401
    default_message = "Authentication required."


class Forbidden(AuthError):
    code = "forbidden"
    status_code = 403
    default_message = "Access denied."


class Conflict(AuthError):
    code = "conflict"
    status_code = 400
    default_message = "Only one administrator account is allowed in the system."


class ValidationFailed(AuthError):
    code = "validation_error"
    status_code = 400
    default_message = "Request validation failed."


class NotFound(AuthError):
    code = "not_found"
    status_code = 404
    default_message = "Not found."
