# Overview: Exception taxonomy for authentication and authorization failures.

"""
Auth error taxonomy.

Every error carries an HTTP status and a stable machine-readable code so
routes can translate it into a JSON response without inspecting the type.
Messages are the user-facing text; they are deliberately generic where a
more precise message would leak which check failed.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all auth/RBAC failures raised by the service layer."""

    status_code = 400
    code = "AUTH_ERROR"
    default_message = "Authentication error"

    def __init__(self, message: str | None = None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {
            "success": False,
            "error": self.code,
            "message": self.message,
        }
        payload.update(self.details)
        return payload


class ValidationFailed(AuthError):
    status_code = 400
    code = "VALIDATION_FAILED"
    default_message = "Invalid request"


class MissingToken(AuthError):
    status_code = 401
    code = "MISSING_TOKEN"
    default_message = "You are not logged in! Please log in to get access."


class DuplicateUser(AuthError):
    status_code = 400
    code = "DUPLICATE_USER"
    default_message = "User with this email or mobile number already exists"


class PasswordMismatch(AuthError):
    status_code = 400
    code = "PASSWORD_MISMATCH"
    default_message = "New password and confirm password do not match"


class PasswordReused(AuthError):
    status_code = 400
    code = "PASSWORD_REUSED"
    default_message = "You cannot reuse a recent password. Please choose a different password."


class InvalidCredentials(AuthError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Incorrect email or password"


class AccountDeactivated(AuthError):
    status_code = 401
    code = "ACCOUNT_DEACTIVATED"
    default_message = "Your account has been deactivated. Please contact administrator."


class InvalidToken(AuthError):
    status_code = 401
    code = "INVALID_TOKEN"
    default_message = "Invalid token. Please log in again."


class TokenExpired(InvalidToken):
    code = "TOKEN_EXPIRED"
    default_message = "Your session has expired. Please log in again."


class TokenStale(InvalidToken):
    """Token is well-formed but the account changed after it was issued."""

    code = "TOKEN_STALE"
    default_message = "Your account changed since this token was issued. Please log in again."


class RefreshTokenRevoked(InvalidToken):
    code = "REFRESH_TOKEN_REVOKED"
    default_message = "Refresh token has been revoked"


class InvalidRefreshToken(AuthError):
    """Uniform refresh failure; never says which check failed."""

    status_code = 401
    code = "INVALID_REFRESH_TOKEN"
    default_message = "Invalid refresh token"


class InvalidCurrentPassword(AuthError):
    status_code = 401
    code = "INVALID_CURRENT_PASSWORD"
    default_message = "Current password is incorrect"


class Forbidden(AuthError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class NotFound(AuthError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class AccountLocked(AuthError):
    status_code = 423
    code = "ACCOUNT_LOCKED"
    default_message = "Account temporarily locked due to too many failed login attempts"
