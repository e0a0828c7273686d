# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/evcore/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and password change
- Account lockout after repeated failed attempts
- Short-lived access tokens re-checked against the user on every request
- Single-use refresh tokens with reuse detection
- Self-registration disabled in production
"""

from flask import Blueprint, request, current_app, g

from ..config import is_production
from ..decorators import get_bearer_token, optional_auth, require_auth
from ..errors import AuthError, MissingToken, InvalidRefreshToken
from ..responses import error_response, internal_error_response, success_response
from ..services import auth_service, login_throttle_service, permission_service, token_service
from ..validation import get_json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _client_context() -> tuple[str | None, str | None]:
    return request.remote_addr, request.headers.get("User-Agent")


def _session_payload(user, access_token: str | None = None, refresh_token: str | None = None) -> dict:
    payload = {
        "user": user.to_dict(),
        "permissions": permission_service.get_role_modules(user.role),
    }
    if access_token:
        payload["token"] = access_token
    if refresh_token:
        payload["refreshToken"] = refresh_token
    return payload


@auth_bp.post("/register")
@optional_auth
def register_route():
    """
    Create a user account.

    Production: only an authenticated super_admin may register users.
    Returns a token pair for the new account, whoever the caller is.
    """
    try:
        ip_address, user_agent = _client_context()
        actor = g.current_user

        user = auth_service.register_user(
            get_json_body(),
            actor=actor,
            production=is_production(current_app.config),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        current_app.logger.info("Registered user %s with role %s", user.id, user.role)

        access_token, refresh_token = token_service.issue_token_pair(
            user, user_agent=user_agent, ip_address=ip_address
        )
        return success_response(
            "User registered successfully",
            _session_payload(user, access_token, refresh_token),
            201,
        )

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return internal_error_response()


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email (or mobile number) and password.

    Returns user, token pair and the role's module permissions.

    SECURITY:
    - Locked accounts are rejected before the password is checked (423)
    - Failed attempts increment the lockout counter
    - Unknown identifiers and wrong passwords share one message
    """
    data = get_json_body()
    identifier = data.get("email") or data.get("mobileNumber") or data.get("identifier")

    try:
        ip_address, user_agent = _client_context()

        user = auth_service.authenticate(
            identifier,
            data.get("password"),
            ip_address=ip_address,
            user_agent=user_agent,
        )

        access_token, refresh_token = token_service.issue_token_pair(
            user, user_agent=user_agent, ip_address=ip_address
        )
        current_app.logger.info("User %s logged in", user.id)

        return success_response("Login successful", _session_payload(user, access_token, refresh_token))

    except AuthError as e:
        current_app.logger.warning("Login failed for %r: %s", identifier, e.code)
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return internal_error_response()


@auth_bp.post("/refresh")
def refresh_route():
    """
    Exchange a refresh token for a new token pair.

    The presented token is single-use. Every verification failure gets the
    same 401 response so callers cannot tell which check failed.
    """
    refresh_token = get_json_body().get("refreshToken")
    if not refresh_token:
        error = MissingToken("Refresh token is required")
        error.status_code = 400
        return error_response(error)

    try:
        ip_address, user_agent = _client_context()
        user, access_token, new_refresh_token = token_service.rotate_refresh_token(
            refresh_token, user_agent=user_agent, ip_address=ip_address
        )
        return success_response(
            "Token refreshed successfully",
            {"token": access_token, "refreshToken": new_refresh_token},
        )

    except AuthError as e:
        current_app.logger.warning("Refresh rejected: %s", e.code)
        return error_response(InvalidRefreshToken())
    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return internal_error_response()


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """
    Revoke the supplied refresh token, or all of the caller's refresh tokens
    when none is supplied.

    The access token itself stays valid until it expires.
    """
    try:
        user = g.current_user
        ip_address, user_agent = _client_context()
        refresh_token = get_json_body().get("refreshToken")

        if refresh_token:
            token_service.revoke_refresh_token(user, refresh_token)
        else:
            token_service.revoke_all_refresh_tokens(user)

        permission_service.log_security_event(
            user_id=user.id,
            event_type="LOGOUT",
            success=True,
            resource="/api/auth/logout",
            action="single" if refresh_token else "all",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return success_response("Logged out successfully")

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return internal_error_response()


@auth_bp.get("/verify")
def verify_route():
    """
    Standalone token verification.

    Parses the bearer token itself (no decorator) and returns the current
    user with the role's module permissions.
    """
    token = get_bearer_token()
    if not token:
        return error_response(MissingToken("No token provided"))

    try:
        user, _claims = token_service.authenticate_access_token(token)
        return success_response("Token is valid", _session_payload(user))

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to verify token")
        return internal_error_response()


@auth_bp.get("/session")
@require_auth
def session_route():
    """Same as /verify, authenticated by the require_auth decorator."""
    return success_response("Token is valid", _session_payload(g.current_user))


@auth_bp.get("/me")
@require_auth
def me_route():
    return success_response("Current user", _session_payload(g.current_user))


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    """Update fullName, mobileNumber, department or designation."""
    try:
        user = auth_service.update_profile(g.current_user, get_json_body())
        return success_response("Profile updated successfully", {"user": user.to_dict()})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return internal_error_response()


@auth_bp.put("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's password.

    On success every refresh token is revoked and a fresh pair is returned;
    access tokens issued before the change stop working.
    """
    data = get_json_body()
    try:
        ip_address, user_agent = _client_context()
        user = auth_service.change_password(
            g.current_user,
            data.get("currentPassword"),
            data.get("newPassword"),
            data.get("newPasswordConfirm"),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        current_app.logger.info("User %s changed password", user.id)

        access_token, refresh_token = token_service.issue_token_pair(
            user, user_agent=user_agent, ip_address=ip_address
        )
        return success_response(
            "Password changed successfully",
            {"user": user.to_dict(), "token": access_token, "refreshToken": refresh_token},
        )

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return internal_error_response()


@auth_bp.put("/first-login-password-change")
@require_auth
def first_login_password_change_route():
    """Replace a temporary password; only for accounts flagged must-change."""
    data = get_json_body()
    try:
        ip_address, user_agent = _client_context()
        user = auth_service.first_login_password_change(
            g.current_user,
            data.get("newPassword"),
            data.get("newPasswordConfirm"),
            ip_address=ip_address,
            user_agent=user_agent,
        )

        access_token, refresh_token = token_service.issue_token_pair(
            user, user_agent=user_agent, ip_address=ip_address
        )
        return success_response(
            "Password changed successfully. You can now access the system.",
            {"user": user.to_dict(), "token": access_token, "refreshToken": refresh_token},
        )

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change first-login password")
        return internal_error_response()


@auth_bp.get("/lockout-status/<identifier>")
def lockout_status_route(identifier: str):
    """
    Check lockout status for an account.

    This is a public endpoint to allow users to check if their account is locked
    and when they can retry.
    """
    status = login_throttle_service.get_lockout_status(identifier)
    return success_response("Lockout status", status)
