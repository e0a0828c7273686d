# Overview: Request authentication and authorization decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import AuthError, Forbidden, MissingToken
from .responses import error_response
from .services import permission_service, token_service


def get_bearer_token() -> str | None:
    """Token from 'Authorization: Bearer <token>', or None."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def require_auth(f):
    """
    Require a valid access token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.token_claims: The decoded access-token claims

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or stale token
    - User no longer exists or is deactivated
    Returns 423 if the account is currently locked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return error_response(MissingToken())

        try:
            user, claims = token_service.authenticate_access_token(token)
        except AuthError as e:
            return error_response(e)

        g.current_user = user
        g.token_claims = claims

        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """
    Attach the user when a valid token is present; never reject.

    g.current_user is None for anonymous or invalid-token requests.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_user = None
        g.token_claims = None

        token = get_bearer_token()
        if token:
            try:
                g.current_user, g.token_claims = token_service.authenticate_access_token(token)
            except AuthError:
                pass

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles: str):
    """
    Require the caller's role to be one of `roles`.

    Must be stacked below @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return error_response(MissingToken())

            if g.current_user.role not in roles:
                permission_service.log_security_event(
                    user_id=g.current_user.id,
                    event_type="PERMISSION_DENIED",
                    success=False,
                    resource=request.path,
                    action=f"ROLE_IN:{','.join(roles)}",
                    reason=f"Role '{g.current_user.role}' not allowed",
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
                return error_response(Forbidden())

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_module_access(module_name: str, action: str | None = None):
    """
    Require access to a platform module (and optionally an action in it).

    admin and super_admin bypass the check. Denials are logged.
    Must be stacked below @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return error_response(MissingToken())

            try:
                permission_service.require_module_access(
                    g.current_user,
                    module_name,
                    action,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except Forbidden as e:
                return error_response(e)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
