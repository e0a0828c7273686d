# Overview: Client-side authentication state; token validation, login/logout, permission checks.

"""
Auth Session

Holds the current user for a client (CLI, desktop app, test harness) and
decides whether a stored token may grant an authenticated state.

STATES: uninitialized -> validating -> authenticated | unauthenticated

SECURITY:
- A stored token is never trusted before it is classified and validated
- Real tokens are validated by the server (GET /api/auth/verify)
- Demo fallback tokens are validated locally, and never in production
- Any token that fails validation is purged from both stores

Server-delivered module permissions are authoritative. The fixed
role -> feature table in features.py only applies to sessions that have
none (demo sessions).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .api import AuthApi
from .errors import ApiError, NetworkError
from .features import (
    ADMIN,
    EMPLOYEE,
    FEATURE_MODULES,
    PILOT,
    PRIVILEGED_ROLES,
    ROLE_FEATURES,
    SUPER_ADMIN,
)
from .tokens import LocalFallbackToken, MalformedToken, classify_token, fabricate_fallback_token

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Incorrect credentials or insufficient permissions. Please try again."


class AuthStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    VALIDATING = "validating"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class DemoUser:
    email: str
    password: str
    role: str


DEMO_USERS = (
    DemoUser("superadmin@example.com", "superadmin123", SUPER_ADMIN),
    DemoUser("admin@example.com", "admin123", ADMIN),
    DemoUser("employee@example.com", "employee123", EMPLOYEE),
    DemoUser("pilot@example.com", "pilot123", PILOT),
)


def modules_by_name(modules: list[dict]) -> dict[str, dict]:
    return {
        module["name"]: {
            "enabled": bool(module.get("enabled")),
            "permissions": list(module.get("permissions") or []),
        }
        for module in modules
        if isinstance(module, dict) and module.get("name")
    }


def permissions_from_modules(modules: dict[str, dict]) -> frozenset[str]:
    """Flatten enabled modules into "module" and "module:action" strings."""
    permissions = set()
    for name, module in modules.items():
        if not module["enabled"]:
            continue
        permissions.add(name)
        permissions.update(f"{name}:{action}" for action in module["permissions"])
    return frozenset(permissions)


def _noop_notify(title: str, message: str) -> None:
    pass


def _noop_navigate(path: str) -> None:
    pass


class AuthSession:
    """
    Injectable authentication state.

    Args:
        api: AuthApi; its ApiClient owns the token slot and storages
        navigate: called with "/login" after logout
        notify: called with (title, message) for user-facing messages
        production: disables demo fallback login; defaults to the client config
        demo_users: local credentials accepted when the API login fails
    """

    def __init__(
        self,
        api: AuthApi,
        navigate: Callable[[str], None] | None = None,
        notify: Callable[[str, str], None] | None = None,
        production: bool | None = None,
        demo_users=DEMO_USERS,
    ):
        self.api = api
        self.navigate = navigate or _noop_navigate
        self.notify = notify or _noop_notify
        self.production = api.config.is_production if production is None else production
        self.demo_users = tuple(demo_users)

        self.status = AuthStatus.UNINITIALIZED
        self.user: dict | None = None
        self.modules: dict[str, dict] | None = None
        self.permissions: frozenset[str] = frozenset()
        self.is_fallback = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_loading(self) -> bool:
        return self.status in (AuthStatus.UNINITIALIZED, AuthStatus.VALIDATING)

    @property
    def role(self) -> str | None:
        return self.user.get("role") if self.user else None

    # =========================================================================
    # STATE TRANSITIONS
    # =========================================================================

    def _set_user(self, user: dict, modules: list[dict] | None, fallback: bool = False) -> None:
        self.user = user
        self.modules = modules_by_name(modules) if modules is not None else None
        self.permissions = permissions_from_modules(self.modules) if self.modules else frozenset()
        self.is_fallback = fallback
        self.status = AuthStatus.AUTHENTICATED

    def _clear_user(self) -> None:
        self.user = None
        self.modules = None
        self.permissions = frozenset()
        self.is_fallback = False
        self.status = AuthStatus.UNAUTHENTICATED

    def _purge(self) -> None:
        self.api.client.clear_tokens()
        self._clear_user()

    def _adopt_server_session(self, data: dict) -> None:
        modules = data.get("permissions")
        self._set_user(data["user"], modules if isinstance(modules, list) else None)

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    def initialize(self) -> AuthStatus:
        """Validate the stored token (if any) before granting authenticated state."""
        self.status = AuthStatus.VALIDATING
        self.user = None

        raw = self.api.client.get_token()
        if not raw:
            logger.info("No stored token, user needs to log in")
            self._clear_user()
            return self.status

        try:
            token = classify_token(raw)
            if isinstance(token, MalformedToken):
                logger.warning("Stored token is malformed (%s), purging", token.reason)
                self._purge()
            elif isinstance(token, LocalFallbackToken):
                self._restore_fallback_session(token)
            else:
                self._verify_server_session()
        except Exception:
            logger.exception("Stored token could not be validated, purging")
            self._purge()
        return self.status

    def _restore_fallback_session(self, token: LocalFallbackToken) -> None:
        demo = self._find_demo_user(token.email, token.role)
        if self.production:
            reason = "demo tokens are not accepted in production"
        elif token.is_expired():
            reason = "expired"
        elif demo is None:
            reason = "unknown demo user"
        else:
            reason = None

        if reason:
            logger.warning("Rejecting demo token: %s", reason)
            self._purge()
            return

        self._set_user({"email": demo.email, "role": demo.role}, modules=None, fallback=True)

    def _verify_server_session(self) -> None:
        try:
            payload = self.api.verify()
        except (ApiError, NetworkError) as e:
            logger.warning("Token verification failed: %s", e)
            self._purge()
            return

        data = payload.get("data")
        if not payload.get("success") or not isinstance(data, dict) or not isinstance(data.get("user"), dict):
            logger.warning("Token verification returned no user, purging")
            self._purge()
            return

        self._adopt_server_session(data)

    # =========================================================================
    # LOGIN / LOGOUT / REFRESH
    # =========================================================================

    def _find_demo_user(self, email: str, role: str) -> DemoUser | None:
        for demo in self.demo_users:
            if demo.email == email and demo.role == role:
                return demo
        return None

    def _match_demo_credentials(self, email: str, password: str) -> DemoUser | None:
        for demo in self.demo_users:
            if demo.email == email and demo.password == password:
                return demo
        return None

    def login(self, email: str, password: str) -> bool:
        """
        Log in against the API; fall back to demo credentials outside production.

        Returns False without touching stored tokens or user state when
        neither path succeeds.
        """
        server_error: Exception | None = None
        try:
            data = self.api.login(email, password)
        except (ApiError, NetworkError) as e:
            server_error = e
            logger.info("API login failed (%s), trying demo credentials", e)
        else:
            if isinstance(data.get("token"), str) and isinstance(data.get("user"), dict):
                self.api.client.store_tokens(data["token"], data.get("refreshToken"))
                self._adopt_server_session(data)
                self.notify("Welcome back!", f"Successfully logged in as {str(self.role or 'user').replace('_', ' ')}")
                return True
            logger.warning("Login response carried no token/user")

        demo = None if self.production else self._match_demo_credentials(email, password)
        if demo is not None:
            token = fabricate_fallback_token(demo.email, demo.role, hours=self.api.config.fallback_token_hours)
            self.api.client.store_tokens(token)
            self._set_user({"email": demo.email, "role": demo.role}, modules=None, fallback=True)
            self.notify("Welcome back!", f"Successfully logged in as {demo.role.replace('_', ' ')} (Demo)")
            return True

        code = server_error.code if isinstance(server_error, ApiError) else None
        if code == "ACCOUNT_LOCKED":
            self.notify("Account Locked", server_error.message)
        elif code == "ACCOUNT_DEACTIVATED":
            self.notify("Account Deactivated", server_error.message)
        else:
            self.notify("Login Failed", LOGIN_FAILED_MESSAGE)
        return False

    def logout(self) -> None:
        """
        Best-effort server logout, then unconditional local cleanup.

        Safe to call repeatedly. Clearing the token slot also cancels any
        refresh that is still in flight.
        """
        was_authenticated = self.is_authenticated
        client = self.api.client
        try:
            if client.get_token() and not self.is_fallback:
                self.api.logout(client.get_refresh_token())
        except (ApiError, NetworkError) as e:
            logger.info("API logout failed (%s), proceeding with local logout", e)
        finally:
            client.clear_tokens()
            self._clear_user()
            if was_authenticated:
                self.notify("Logged Out", "You have been successfully logged out.")
            self.navigate("/login")

    def refresh(self) -> bool:
        """Exchange the refresh token; a rejected refresh ends the session."""
        if self.api.refresh():
            return True
        if self.api.client.get_token() is None:
            self._clear_user()
        return False

    def sync_permissions(self) -> bool:
        """Re-verify a server session and replace the cached user and modules."""
        if not self.user or self.is_fallback:
            return False
        self._verify_server_session()
        return self.is_authenticated

    # =========================================================================
    # CHECKS
    # =========================================================================

    def has_role(self, role: str) -> bool:
        return self.role == role

    def has_permission(self, permission: str) -> bool:
        """Module ("trip_analytics") or module:action ("trip_analytics:read") permission."""
        if not self.user:
            return False
        if self.role in PRIVILEGED_ROLES:
            return True
        return permission in self.permissions

    def can_access_feature(self, feature_id: str) -> bool:
        if not self.user:
            return False
        if self.role in PRIVILEGED_ROLES:
            return True

        module = FEATURE_MODULES.get(feature_id)
        if self.modules is not None and module is not None:
            return self.has_permission(module)
        return feature_id in ROLE_FEATURES.get(self.role, ())
