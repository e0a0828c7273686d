# Overview: EVCORE API client; auth session, role access and admin settings editor.
# Re-exports all public APIs for convenient imports.

from .config import ClientConfig
from .errors import ApiError, NetworkError
from .storage import TokenStorage, MemoryStorage, FileStorage
from .tokens import (
    RealToken,
    LocalFallbackToken,
    MalformedToken,
    StoredToken,
    classify_token,
    fabricate_fallback_token,
)
from .api import ApiClient, AuthApi
from .session import AuthSession, AuthStatus, DemoUser, DEMO_USERS
from .access import RoleAccess
from .admin_settings import AdminSettings

__all__ = [
    "ClientConfig",
    "ApiError",
    "NetworkError",
    "TokenStorage",
    "MemoryStorage",
    "FileStorage",
    "RealToken",
    "LocalFallbackToken",
    "MalformedToken",
    "StoredToken",
    "classify_token",
    "fabricate_fallback_token",
    "ApiClient",
    "AuthApi",
    "AuthSession",
    "AuthStatus",
    "DemoUser",
    "DEMO_USERS",
    "RoleAccess",
    "AdminSettings",
]
