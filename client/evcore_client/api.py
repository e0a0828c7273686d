# Overview: HTTP client for the EVCORE API; bearer tokens, refresh-and-retry, endpoint wrappers.

"""
EVCORE API Client

ApiClient owns the token slot (access + refresh token in persistent and
session storage) and performs requests with httpx. On a 401 it refreshes
the token pair once and retries the request once. Concurrent 401s share a
single refresh.

AuthApi wraps the individual endpoints and unwraps the response envelope
{"success", "message", "data"} into the data dict.

CONCURRENCY:
- _slot_lock guards reads and writes of the token slot
- _refresh_lock makes refresh single-flight
- generation is bumped whenever the slot is cleared; a refresh that started
  before a clear never writes its result back (logout wins)
"""

from __future__ import annotations

import logging
import threading

import httpx

from .config import ClientConfig
from .errors import ApiError, NetworkError
from .storage import MemoryStorage, TokenStorage

logger = logging.getLogger(__name__)


class ApiClient:
    """httpx-based transport with bearer auth and one-shot refresh on 401."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        storage: TokenStorage | None = None,
        session_storage: TokenStorage | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config or ClientConfig()
        self.storage = storage if storage is not None else MemoryStorage()
        self.session_storage = session_storage if session_storage is not None else MemoryStorage()
        self.client = httpx.Client(
            base_url=self.config.api_base_url.rstrip("/"),
            timeout=self.config.request_timeout,
            transport=transport,
        )
        self.generation = 0
        self._slot_lock = threading.RLock()
        self._refresh_lock = threading.Lock()

    # =========================================================================
    # TOKEN SLOT
    # =========================================================================

    def get_token(self) -> str | None:
        key = self.config.token_storage_key
        with self._slot_lock:
            return self.storage.get(key) or self.session_storage.get(key)

    def get_refresh_token(self) -> str | None:
        key = self.config.refresh_token_storage_key
        with self._slot_lock:
            return self.storage.get(key) or self.session_storage.get(key)

    def store_tokens(self, access_token: str, refresh_token: str | None = None) -> None:
        with self._slot_lock:
            self.storage.set(self.config.token_storage_key, access_token)
            if refresh_token:
                self.storage.set(self.config.refresh_token_storage_key, refresh_token)
            else:
                self.storage.remove(self.config.refresh_token_storage_key)
                self.session_storage.remove(self.config.refresh_token_storage_key)

    def clear_tokens(self) -> None:
        """Remove both tokens from both stores and cancel any in-flight refresh."""
        with self._slot_lock:
            self.generation += 1
            for store in (self.storage, self.session_storage):
                store.remove(self.config.token_storage_key)
                store.remove(self.config.refresh_token_storage_key)

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def _headers(self, token: str | None) -> dict:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        json: dict | None = None,
        params: dict | None = None,
        auth: bool = True,
        retry: bool = True,
    ) -> dict:
        """
        Perform a request and return the decoded JSON body.

        Raises:
            ApiError: non-2xx answer (after the refresh-and-retry, if any)
            NetworkError: the API could not be reached
        """
        token = self.get_token() if auth else None
        try:
            response = self.client.request(
                method,
                path,
                json=json,
                params=params,
                headers=self._headers(token),
            )
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError(str(e)) from e

        if response.status_code == 401 and auth and retry and token:
            if self._refresh_after_unauthorized(token):
                return self.request(method, path, json=json, params=params, auth=auth, retry=False)

        try:
            payload = response.json()
        except ValueError:
            payload = {"message": response.text}
        if not isinstance(payload, dict):
            payload = {"data": payload}

        if not response.is_success:
            raise ApiError(response.status_code, payload)
        return payload

    def _refresh_after_unauthorized(self, rejected_token: str) -> bool:
        with self._refresh_lock:
            current = self.get_token()
            if current and current != rejected_token:
                # Another caller refreshed while this one waited
                return True
            return self.refresh_tokens()

    def refresh_tokens(self) -> bool:
        """
        Exchange the stored refresh token for a new pair.

        Returns True when a new pair was stored. A rejected refresh clears the
        slot; a connectivity failure leaves it untouched. A result that
        arrives after clear_tokens() is discarded.
        """
        refresh_token = self.get_refresh_token()
        if not refresh_token:
            return False

        generation = self.generation
        try:
            payload = self.request(
                "POST",
                "/api/auth/refresh",
                json={"refreshToken": refresh_token},
                auth=False,
            )
        except NetworkError:
            return False
        except ApiError as e:
            logger.info("Refresh rejected (%s), clearing tokens", e.code)
            with self._slot_lock:
                if generation == self.generation:
                    self.clear_tokens()
            return False

        data = _data(payload)
        with self._slot_lock:
            if generation != self.generation:
                logger.info("Discarding refresh result: session ended during refresh")
                return False
            if not data.get("token"):
                self.clear_tokens()
                return False
            self.store_tokens(data["token"], data.get("refreshToken"))
        return True

    def close(self):
        self.client.close()


def _data(payload: dict) -> dict:
    data = payload.get("data")
    return data if isinstance(data, dict) else {}


class AuthApi:
    """Endpoint wrappers; each returns the unwrapped `data` dict."""

    def __init__(self, client: ApiClient):
        self.client = client

    @property
    def config(self) -> ClientConfig:
        return self.client.config

    # Auth
    def login(self, email: str, password: str) -> dict:
        return _data(self.client.request(
            "POST", "/api/auth/login", json={"email": email, "password": password}, auth=False
        ))

    def register(self, payload: dict) -> dict:
        return _data(self.client.request("POST", "/api/auth/register", json=payload))

    def verify(self) -> dict:
        """Returns the full envelope so callers can check `success` themselves."""
        return self.client.request("GET", "/api/auth/verify")

    def refresh(self) -> bool:
        return self.client.refresh_tokens()

    def logout(self, refresh_token: str | None = None) -> dict:
        body = {"refreshToken": refresh_token} if refresh_token else {}
        return _data(self.client.request("POST", "/api/auth/logout", json=body, retry=False))

    def me(self) -> dict:
        return _data(self.client.request("GET", "/api/auth/me"))

    def update_profile(self, changes: dict) -> dict:
        return _data(self.client.request("PUT", "/api/auth/profile", json=changes))

    def change_password(self, current_password: str, new_password: str, confirm_password: str) -> dict:
        return _data(self.client.request("PUT", "/api/auth/change-password", json={
            "currentPassword": current_password,
            "newPassword": new_password,
            "newPasswordConfirm": confirm_password,
        }))

    def first_login_password_change(self, new_password: str, confirm_password: str) -> dict:
        return _data(self.client.request("PUT", "/api/auth/first-login-password-change", json={
            "newPassword": new_password,
            "newPasswordConfirm": confirm_password,
        }))

    def lockout_status(self, identifier: str) -> dict:
        return _data(self.client.request("GET", f"/api/auth/lockout-status/{identifier}", auth=False))

    # Admin settings
    def list_role_permissions(self) -> dict:
        return _data(self.client.request("GET", "/api/admin-settings/permissions"))

    def get_role_permissions(self, role: str) -> dict:
        return _data(self.client.request("GET", f"/api/admin-settings/permissions/{role}"))

    def replace_role_permissions(self, role: str, modules: list[dict]) -> dict:
        return _data(self.client.request(
            "PUT", f"/api/admin-settings/permissions/{role}", json={"modules": modules}
        ))

    def update_module_permission(self, role: str, module: str, enabled: bool, permissions: list[str] | None = None) -> dict:
        body = {"enabled": enabled}
        if permissions is not None:
            body["permissions"] = list(permissions)
        return _data(self.client.request(
            "PATCH", f"/api/admin-settings/permissions/{role}/modules/{module}", json=body
        ))

    def reset_role_permissions(self, role: str) -> dict:
        return _data(self.client.request("POST", f"/api/admin-settings/permissions/{role}/reset"))

    def list_users(self, role: str | None = None, include_inactive: bool = False) -> dict:
        params = {"include_inactive": "true" if include_inactive else "false"}
        if role:
            params["role"] = role
        return _data(self.client.request("GET", "/api/admin-settings/users", params=params))

    def set_user_status(self, user_id: int, active: bool) -> dict:
        return _data(self.client.request(
            "PATCH", f"/api/admin-settings/users/{user_id}/status", json={"active": active}
        ))

    def set_user_role(self, user_id: int, role: str) -> dict:
        return _data(self.client.request(
            "PATCH", f"/api/admin-settings/users/{user_id}/role", json={"role": role}
        ))

    # Audit log
    def audit_logs(self, limit: int = 100, event_type: str | None = None, user_id: int | None = None) -> dict:
        params = {"limit": limit}
        if event_type:
            params["event_type"] = event_type
        if user_id is not None:
            params["user_id"] = user_id
        return _data(self.client.request("GET", "/api/audit-logs", params=params))

    def health(self) -> dict:
        return self.client.request("GET", "/health", auth=False)
