# Overview: Role-permission editor for the super_admin settings screen.

"""
Admin Settings Editor

Keeps two copies of the role-permission table:

- committed: the last state the server confirmed
- pending: an edit that has been sent but not yet confirmed

A change is applied to `pending` first and promoted to `committed` only when
the server accepts it. On failure the pending state is dropped and the
canonical state is fetched again, so the screen never shows an edit the
server did not store.
"""

from __future__ import annotations

import copy
import logging

from .api import AuthApi
from .errors import ApiError, NetworkError

logger = logging.getLogger(__name__)


class AdminSettings:

    def __init__(self, api: AuthApi):
        self.api = api
        self.committed: dict[str, dict[str, dict]] = {}
        self.pending: dict[str, dict[str, dict]] | None = None
        self.last_error: Exception | None = None

    @property
    def state(self) -> dict[str, dict[str, dict]]:
        """What the screen should render."""
        return self.pending if self.pending is not None else self.committed

    def load(self) -> dict[str, dict[str, dict]]:
        data = self.api.list_role_permissions()
        self.committed = {
            role: copy.deepcopy(row.get("modules") or {})
            for role, row in (data.get("permissions") or {}).items()
        }
        self.pending = None
        return self.committed

    def refetch(self) -> bool:
        try:
            self.load()
        except (ApiError, NetworkError) as e:
            logger.warning("Failed to re-fetch role permissions: %s", e)
            return False
        return True

    def _apply(self, pending: dict, send) -> bool:
        self.pending = pending
        try:
            confirmed = send()
        except (ApiError, NetworkError) as e:
            logger.warning("Permission update rejected: %s", e)
            self.last_error = e
            self.pending = None
            self.refetch()
            return False

        self.committed = confirmed
        self.pending = None
        self.last_error = None
        return True

    def update_module_permission(self, role: str, module: str, enabled: bool, permissions: list[str] | None = None) -> bool:
        pending = copy.deepcopy(self.committed)
        role_modules = pending.setdefault(role, {})
        current = role_modules.get(module, {"enabled": False, "permissions": []})
        role_modules[module] = {
            "enabled": enabled,
            "permissions": list(permissions) if permissions is not None else list(current["permissions"]),
        }

        def send():
            data = self.api.update_module_permission(role, module, enabled, permissions)
            confirmed = copy.deepcopy(pending)
            result = data.get("module") or {}
            confirmed[role][module] = {
                "enabled": result.get("enabled", enabled),
                "permissions": list(result.get("permissions", role_modules[module]["permissions"])),
            }
            return confirmed

        return self._apply(pending, send)

    def replace_role_modules(self, role: str, modules: list[dict]) -> bool:
        pending = copy.deepcopy(self.committed)
        pending[role] = {
            entry["name"]: {"enabled": entry["enabled"], "permissions": list(entry.get("permissions") or [])}
            for entry in modules
        }

        def send():
            data = self.api.replace_role_permissions(role, modules)
            confirmed = copy.deepcopy(pending)
            if isinstance(data.get("modules"), dict):
                confirmed[role] = copy.deepcopy(data["modules"])
            return confirmed

        return self._apply(pending, send)

    def reset_role(self, role: str) -> bool:
        """Reset on the server, then re-read the table; the defaults live server-side."""
        try:
            self.api.reset_role_permissions(role)
        except (ApiError, NetworkError) as e:
            logger.warning("Permission reset rejected: %s", e)
            self.last_error = e
            self.refetch()
            return False
        self.last_error = None
        return self.refetch()
