# Overview: Fine-grained action checks layered on AuthSession.

from __future__ import annotations

from .features import (
    ACTION_PERMISSIONS,
    FEATURE_MODULES,
    FEATURES,
    PRIVILEGED_ROLES,
    ROLE_FEATURE_ACTIONS,
    ROLE_LEVELS,
    ADMIN,
    SUPER_ADMIN,
)
from .session import AuthSession


class RoleAccess:
    """
    Role-based access helpers for UI gating and action dispatch.

    Actions are view/create/edit/delete/export. When the session carries
    server module permissions they decide (view -> read, edit -> update);
    otherwise the fixed role x feature x action matrix applies.
    """

    def __init__(self, session: AuthSession):
        self.session = session

    @property
    def user(self) -> dict | None:
        return self.session.user

    def can_perform_action(self, feature_id: str, action: str) -> bool:
        if not self.user or not self.session.can_access_feature(feature_id):
            return False

        role = self.session.role
        if role in PRIVILEGED_ROLES:
            return True

        module = FEATURE_MODULES.get(feature_id)
        server_action = ACTION_PERMISSIONS.get(action)
        if self.session.modules is not None and module is not None:
            return server_action is not None and self.session.has_permission(f"{module}:{server_action}")

        return action in ROLE_FEATURE_ACTIONS.get(role, {}).get(feature_id, ())

    def get_role_level(self) -> int:
        return ROLE_LEVELS.get(self.session.role, 0)

    def has_minimum_role(self, required_role: str) -> bool:
        required_level = ROLE_LEVELS.get(required_role)
        if required_level is None or not self.user:
            return False
        return self.get_role_level() >= required_level

    def get_accessible_features(self) -> list[str]:
        if not self.user:
            return []
        return [feature for feature in FEATURES if self.session.can_access_feature(feature)]

    def is_super_admin(self) -> bool:
        """Only super_admin reaches admin settings."""
        return self.session.has_role(SUPER_ADMIN)

    def is_admin(self) -> bool:
        return self.session.has_role(SUPER_ADMIN) or self.session.has_role(ADMIN)

    def has_access(self, roles) -> bool:
        if not self.user:
            return False
        return self.session.role in roles
