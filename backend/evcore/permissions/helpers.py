# Overview: Utility functions for role and module-permission lookups and validation.

from .defaults import DEFAULT_ROLE_PERMISSIONS
from .modules import ALL_MODULES, ALL_ACTIONS
from .roles import ALL_ROLES, PRIVILEGED_ROLES


def is_valid_role(role):
    """Check if a role name is part of the canonical enumeration."""
    return role in ALL_ROLES


def is_privileged_role(role):
    """super_admin and admin bypass the permission table."""
    return role in PRIVILEGED_ROLES


def get_default_modules(role):
    """
    Default module list for a role, in the JSON shape stored on RolePermission.

    Returns None for roles without a default table.
    """
    entries = DEFAULT_ROLE_PERMISSIONS.get(role)
    if entries is None:
        return None
    return [
        {"name": name, "enabled": enabled, "permissions": list(actions)}
        for name, enabled, actions in entries
    ]


def validate_module_entry(entry):
    """
    Validate and normalize one module entry supplied by a client.

    Returns the normalized dict or raises ValueError naming the problem.
    """
    if not isinstance(entry, dict):
        raise ValueError("Each module must be an object")

    name = entry.get("name")
    if name not in ALL_MODULES:
        raise ValueError(f"Invalid module name: {name}")

    enabled = entry.get("enabled")
    if not isinstance(enabled, bool):
        raise ValueError("Module enabled must be a boolean")

    permissions = entry.get("permissions", [])
    if not isinstance(permissions, list):
        raise ValueError("Permissions must be an array")
    for action in permissions:
        if action not in ALL_ACTIONS:
            raise ValueError(f"Invalid permission type: {action}")

    # Deduplicate while keeping order
    seen = []
    for action in permissions:
        if action not in seen:
            seen.append(action)

    return {"name": name, "enabled": enabled, "permissions": seen}
