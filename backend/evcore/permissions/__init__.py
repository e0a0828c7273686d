# Overview: Role and module-permission vocabulary.
# Re-exports all public APIs for convenient imports.

from .roles import Role, ALL_ROLES, PRIVILEGED_ROLES, DEFAULT_ROLE
from .modules import Module, Action, ALL_MODULES, ALL_ACTIONS
from .defaults import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    is_valid_role,
    is_privileged_role,
    get_default_modules,
    validate_module_entry,
)

__all__ = [
    "Role",
    "ALL_ROLES",
    "PRIVILEGED_ROLES",
    "DEFAULT_ROLE",
    "Module",
    "Action",
    "ALL_MODULES",
    "ALL_ACTIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "is_valid_role",
    "is_privileged_role",
    "get_default_modules",
    "validate_module_entry",
]
