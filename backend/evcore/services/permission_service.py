# Overview: Service-layer operations for role permissions and the security audit log.

"""
Role Permission Resolution and Security Event Logging

WHY: Enforce role-based access control on platform modules and keep an
audit trail of security-relevant actions.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require an explicit enabled module
- Privileged roles (super_admin, admin) bypass the table entirely
- One RolePermission row per role, created with defaults on first use
- Log denials only: Permission grants are not logged
"""

from __future__ import annotations

from ..errors import Forbidden, NotFound, ValidationFailed
from ..extensions import db
from ..models import RolePermission, SecurityEvent
from ..permissions import (
    ALL_ROLES,
    get_default_modules,
    is_privileged_role,
    is_valid_role,
    validate_module_entry,
)
from evcore.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - LOGIN_SUCCESS / LOGIN_FAILED / ACCOUNT_LOCKED
    - LOGOUT / TOKEN_REFRESHED / REFRESH_TOKEN_REUSE
    - PASSWORD_CHANGED / USER_REGISTERED
    - PERMISSION_DENIED / ROLE_PERMISSIONS_UPDATED
    - USER_STATUS_CHANGED / USER_ROLE_CHANGED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def list_security_events(
    limit: int = 100,
    event_type: str | None = None,
    user_id: int | None = None,
) -> list[SecurityEvent]:
    """Most recent security events first, optionally filtered."""
    query = db.session.query(SecurityEvent)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    if user_id is not None:
        query = query.filter(SecurityEvent.user_id == user_id)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()


def get_role_permission(role: str) -> RolePermission | None:
    return db.session.query(RolePermission).filter_by(role=role).first()


def ensure_role_permission(role: str, created_by_user_id: int | None = None) -> RolePermission | None:
    """
    Return the RolePermission row for a role, creating it from defaults if absent.

    Idempotent: Safe to run multiple times.
    Returns None for roles without a default table.
    """
    existing = get_role_permission(role)
    if existing:
        return existing

    modules = get_default_modules(role)
    if modules is None:
        return None

    role_permission = RolePermission(
        role=role,
        modules=modules,
        created_by_user_id=created_by_user_id,
        updated_by_user_id=created_by_user_id,
    )
    db.session.add(role_permission)
    db.session.commit()
    return role_permission


def initialize_role_permissions() -> int:
    """
    Create default RolePermission rows for every role that lacks one.

    Returns count of rows created.
    """
    created_count = 0
    for role in ALL_ROLES:
        if get_role_permission(role) is None:
            ensure_role_permission(role)
            created_count += 1
    return created_count


def get_role_modules(role: str) -> list[dict]:
    """Current module list for a role (empty when no row exists)."""
    role_permission = get_role_permission(role)
    if not role_permission:
        return []
    return [dict(module) for module in role_permission.modules or []]


def user_can_access_module(user, module_name: str, action: str | None = None) -> bool:
    """
    Check if a user's role grants a module (and optionally an action within it).

    WHY: Core module check. Used by decorators and manual checks.
    """
    if user is None:
        return False
    if is_privileged_role(user.role):
        return True

    role_permission = get_role_permission(user.role)
    if not role_permission:
        return False

    if action is None:
        return role_permission.has_module_access(module_name)
    return role_permission.has_permission(module_name, action)


def require_module_access(
    user,
    module_name: str,
    action: str | None = None,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require module access, raise Forbidden if not granted.

    Denials are logged to security_events.
    """
    if user_can_access_module(user, module_name, action):
        return

    required = f"{module_name}:{action}" if action else module_name
    log_security_event(
        user_id=user.id if user else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=required,
        reason=f"Role '{user.role if user else None}' lacks {required}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    if action:
        raise Forbidden(f"Insufficient permissions for {action} on {module_name}")
    raise Forbidden(f"Access denied to {module_name} module")


def list_role_permissions() -> list[RolePermission]:
    return db.session.query(RolePermission).order_by(RolePermission.role).all()


def _require_known_role(role: str) -> None:
    if not is_valid_role(role):
        raise ValidationFailed(f"Invalid role: {role}")


def replace_role_modules(role: str, modules: list, updated_by_user_id: int | None) -> RolePermission:
    """
    Replace the full module list for a role.

    Raises ValidationFailed for unknown roles or malformed module entries.
    """
    _require_known_role(role)
    if not isinstance(modules, list):
        raise ValidationFailed("Modules must be an array")

    normalized = []
    seen_names = set()
    for entry in modules:
        try:
            module = validate_module_entry(entry)
        except ValueError as e:
            raise ValidationFailed(str(e))
        if module["name"] in seen_names:
            raise ValidationFailed(f"Duplicate module: {module['name']}")
        seen_names.add(module["name"])
        normalized.append(module)

    role_permission = get_role_permission(role)
    if not role_permission:
        role_permission = RolePermission(role=role, created_by_user_id=updated_by_user_id)
        db.session.add(role_permission)

    role_permission.modules = normalized
    role_permission.updated_by_user_id = updated_by_user_id
    db.session.commit()
    return role_permission


def update_module_access(
    role: str,
    module_name: str,
    enabled: bool | None,
    permissions: list | None,
    updated_by_user_id: int | None,
) -> RolePermission:
    """
    Update one module for a role, adding it if the role has no entry yet.

    enabled or permissions left as None keep their existing values.
    """
    _require_known_role(role)
    role_permission = get_role_permission(role)
    if not role_permission:
        raise NotFound(f"Role permissions not found for role: {role}")

    current = role_permission.find_module(module_name)
    candidate = {
        "name": module_name,
        "enabled": enabled if enabled is not None else bool((current or {}).get("enabled")),
        "permissions": permissions if permissions is not None else list((current or {}).get("permissions") or []),
    }
    try:
        module = validate_module_entry(candidate)
    except ValueError as e:
        raise ValidationFailed(str(e))

    modules = [dict(m) for m in role_permission.modules or []]
    for index, existing in enumerate(modules):
        if existing.get("name") == module_name:
            modules[index] = module
            break
    else:
        modules.append(module)

    # Reassign so the JSON column is flagged dirty
    role_permission.modules = modules
    role_permission.updated_by_user_id = updated_by_user_id
    db.session.commit()
    return role_permission


def reset_role_permissions(role: str, updated_by_user_id: int | None) -> RolePermission:
    """Restore a role's module list to the shipped defaults."""
    _require_known_role(role)
    defaults = get_default_modules(role)
    return replace_role_modules(role, defaults, updated_by_user_id)
