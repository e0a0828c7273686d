# Overview: Flask API routes for super-admin settings: role permissions and account management.

"""
Admin settings API routes

All routes require an authenticated super_admin.

Role permissions:
- GET    /api/admin-settings/permissions
- GET    /api/admin-settings/permissions/<role>
- PUT    /api/admin-settings/permissions/<role>
- PATCH  /api/admin-settings/permissions/<role>/modules/<module>
- POST   /api/admin-settings/permissions/<role>/reset

Accounts:
- GET    /api/admin-settings/users
- PATCH  /api/admin-settings/users/<id>/status
- PATCH  /api/admin-settings/users/<id>/role
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_roles
from ..errors import AuthError, NotFound, ValidationFailed
from ..permissions import Role, is_valid_role
from ..responses import error_response, internal_error_response, success_response
from ..services import auth_service, permission_service
from ..validation import get_json_body


admin_settings_bp = Blueprint("admin_settings", __name__, url_prefix="/api/admin-settings")


def _log_permissions_change(role: str, action: str) -> None:
    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="ROLE_PERMISSIONS_UPDATED",
        success=True,
        resource=request.path,
        action=action,
        reason=f"Permissions for role {role} changed",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


@admin_settings_bp.get("/permissions")
@require_auth
@require_roles(Role.SUPER_ADMIN)
def list_permissions_route():
    """Every role's module permissions, keyed by role."""
    try:
        role_permissions = permission_service.list_role_permissions()
        return success_response(
            "Role permissions retrieved successfully",
            {
                "permissions": {rp.role: rp.to_dict() for rp in role_permissions},
                "totalRoles": len(role_permissions),
            },
        )
    except Exception:
        current_app.logger.exception("Failed to list role permissions")
        return internal_error_response()


@admin_settings_bp.get("/permissions/<role>")
@require_auth
@require_roles(Role.SUPER_ADMIN)
def get_permissions_route(role: str):
    try:
        role_permission = permission_service.get_role_permission(role)
        if not role_permission:
            raise NotFound(f"Role permissions not found for role: {role}")
        return success_response(f"Permissions for role {role} retrieved successfully", role_permission.to_dict())

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get role permissions")
        return internal_error_response()


@admin_settings_bp.put("/permissions/<role>")
@require_auth
@require_roles(Role.SUPER_ADMIN)
def replace_permissions_route(role: str):
    """
    Replace a role's full module list.

    Body: {"modules": [{"name", "enabled", "permissions"}, ...]}
    """
    try:
        data = get_json_body()
        if "modules" not in data:
            raise ValidationFailed("Modules must be an array")

        role_permission = permission_service.replace_role_modules(role, data["modules"], g.current_user.id)
        _log_permissions_change(role, "replace")
        current_app.logger.info("User %s replaced permissions for role %s", g.current_user.id, role)

        return success_response(f"Permissions for role {role} updated successfully", role_permission.to_dict())

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to replace role permissions")
        return internal_error_response()


@admin_settings_bp.patch("/permissions/<role>/modules/<module_name>")
@require_auth
@require_roles(Role.SUPER_ADMIN)
def update_module_route(role: str, module_name: str):
    """
    Update one module for a role.

    Body: {"enabled": bool?, "permissions": [action, ...]?}
    """
    try:
        data = get_json_body()
        role_permission = permission_service.update_module_access(
            role,
            module_name,
            data.get("enabled"),
            data.get("permissions"),
            g.current_user.id,
        )
        _log_permissions_change(role, f"module:{module_name}")

        module = role_permission.find_module(module_name)
        return success_response(
            f"Module {module_name} updated successfully for role {role}",
            {
                "role": role,
                "module": dict(module),
                "lastUpdated": role_permission.to_dict()["lastUpdated"],
            },
        )

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update module permissions")
        return internal_error_response()


@admin_settings_bp.post("/permissions/<role>/reset")
@require_auth
@require_roles(Role.SUPER_ADMIN)
def reset_permissions_route(role: str):
    """Restore a role's module list to the defaults."""
    try:
        role_permission = permission_service.reset_role_permissions(role, g.current_user.id)
        _log_permissions_change(role, "reset")
        current_app.logger.info("User %s reset permissions for role %s", g.current_user.id, role)

        return success_response(
            f"Permissions for role {role} reset to default successfully",
            {"role": role, "modulesReset": len(role_permission.modules or [])},
        )

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reset role permissions")
        return internal_error_response()


@admin_settings_bp.get("/users")
@require_auth
@require_roles(Role.SUPER_ADMIN)
def list_users_route():
    """
    List accounts.

    Query params:
    - role: filter by role
    - include_inactive: "false" hides deactivated accounts (default true)
    """
    role = request.args.get("role")
    if role and not is_valid_role(role):
        return error_response(ValidationFailed(f"Invalid role: {role}"))

    include_inactive = request.args.get("include_inactive", "true").lower() != "false"
    users = auth_service.list_users(role=role, include_inactive=include_inactive)
    return success_response("Users retrieved successfully", {"users": [u.to_dict() for u in users]})


@admin_settings_bp.patch("/users/<int:user_id>/status")
@require_auth
@require_roles(Role.SUPER_ADMIN)
def update_user_status_route(user_id: int):
    """Body: {"active": bool}. Deactivation revokes all refresh tokens."""
    try:
        user = auth_service.set_user_active(
            g.current_user,
            user_id,
            get_json_body().get("active"),
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        state = "activated" if user.is_active else "deactivated"
        return success_response(f"User {state} successfully", {"user": user.to_dict()})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user status")
        return internal_error_response()


@admin_settings_bp.patch("/users/<int:user_id>/role")
@require_auth
@require_roles(Role.SUPER_ADMIN)
def update_user_role_route(user_id: int):
    """Body: {"role": role}. Tokens issued under the old role become stale."""
    try:
        user = auth_service.set_user_role(
            g.current_user,
            user_id,
            get_json_body().get("role"),
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return success_response("User role updated successfully", {"user": user.to_dict()})

    except AuthError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user role")
        return internal_error_response()
