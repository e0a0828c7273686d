# backend/evcore/routes/system.py
"""
System health endpoint.

Checks database connectivity and whether role permissions have been
initialized.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import RefreshToken, RolePermission, User
from ..permissions import ALL_ROLES
from evcore.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        live_refresh_tokens = db.session.query(RefreshToken).filter(
            RefreshToken.expires_at >= utcnow()
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "live_refresh_tokens": live_refresh_tokens,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_permissions_health() -> dict:
    """Degraded when any role lacks a RolePermission row."""
    start_time = time.time()
    try:
        configured = {rp.role for rp in db.session.query(RolePermission).all()}
        missing_roles = [role for role in ALL_ROLES if role not in configured]
        elapsed_ms = (time.time() - start_time) * 1000

        if missing_roles:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": f"Missing role permissions: {', '.join(missing_roles)}",
            }
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"roles_configured": len(configured)},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Permission health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Permission table error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    permissions_health = check_permissions_health()

    all_checks = [database_health, permissions_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "environment": current_app.config["APP_ENV"],
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "permissions": permissions_health,
        }
    }, http_status
