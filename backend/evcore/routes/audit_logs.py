# Overview: Flask API routes for reading the security audit trail.

from flask import Blueprint, request

from ..decorators import require_auth, require_module_access
from ..errors import ValidationFailed
from ..permissions import Action, Module
from ..responses import error_response, success_response
from ..services import permission_service


audit_logs_bp = Blueprint("audit_logs", __name__, url_prefix="/api/audit-logs")

MAX_LIMIT = 500


@audit_logs_bp.get("")
@require_auth
@require_module_access(Module.AUDIT_LOGS, Action.READ)
def list_audit_logs_route():
    """
    Recent security events, newest first.

    Query params:
    - limit: max rows (default 100, capped at 500)
    - event_type: e.g. LOGIN_FAILED
    - user_id: filter by user
    """
    try:
        limit = min(int(request.args.get("limit", 100)), MAX_LIMIT)
        user_id = request.args.get("user_id")
        user_id = int(user_id) if user_id else None
    except ValueError:
        return error_response(ValidationFailed("limit and user_id must be integers"))

    if limit < 1:
        return error_response(ValidationFailed("limit must be positive"))

    events = permission_service.list_security_events(
        limit=limit,
        event_type=request.args.get("event_type"),
        user_id=user_id,
    )
    return success_response(
        "Audit logs retrieved successfully",
        {"events": [event.to_dict() for event in events], "count": len(events)},
    )
