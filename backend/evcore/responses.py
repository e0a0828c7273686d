# Overview: JSON response envelopes shared by API routes and decorators.

from flask import jsonify

from .errors import AuthError


def success_response(message: str, data=None, status: int = 200):
    """{"success": true, "message": ..., "data": ...}"""
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def error_response(error: AuthError):
    """Translate a service-layer AuthError into its JSON body and status."""
    return jsonify(error.to_dict()), error.status_code


def internal_error_response():
    return jsonify({
        "success": False,
        "error": "INTERNAL_ERROR",
        "message": "Internal server error",
    }), 500
