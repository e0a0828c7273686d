from __future__ import annotations

import re
from typing import Any

from .errors import ValidationFailed


EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

# Indian mobile numbers: 10 digits starting with 6-9
MOBILE_RE = re.compile(r"^[6-9]\d{9}$")

FULL_NAME_MAX_LEN = 100
DEPARTMENT_MAX_LEN = 50
DESIGNATION_MAX_LEN = 50


def get_json_body() -> dict:
    """Request JSON as a dict; anything else (missing body, list, scalar) becomes {}."""
    from flask import request

    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def normalize_email(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed("Email is required")
    email = value.strip().lower()
    if len(email) > 255 or not EMAIL_RE.match(email):
        raise ValidationFailed("Please provide a valid email")
    return email


def normalize_mobile(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed("Mobile number is required")
    mobile = value.strip()
    if not MOBILE_RE.match(mobile):
        raise ValidationFailed("Please provide a valid mobile number")
    return mobile


def normalize_full_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed("Full name is required")
    name = value.strip()
    if len(name) > FULL_NAME_MAX_LEN:
        raise ValidationFailed(f"Full name cannot exceed {FULL_NAME_MAX_LEN} characters")
    return name


def normalize_optional_text(value: Any, field: str, max_len: int) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailed(f"{field} must be a string")
    text = value.strip()
    if not text:
        return None
    if len(text) > max_len:
        raise ValidationFailed(f"{field} cannot exceed {max_len} characters")
    return text
