"""
Login Throttling Service

WHY: Prevent brute-force password attacks by limiting failed login attempts.
After too many failures, the account is temporarily locked.

SECURITY FEATURES:
- Failed attempts counted on the user row (login_attempts)
- Lockout once MAX_LOGIN_ATTEMPTS is reached, for LOCK_DURATION_MINUTES
- Counter restarts at 1 when a previous lock has already expired
- Counter increment is a single UPDATE statement, not read-modify-write
- Clears the counter and lock on successful login
- Every failure and lockout lands in security_events
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import User
from ..validation import MOBILE_RE
from .permission_service import log_security_event
from evcore.time_utils import utcnow


def _max_attempts() -> int:
    return current_app.config["MAX_LOGIN_ATTEMPTS"]


def _lock_duration() -> timedelta:
    return timedelta(minutes=current_app.config["LOCK_DURATION_MINUTES"])


def find_user_by_identifier(identifier: str) -> User | None:
    """Look up a user by email (case-insensitive) or mobile number."""
    if not identifier or not isinstance(identifier, str):
        return None
    identifier = identifier.strip()
    if MOBILE_RE.match(identifier):
        return db.session.query(User).filter_by(mobile_number=identifier).first()
    return db.session.query(User).filter_by(email=identifier.lower()).first()


def seconds_until_unlock(user: User) -> int | None:
    if not user.is_locked:
        return None
    return max(int((user.lock_until - utcnow()).total_seconds()), 0)


def is_account_locked(user: User) -> tuple[bool, int | None]:
    """
    Check if an account is currently locked due to too many failed attempts.

    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    if user.is_locked:
        return True, seconds_until_unlock(user)
    return False, None


def record_failed_attempt(
    user: User,
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials",
) -> int:
    """
    Record a failed login attempt against an existing user.

    Returns the user's failed attempt count after this failure.
    """
    now = utcnow()

    if user.lock_until and user.lock_until <= now:
        # Previous lock has expired; start counting again
        db.session.query(User).filter_by(id=user.id).update(
            {User.login_attempts: 1, User.lock_until: None},
            synchronize_session=False,
        )
    else:
        db.session.query(User).filter_by(id=user.id).update(
            {User.login_attempts: User.login_attempts + 1},
            synchronize_session=False,
        )
    db.session.commit()
    db.session.refresh(user)

    log_security_event(
        user_id=user.id,
        event_type="LOGIN_FAILED",
        success=False,
        resource="/api/auth/login",
        action=identifier,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    if user.login_attempts >= _max_attempts() and not user.is_locked:
        user.lock_until = now + _lock_duration()
        db.session.commit()
        current_app.logger.warning(
            "Account locked after %s failed login attempts (user_id=%s)",
            user.login_attempts,
            user.id,
        )
        log_security_event(
            user_id=user.id,
            event_type="ACCOUNT_LOCKED",
            success=False,
            resource="/api/auth/login",
            action=identifier,
            reason=f"{user.login_attempts} failed login attempts",
            ip_address=ip_address,
            user_agent=user_agent,
        )

    return user.login_attempts


def record_unknown_identifier(
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Failed login for an identifier that matches no account."""
    log_security_event(
        user_id=None,
        event_type="LOGIN_FAILED",
        success=False,
        resource="/api/auth/login",
        action=(identifier or "")[:128] or None,
        reason="Unknown identifier",
        ip_address=ip_address,
        user_agent=user_agent,
    )


def record_successful_login(
    user: User,
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Record a successful login.

    Clears the failed attempt counter and any expired lock, and stamps
    last_login_at.
    """
    user.login_attempts = 0
    user.lock_until = None
    user.last_login_at = utcnow()
    db.session.commit()

    log_security_event(
        user_id=user.id,
        event_type="LOGIN_SUCCESS",
        success=True,
        resource="/api/auth/login",
        action=identifier,
        ip_address=ip_address,
        user_agent=user_agent,
    )


def get_lockout_status(identifier: str) -> dict:
    """
    Get detailed lockout status for an account.

    Returns dict with:
    - locked: bool
    - failed_attempts: int
    - max_attempts: int
    - seconds_until_unlock: int | None

    Unknown identifiers report an unlocked account with zero attempts so the
    endpoint cannot be used to discover which accounts exist.
    """
    user = find_user_by_identifier(identifier)
    locked, seconds_remaining = is_account_locked(user) if user else (False, None)

    return {
        "locked": locked,
        "failed_attempts": (user.login_attempts if user else 0) or 0,
        "max_attempts": _max_attempts(),
        "seconds_until_unlock": seconds_remaining,
        "lockout_duration_minutes": current_app.config["LOCK_DURATION_MINUTES"],
    }
