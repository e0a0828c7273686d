# Overview: Service-layer operations for access and refresh tokens.

"""
Access / Refresh Token Service

WHY: Stateless access tokens for per-request authentication, paired with
server-listed refresh tokens that can be rotated and revoked.

SECURITY FEATURES:
- Access and refresh tokens are signed with different secrets
- Access tokens are short-lived and re-checked against the current user
  on every request (active flag, lock, password change, role change)
- Refresh tokens are single-use: rotation deletes the presented token
- Refresh tokens are hashed with SHA-256 before storage
- At most MAX_REFRESH_TOKENS live refresh tokens per user (oldest dropped)
- Presenting an unlisted refresh token revokes every refresh token of that
  user (a rotated token being replayed is treated as theft)
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

import jwt
from flask import current_app

from ..errors import AccountDeactivated, AccountLocked, InvalidToken, RefreshTokenRevoked, TokenExpired, TokenStale
from ..extensions import db
from ..models import RefreshToken, User
from .permission_service import log_security_event
from evcore.time_utils import from_epoch, to_epoch, utcnow


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _encode(claims: dict, secret: str) -> str:
    return jwt.encode(claims, secret, algorithm=current_app.config["JWT_ALGORITHM"])


def _decode(token: str, secret: str, expected_type: str) -> dict:
    """
    Decode and check signature, expiry and token type.

    Raises TokenExpired or InvalidToken; never returns partial claims.
    """
    if not token or not isinstance(token, str):
        raise InvalidToken()
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.PyJWTError:
        raise InvalidToken()

    if claims.get("type") != expected_type or not isinstance(claims.get("id"), int):
        raise InvalidToken()
    return claims


def issue_access_token(user: User) -> str:
    """
    Signed access token with claims {id, role, iat, exp, type}.

    iat keeps sub-second precision so a password change in the same second
    as issuance still invalidates the token.
    """
    now = to_epoch(utcnow())
    lifetime = timedelta(minutes=current_app.config["JWT_EXPIRE_MINUTES"])
    claims = {
        "id": user.id,
        "role": user.role,
        "iat": now,
        "exp": int(now + lifetime.total_seconds()),
        "type": ACCESS_TOKEN_TYPE,
    }
    return _encode(claims, current_app.config["JWT_SECRET"])


def issue_refresh_token(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> str:
    """
    Signed refresh token, recorded (hashed) in the user's refresh-token list.

    The list is trimmed to the newest MAX_REFRESH_TOKENS entries.
    """
    now = utcnow()
    lifetime = timedelta(days=current_app.config["JWT_REFRESH_EXPIRE_DAYS"])
    claims = {
        "id": user.id,
        "iat": to_epoch(now),
        "exp": int(to_epoch(now + lifetime)),
        "jti": secrets.token_hex(16),
        "type": REFRESH_TOKEN_TYPE,
    }
    token = _encode(claims, current_app.config["JWT_REFRESH_SECRET"])

    db.session.add(RefreshToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=now,
        expires_at=from_epoch(claims["exp"]),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
    ))
    db.session.flush()

    _trim_refresh_tokens(user.id, current_app.config["MAX_REFRESH_TOKENS"])
    db.session.commit()
    return token


def _trim_refresh_tokens(user_id: int, keep: int) -> int:
    stale = (
        db.session.query(RefreshToken)
        .filter_by(user_id=user_id)
        .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
        .offset(keep)
        .all()
    )
    for record in stale:
        db.session.delete(record)
    return len(stale)


def issue_token_pair(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[str, str]:
    """Returns (access_token, refresh_token)."""
    access_token = issue_access_token(user)
    refresh_token = issue_refresh_token(user, user_agent=user_agent, ip_address=ip_address)
    return access_token, refresh_token


def verify_access(token: str) -> dict:
    """
    Verify an access token's signature, expiry and type.

    Returns the claims. Callers must still re-fetch the user; see
    authenticate_access_token.
    """
    return _decode(token, current_app.config["JWT_SECRET"], ACCESS_TOKEN_TYPE)


def verify_refresh(
    token: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> tuple[dict, User, RefreshToken]:
    """
    Verify a refresh token and find its server-side record.

    Returns (claims, user, record).

    Raises:
        TokenExpired / InvalidToken: signature, expiry or type problems, or
            the user no longer exists
        AccountDeactivated: the user is inactive
        RefreshTokenRevoked: valid signature but not in the user's list;
            every refresh token of that user is revoked before raising
    """
    claims = _decode(token, current_app.config["JWT_REFRESH_SECRET"], REFRESH_TOKEN_TYPE)

    user = db.session.get(User, claims["id"])
    if not user:
        raise InvalidToken()
    if not user.is_active:
        raise AccountDeactivated()

    record = db.session.query(RefreshToken).filter_by(
        user_id=user.id,
        token_hash=hash_token(token),
    ).first()

    if not record:
        revoked = revoke_all_refresh_tokens(user)
        log_security_event(
            user_id=user.id,
            event_type="REFRESH_TOKEN_REUSE",
            success=False,
            resource="/api/auth/refresh",
            reason=f"Unlisted refresh token presented; revoked {revoked} token(s)",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise RefreshTokenRevoked()

    return claims, user, record


def rotate_refresh_token(
    token: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[User, str, str]:
    """
    Exchange a refresh token for a new pair.

    The presented token is deleted before the new one is issued, so it can
    never be used twice. Returns (user, access_token, refresh_token).
    """
    _claims, user, record = verify_refresh(token, ip_address=ip_address, user_agent=user_agent)

    # Conditional delete: a concurrent rotation of the same token loses here
    deleted = db.session.query(RefreshToken).filter_by(id=record.id).delete(synchronize_session=False)
    if not deleted:
        db.session.rollback()
        raise RefreshTokenRevoked("Refresh token has already been used")

    access_token, refresh_token = issue_token_pair(user, user_agent=user_agent, ip_address=ip_address)
    return user, access_token, refresh_token


def revoke_refresh_token(user: User, token: str) -> bool:
    """
    Remove one refresh token from the user's list.

    Returns True if it was listed, False otherwise.
    """
    deleted = db.session.query(RefreshToken).filter_by(
        user_id=user.id,
        token_hash=hash_token(token),
    ).delete()
    db.session.commit()
    return bool(deleted)


def revoke_all_refresh_tokens(user: User) -> int:
    """
    Remove every refresh token of the user.

    Returns count of tokens revoked.

    WHY: Security response (password change, deactivation, token reuse).
    Forces re-authentication on all devices once access tokens lapse.
    """
    deleted = db.session.query(RefreshToken).filter_by(user_id=user.id).delete()
    db.session.commit()
    return deleted


def cleanup_expired_refresh_tokens() -> int:
    """
    Delete refresh-token rows past their expiry.

    Returns count of rows deleted. Run periodically (see the
    `maintenance cleanup-refresh-tokens` CLI command).
    """
    deleted = db.session.query(RefreshToken).filter(
        RefreshToken.expires_at < utcnow()
    ).delete()
    db.session.commit()
    return deleted


def password_changed_after(user: User, issued_at: float) -> bool:
    if not user.password_changed_at:
        return False
    return to_epoch(user.password_changed_at) > float(issued_at)


def authenticate_access_token(token: str) -> tuple[User, dict]:
    """
    Resolve an access token to the current user.

    Returns (user, claims).

    Rejects with:
    - InvalidToken / TokenExpired: bad token
    - InvalidToken: user no longer exists
    - AccountDeactivated: user is inactive
    - AccountLocked: user is currently locked out
    - TokenStale: password changed after issuance, or role changed
    """
    claims = verify_access(token)

    user = db.session.get(User, claims["id"])
    if not user:
        raise InvalidToken("The user belonging to this token no longer exists.")
    if not user.is_active:
        raise AccountDeactivated()
    if user.is_locked:
        raise AccountLocked()
    if password_changed_after(user, claims["iat"]):
        raise TokenStale("User recently changed password! Please log in again.")
    if claims.get("role") != user.role:
        raise TokenStale("Your role has changed. Please log in again.")

    return user, claims
