# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- The last PASSWORD_HISTORY_SIZE hashes cannot be reused
- Tokens managed separately (see token_service.py)
- Lockout managed separately (see login_throttle_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..errors import (
    AccountDeactivated,
    AccountLocked,
    DuplicateUser,
    Forbidden,
    InvalidCredentials,
    InvalidCurrentPassword,
    NotFound,
    PasswordMismatch,
    PasswordReused,
    ValidationFailed,
)
from ..extensions import db
from ..models import User
from ..permissions import DEFAULT_ROLE, PRIVILEGED_ROLES, Role, is_valid_role
from ..validation import (
    DEPARTMENT_MAX_LEN,
    DESIGNATION_MAX_LEN,
    normalize_email,
    normalize_full_name,
    normalize_mobile,
    normalize_optional_text,
)
from . import login_throttle_service, permission_service, token_service
from evcore.time_utils import utcnow


PASSWORD_HISTORY_SIZE = 5

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


class PasswordValidationError(ValidationFailed):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(_password_bytes(password), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    bcrypt.checkpw() is timing-safe.
    """
    if not isinstance(password, str) or not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def is_password_reused(user: User, password: str) -> bool:
    """True if password matches the current hash or any hash in history."""
    if verify_password(password, user.password_hash):
        return True
    return any(verify_password(password, old_hash) for old_hash in user.password_history or [])


def _set_password(user: User, new_password: str) -> None:
    """Hash and store a new password, pushing the old hash into history."""
    new_hash = hash_password(new_password)

    history = list(user.password_history or [])
    if user.password_hash:
        history.append(user.password_hash)
    user.password_history = history[-PASSWORD_HISTORY_SIZE:]

    user.password_hash = new_hash
    user.password_changed_at = utcnow()
    user.is_temporary_password = False
    user.must_change_password = False


def _check_unique(email: str | None = None, mobile_number: str | None = None,
                  employee_id: str | None = None, exclude_user_id: int | None = None) -> None:
    query = db.session.query(User)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)

    conditions = []
    if email:
        conditions.append(User.email == email)
    if mobile_number:
        conditions.append(User.mobile_number == mobile_number)
    if conditions and query.filter(db.or_(*conditions)).first():
        raise DuplicateUser()

    if employee_id and query.filter(User.employee_id == employee_id).first():
        raise DuplicateUser("Employee ID already exists")


def create_user(
    full_name: str,
    email: str,
    mobile_number: str,
    password: str,
    role: str = DEFAULT_ROLE,
    department: str | None = None,
    designation: str | None = None,
    employee_id: str | None = None,
    must_change_password: bool = False,
    created_by_user_id: int | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Ensures a RolePermission row exists for the role (defaults if absent).

    Raises:
        ValidationFailed: malformed fields, weak password or unknown role
        DuplicateUser: email, mobile number or employee ID already taken
    """
    full_name = normalize_full_name(full_name)
    email = normalize_email(email)
    mobile_number = normalize_mobile(mobile_number)
    department = normalize_optional_text(department, "Department", DEPARTMENT_MAX_LEN)
    designation = normalize_optional_text(designation, "Designation", DESIGNATION_MAX_LEN)
    employee_id = normalize_optional_text(employee_id, "Employee ID", 64)

    if not is_valid_role(role):
        raise ValidationFailed(f"Invalid role: {role}")

    _check_unique(email=email, mobile_number=mobile_number, employee_id=employee_id)

    now = utcnow()
    user = User(
        full_name=full_name,
        email=email,
        mobile_number=mobile_number,
        password_hash=hash_password(password),
        password_changed_at=now,
        password_history=[],
        role=role,
        department=department,
        designation=designation,
        employee_id=employee_id,
        is_temporary_password=must_change_password,
        must_change_password=must_change_password,
        created_at=now,
        updated_at=now,
    )

    db.session.add(user)
    db.session.commit()

    permission_service.ensure_role_permission(role, created_by_user_id=created_by_user_id or user.id)
    return user


def register_user(data: dict, actor: User | None = None, production: bool = False,
                  ip_address: str | None = None, user_agent: str | None = None) -> User:
    """
    Register a user from a request payload.

    Production posture: self-registration is disabled; only an
    authenticated super_admin may create users. In any posture, only a
    super_admin may create admin or super_admin accounts.
    """
    is_super_admin = actor is not None and actor.role == Role.SUPER_ADMIN

    if production and not is_super_admin:
        raise Forbidden("Only super admin can register new users")

    role = data.get("role") or DEFAULT_ROLE
    if not is_valid_role(role):
        raise ValidationFailed(f"Invalid role: {role}")
    if role in PRIVILEGED_ROLES and not is_super_admin:
        raise Forbidden("Only super admin can create admin accounts")

    password = data.get("password")
    password_confirm = data.get("passwordConfirm")
    if not password:
        raise ValidationFailed("Password is required")
    if password != password_confirm:
        raise PasswordMismatch("Passwords do not match")

    user = create_user(
        full_name=data.get("fullName"),
        email=data.get("email"),
        mobile_number=data.get("mobileNumber"),
        password=password,
        role=role,
        department=data.get("department"),
        designation=data.get("designation"),
        employee_id=data.get("employeeId"),
        must_change_password=bool(data.get("mustChangePassword")) and is_super_admin,
        created_by_user_id=actor.id if actor else None,
    )

    permission_service.log_security_event(
        user_id=user.id,
        event_type="USER_REGISTERED",
        success=True,
        resource="/api/auth/register",
        action=role,
        reason=f"Created by user {actor.id}" if actor else "Self-registration",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return user


def authenticate(
    identifier: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User:
    """
    Authenticate user by email or mobile number and password.

    Returns the User on success (attempt counter cleared, last_login_at set).

    Raises:
        ValidationFailed: identifier or password missing
        InvalidCredentials: unknown identifier or wrong password
        AccountLocked: lock_until is in the future (regardless of password)
        AccountDeactivated: is_active is False
    """
    if not identifier or not password:
        raise ValidationFailed("Please provide email and password")

    user = login_throttle_service.find_user_by_identifier(identifier)
    if not user:
        login_throttle_service.record_unknown_identifier(identifier, ip_address, user_agent)
        raise InvalidCredentials()

    locked, seconds_remaining = login_throttle_service.is_account_locked(user)
    if locked:
        raise AccountLocked(
            "Account temporarily locked due to too many failed login attempts. Please try again later.",
            seconds_until_unlock=seconds_remaining,
        )

    if not user.is_active:
        raise AccountDeactivated()

    if not verify_password(password, user.password_hash):
        login_throttle_service.record_failed_attempt(user, identifier, ip_address, user_agent)
        raise InvalidCredentials()

    login_throttle_service.record_successful_login(user, identifier, ip_address, user_agent)
    return user


def _all_strings(*values) -> bool:
    return all(value is None or isinstance(value, str) for value in values)


def change_password(
    user: User,
    current_password: str | None,
    new_password: str | None,
    confirm_password: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User:
    """
    Change password for an authenticated user.

    The current password is not required while the account carries a
    temporary or must-change password. All refresh tokens are revoked.
    """
    if not new_password or not confirm_password or (not current_password and not user.requires_password_change):
        raise ValidationFailed("Please provide current password, new password, and confirm password")

    if not _all_strings(new_password, confirm_password, current_password):
        raise ValidationFailed("Passwords must be strings")

    if new_password != confirm_password:
        raise PasswordMismatch()

    if not user.requires_password_change and not verify_password(current_password, user.password_hash):
        raise InvalidCurrentPassword()

    if is_password_reused(user, new_password):
        raise PasswordReused()

    _set_password(user, new_password)
    db.session.commit()

    token_service.revoke_all_refresh_tokens(user)
    permission_service.log_security_event(
        user_id=user.id,
        event_type="PASSWORD_CHANGED",
        success=True,
        resource="/api/auth/change-password",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return user


def first_login_password_change(
    user: User,
    new_password: str | None,
    confirm_password: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User:
    """Set a permanent password on an account flagged temporary/must-change."""
    if not new_password or not confirm_password:
        raise ValidationFailed("Please provide new password and confirm password")

    if not _all_strings(new_password, confirm_password):
        raise ValidationFailed("Passwords must be strings")

    if new_password != confirm_password:
        raise PasswordMismatch()

    if not user.requires_password_change:
        raise ValidationFailed("Password change not required for this account")

    if is_password_reused(user, new_password):
        raise PasswordReused()

    _set_password(user, new_password)
    db.session.commit()

    token_service.revoke_all_refresh_tokens(user)
    permission_service.log_security_event(
        user_id=user.id,
        event_type="PASSWORD_CHANGED",
        success=True,
        resource="/api/auth/first-login-password-change",
        reason="First login",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return user


PROFILE_FIELDS = ("fullName", "mobileNumber", "department", "designation")


def update_profile(user: User, data: dict) -> User:
    """
    Update the caller's own profile.

    Only fullName, mobileNumber, department and designation are accepted;
    other keys are ignored.
    """
    if "fullName" in data:
        user.full_name = normalize_full_name(data["fullName"])

    if "mobileNumber" in data:
        mobile_number = normalize_mobile(data["mobileNumber"])
        _check_unique(mobile_number=mobile_number, exclude_user_id=user.id)
        user.mobile_number = mobile_number

    if "department" in data:
        user.department = normalize_optional_text(data["department"], "Department", DEPARTMENT_MAX_LEN)

    if "designation" in data:
        user.designation = normalize_optional_text(data["designation"], "Designation", DESIGNATION_MAX_LEN)

    db.session.commit()
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def set_user_active(actor: User, user_id: int, active: bool,
                    ip_address: str | None = None, user_agent: str | None = None) -> User:
    """
    Activate or deactivate an account.

    Deactivation revokes every refresh token; existing access tokens are
    rejected on their next use because verification checks is_active.
    """
    if not isinstance(active, bool):
        raise ValidationFailed("active must be a boolean")

    user = get_user(user_id)
    if user.id == actor.id and not active:
        raise ValidationFailed("You cannot deactivate your own account")

    user.is_active = active
    db.session.commit()

    if not active:
        token_service.revoke_all_refresh_tokens(user)

    permission_service.log_security_event(
        user_id=actor.id,
        event_type="USER_STATUS_CHANGED",
        success=True,
        resource=f"/api/admin-settings/users/{user.id}/status",
        action="activate" if active else "deactivate",
        reason=f"User {user.id} {'activated' if active else 'deactivated'}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return user


def set_user_role(actor: User, user_id: int, role: str,
                  ip_address: str | None = None, user_agent: str | None = None) -> User:
    """
    Change a user's role.

    Access tokens issued under the old role become stale.
    """
    if not is_valid_role(role):
        raise ValidationFailed(f"Invalid role: {role}")

    user = get_user(user_id)
    if user.id == actor.id:
        raise ValidationFailed("You cannot change your own role")

    previous = user.role
    user.role = role
    db.session.commit()

    permission_service.ensure_role_permission(role, created_by_user_id=actor.id)
    permission_service.log_security_event(
        user_id=actor.id,
        event_type="USER_ROLE_CHANGED",
        success=True,
        resource=f"/api/admin-settings/users/{user.id}/role",
        action=role,
        reason=f"User {user.id}: {previous} -> {role}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return user


def list_users(role: str | None = None, include_inactive: bool = True) -> list[User]:
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.id).all()
