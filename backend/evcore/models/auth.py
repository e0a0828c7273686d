from __future__ import annotations

from ..extensions import db
from ..permissions import DEFAULT_ROLE
from evcore.time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Users are never physically deleted; deactivation (is_active=False)
    blocks login and token verification instead.

    SECURITY STATE:
    - login_attempts / lock_until drive account lockout
    - password_changed_at invalidates access tokens issued before it
    - password_history holds the last few previous hashes (reuse check)
    - refresh tokens live in RefreshToken (one row per issued token)
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    full_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    mobile_number = db.Column(db.String(10), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)
    password_changed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    password_history = db.Column(db.JSON, nullable=False, default=list)
    is_temporary_password = db.Column(db.Boolean, nullable=False, default=False)
    must_change_password = db.Column(db.Boolean, nullable=False, default=False)

    role = db.Column(db.String(32), nullable=False, default=DEFAULT_ROLE)

    # Employee details
    employee_id = db.Column(db.String(64), nullable=True, unique=True)
    department = db.Column(db.String(50), nullable=True)
    designation = db.Column(db.String(50), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    verified = db.Column(db.Boolean, nullable=False, default=False)

    # Lockout
    login_attempts = db.Column(db.Integer, nullable=False, default=0)
    lock_until = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_locked(self) -> bool:
        return bool(self.lock_until and self.lock_until > utcnow())

    @property
    def requires_password_change(self) -> bool:
        return bool(self.is_temporary_password or self.must_change_password)

    def to_dict(self) -> dict:
        """Sanitized representation: never includes password material or tokens."""
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "mobileNumber": self.mobile_number,
            "role": self.role,
            "department": self.department,
            "designation": self.designation,
            "employeeId": self.employee_id,
            "verified": self.verified,
            "isActive": self.is_active,
            "lastLogin": to_utc_z(self.last_login_at) if self.last_login_at else None,
            "createdAt": to_utc_z(self.created_at),
            "requirePasswordChange": self.requires_password_change,
        }


class RefreshToken(db.Model):
    """
    Server-side refresh-token list.

    Each issued refresh token gets one row holding its SHA-256 hash.
    Presenting a token with no matching row is rejected even when the
    signature is valid; deleting rows is how logout and rotation revoke.
    """
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        db.Index("ix_refresh_tokens_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # SHA-256 of the token (64 hex chars). Plaintext is never stored.
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)

    user = db.relationship(
        "User",
        backref=db.backref("refresh_tokens", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
        }


class RolePermission(db.Model):
    """
    Per-role module permissions.

    One row per role. `modules` is a JSON list of
    {"name": <module>, "enabled": bool, "permissions": [<action>, ...]}.

    super_admin and admin bypass this table; every other role is denied
    any module that is not explicitly enabled here.
    """
    __tablename__ = "role_permissions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    role = db.Column(db.String(32), nullable=False, unique=True, index=True)
    modules = db.Column(db.JSON, nullable=False, default=list)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    updated_by = db.relationship("User", foreign_keys=[updated_by_user_id])

    def find_module(self, module_name: str) -> dict | None:
        for module in self.modules or []:
            if module.get("name") == module_name:
                return module
        return None

    def has_module_access(self, module_name: str) -> bool:
        module = self.find_module(module_name)
        return bool(module and module.get("enabled"))

    def has_permission(self, module_name: str, action: str) -> bool:
        module = self.find_module(module_name)
        return bool(module and module.get("enabled") and action in (module.get("permissions") or []))

    def modules_by_name(self) -> dict:
        return {
            module["name"]: {
                "enabled": bool(module.get("enabled")),
                "permissions": list(module.get("permissions") or []),
            }
            for module in self.modules or []
        }

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "modules": self.modules_by_name(),
            "lastUpdated": to_utc_z(self.updated_at),
            "lastUpdatedBy": self.updated_by_user_id,
        }
