from .auth import User, RefreshToken, RolePermission
from .security import SecurityEvent

__all__ = ["User", "RefreshToken", "RolePermission", "SecurityEvent"]
