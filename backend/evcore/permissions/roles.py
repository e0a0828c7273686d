# Overview: Canonical role enumeration and privileged roles.


class Role:
    """The four platform roles. This is the only role vocabulary the API accepts."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    EMPLOYEE = "employee"
    PILOT = "pilot"


ALL_ROLES = (Role.SUPER_ADMIN, Role.ADMIN, Role.EMPLOYEE, Role.PILOT)

# Roles that bypass the role-permission table entirely.
PRIVILEGED_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN})

DEFAULT_ROLE = Role.EMPLOYEE
