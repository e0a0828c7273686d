# Overview: Client-side role, feature and action tables.

"""
Feature tables used when the server has not delivered module permissions.

Server-delivered modules (from login/verify) are authoritative; these tables
are only the default for sessions without them, e.g. local demo sessions.
"""

SUPER_ADMIN = "super_admin"
ADMIN = "admin"
EMPLOYEE = "employee"
PILOT = "pilot"

PRIVILEGED_ROLES = frozenset({SUPER_ADMIN, ADMIN})

ROLE_LEVELS = {
    SUPER_ADMIN: 10,
    ADMIN: 9,
    EMPLOYEE: 5,
    PILOT: 3,
}

FEATURES = (
    "vehicle-deployment",
    "database-management",
    "driver-induction",
    "trip-details",
    "offline-bookings",
    "charging-tracker",
    "attendance",
    "reports",
)

ACTIONS = ("view", "create", "edit", "delete", "export")

# Feature id -> server module name. attendance has no server module.
FEATURE_MODULES = {
    "vehicle-deployment": "vehicle_deployment",
    "database-management": "database_management",
    "driver-induction": "driver_onboarding",
    "trip-details": "trip_analytics",
    "offline-bookings": "smart_bookings",
    "charging-tracker": "energy_management",
    "reports": "global_reports",
}

# Client action -> server action
ACTION_PERMISSIONS = {
    "view": "read",
    "create": "create",
    "edit": "update",
    "delete": "delete",
    "export": "export",
}

ROLE_FEATURES = {
    EMPLOYEE: frozenset(FEATURES),
    PILOT: frozenset({"vehicle-deployment", "trip-details", "charging-tracker"}),
}

ROLE_FEATURE_ACTIONS = {
    EMPLOYEE: {
        "vehicle-deployment": ("view", "create", "edit", "export"),
        "database-management": ("view", "edit", "export"),
        "driver-induction": ("view", "create", "edit", "export"),
        "trip-details": ("view", "edit", "export"),
        "offline-bookings": ("view", "create", "edit", "delete", "export"),
        "charging-tracker": ("view", "edit", "export"),
        "attendance": ("view", "edit", "export"),
        "reports": ("view", "export"),
    },
    PILOT: {
        "vehicle-deployment": ("view",),
        "trip-details": ("view",),
        "charging-tracker": ("view",),
    },
}
