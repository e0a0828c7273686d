# Overview: Default module permissions seeded for each role.
# Each module entry is: (module, enabled, actions)

from .modules import Module as M, Action as A
from .roles import Role

_ALL = (A.CREATE, A.READ, A.UPDATE, A.DELETE, A.EXPORT, A.IMPORT)
_NO_IMPORT = (A.CREATE, A.READ, A.UPDATE, A.DELETE, A.EXPORT)
_NONE = ()


# -- SUPER ADMIN: full access --

SUPER_ADMIN_MODULES = [
    (M.VEHICLE_DEPLOYMENT, True, _ALL),
    (M.SMART_BOOKINGS, True, _ALL),
    (M.DATA_HUB, True, _ALL),
    (M.DRIVER_ONBOARDING, True, _ALL),
    (M.TRIP_ANALYTICS, True, _ALL),
    (M.ENERGY_MANAGEMENT, True, _ALL),
    (M.AUDIT_LOGS, True, (A.READ, A.EXPORT)),
    (M.ADMIN_SETTINGS, True, (A.CREATE, A.READ, A.UPDATE, A.DELETE)),
    (M.DASHBOARD, True, _ALL),
    (M.DATABASE_MANAGEMENT, True, _ALL),
    (M.SMART_WIDGETS, True, _ALL),
    (M.GLOBAL_REPORTS, True, _ALL),
    (M.LANGUAGE_SETTINGS, True, (A.READ, A.UPDATE)),
]


# -- ADMIN: all core modules, no audit logs --

ADMIN_MODULES = [
    (M.VEHICLE_DEPLOYMENT, True, _NO_IMPORT),
    (M.SMART_BOOKINGS, True, _NO_IMPORT),
    (M.DATA_HUB, True, _NO_IMPORT),
    (M.DRIVER_ONBOARDING, True, _NO_IMPORT),
    (M.TRIP_ANALYTICS, True, _NO_IMPORT),
    (M.ENERGY_MANAGEMENT, True, _NO_IMPORT),
    (M.AUDIT_LOGS, False, _NONE),
    (M.ADMIN_SETTINGS, True, (A.CREATE, A.READ, A.UPDATE)),
    (M.DASHBOARD, True, (A.READ,)),
    (M.DATABASE_MANAGEMENT, True, (A.CREATE, A.READ, A.UPDATE, A.EXPORT)),
    (M.SMART_WIDGETS, True, (A.READ,)),
    (M.GLOBAL_REPORTS, True, (A.READ, A.EXPORT)),
    (M.LANGUAGE_SETTINGS, True, (A.READ, A.UPDATE)),
]


# -- EMPLOYEE: five of six core modules --

EMPLOYEE_MODULES = [
    (M.VEHICLE_DEPLOYMENT, True, (A.CREATE, A.READ, A.UPDATE, A.EXPORT)),
    (M.SMART_BOOKINGS, True, (A.CREATE, A.READ, A.UPDATE, A.EXPORT)),
    (M.DATA_HUB, False, _NONE),
    (M.DRIVER_ONBOARDING, True, (A.CREATE, A.READ, A.UPDATE, A.EXPORT)),
    (M.TRIP_ANALYTICS, True, (A.READ, A.EXPORT)),
    (M.ENERGY_MANAGEMENT, True, (A.CREATE, A.READ, A.UPDATE, A.EXPORT)),
    (M.AUDIT_LOGS, False, _NONE),
    (M.ADMIN_SETTINGS, False, _NONE),
    (M.DASHBOARD, True, (A.READ,)),
    (M.DATABASE_MANAGEMENT, False, _NONE),
    (M.SMART_WIDGETS, False, _NONE),
    (M.GLOBAL_REPORTS, False, _NONE),
    (M.LANGUAGE_SETTINGS, True, (A.READ,)),
]


# -- PILOT: trip analytics and energy management only --

PILOT_MODULES = [
    (M.VEHICLE_DEPLOYMENT, False, _NONE),
    (M.SMART_BOOKINGS, False, _NONE),
    (M.DATA_HUB, False, _NONE),
    (M.DRIVER_ONBOARDING, False, _NONE),
    (M.TRIP_ANALYTICS, True, (A.READ, A.EXPORT)),
    (M.ENERGY_MANAGEMENT, True, (A.READ, A.EXPORT)),
    (M.AUDIT_LOGS, False, _NONE),
    (M.ADMIN_SETTINGS, False, _NONE),
    (M.DASHBOARD, True, (A.READ,)),
    (M.DATABASE_MANAGEMENT, False, _NONE),
    (M.SMART_WIDGETS, False, _NONE),
    (M.GLOBAL_REPORTS, False, _NONE),
    (M.LANGUAGE_SETTINGS, True, (A.READ,)),
]


DEFAULT_ROLE_PERMISSIONS = {
    Role.SUPER_ADMIN: SUPER_ADMIN_MODULES,
    Role.ADMIN: ADMIN_MODULES,
    Role.EMPLOYEE: EMPLOYEE_MODULES,
    Role.PILOT: PILOT_MODULES,
}
