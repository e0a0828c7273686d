# Overview: Module names and action vocabulary for the role-permission table.


class Module:
    """Platform modules gated by the role-permission table."""
    # Core platform modules
    VEHICLE_DEPLOYMENT = "vehicle_deployment"
    SMART_BOOKINGS = "smart_bookings"
    DATA_HUB = "data_hub"
    DRIVER_ONBOARDING = "driver_onboarding"
    TRIP_ANALYTICS = "trip_analytics"
    ENERGY_MANAGEMENT = "energy_management"
    # Administrative modules
    AUDIT_LOGS = "audit_logs"
    ADMIN_SETTINGS = "admin_settings"
    # Legacy modules
    DASHBOARD = "dashboard"
    DATABASE_MANAGEMENT = "database_management"
    SMART_WIDGETS = "smart_widgets"
    GLOBAL_REPORTS = "global_reports"
    LANGUAGE_SETTINGS = "language_settings"


ALL_MODULES = (
    Module.VEHICLE_DEPLOYMENT,
    Module.SMART_BOOKINGS,
    Module.DATA_HUB,
    Module.DRIVER_ONBOARDING,
    Module.TRIP_ANALYTICS,
    Module.ENERGY_MANAGEMENT,
    Module.AUDIT_LOGS,
    Module.ADMIN_SETTINGS,
    Module.DASHBOARD,
    Module.DATABASE_MANAGEMENT,
    Module.SMART_WIDGETS,
    Module.GLOBAL_REPORTS,
    Module.LANGUAGE_SETTINGS,
)


class Action:
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    IMPORT = "import"


ALL_ACTIONS = (
    Action.CREATE,
    Action.READ,
    Action.UPDATE,
    Action.DELETE,
    Action.EXPORT,
    Action.IMPORT,
)
