"""
Module permission enforcement tests.

Verifies:
- admin and super_admin bypass the role-permission table
- Other roles need an enabled module (and action) in their row
- A missing row denies everything
- Denials are written to the security audit log
"""

import pytest

from evcore.models import RolePermission, SecurityEvent
from evcore.permissions import Action, Module, Role
from evcore.services import permission_service


class TestUserCanAccessModule:
    """permission_service.user_can_access_module"""

    @pytest.mark.parametrize("role", [Role.SUPER_ADMIN, Role.ADMIN])
    def test_privileged_roles_bypass(self, make_user, role):
        user = make_user(role)
        # audit_logs is disabled in the admin default table
        assert permission_service.user_can_access_module(user, Module.AUDIT_LOGS, Action.DELETE)
        assert permission_service.user_can_access_module(user, "anything_at_all")

    def test_enabled_module(self, pilot):
        assert permission_service.user_can_access_module(pilot, Module.TRIP_ANALYTICS)
        assert permission_service.user_can_access_module(pilot, Module.TRIP_ANALYTICS, Action.READ)

    def test_action_not_granted(self, pilot):
        assert not permission_service.user_can_access_module(pilot, Module.TRIP_ANALYTICS, Action.DELETE)

    def test_disabled_module(self, employee):
        assert not permission_service.user_can_access_module(employee, Module.DATABASE_MANAGEMENT)

    def test_disabled_module_denies_listed_actions(self, pilot, db_session):
        permission_service.update_module_access(Role.PILOT, Module.TRIP_ANALYTICS, False, None, None)

        assert not permission_service.user_can_access_module(pilot, Module.TRIP_ANALYTICS, Action.READ)

    def test_missing_row_denies(self, pilot, db_session):
        db_session.query(RolePermission).filter_by(role=Role.PILOT).delete()
        db_session.commit()

        assert not permission_service.user_can_access_module(pilot, Module.TRIP_ANALYTICS)

    def test_anonymous_denied(self, db_session):
        assert not permission_service.user_can_access_module(None, Module.DASHBOARD)


class TestEnsureRolePermission:
    """Role permission rows are created from defaults once."""

    def test_initialize_is_idempotent(self, db_session):
        assert permission_service.initialize_role_permissions() == 4
        assert permission_service.initialize_role_permissions() == 0
        assert db_session.query(RolePermission).count() == 4

    def test_first_user_of_role_seeds_row(self, make_user, db_session):
        assert db_session.query(RolePermission).filter_by(role=Role.PILOT).count() == 0
        make_user(Role.PILOT)
        make_user(Role.PILOT)
        assert db_session.query(RolePermission).filter_by(role=Role.PILOT).count() == 1


class TestAuditLogRoute:
    """GET /api/audit-logs is gated by audit_logs:read."""

    def test_pilot_denied_and_logged(self, client, pilot_headers, pilot, db_session):
        resp = client.get("/api/audit-logs", headers=pilot_headers)

        assert resp.status_code == 403
        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == pilot.id
        assert event.action == "audit_logs:read"
        assert event.resource == "/api/audit-logs"

    def test_admin_bypasses(self, client, admin_headers):
        resp = client.get("/api/audit-logs", headers=admin_headers)
        assert resp.status_code == 200

    def test_super_admin_sees_events(self, client, super_admin_headers, login, employee):
        login(employee.email, "WrongPassword1!")

        resp = client.get("/api/audit-logs?event_type=LOGIN_FAILED", headers=super_admin_headers)

        assert resp.status_code == 200
        events = resp.json["data"]["events"]
        assert len(events) == 1
        assert events[0]["user_id"] == employee.id

    def test_granted_module_allows_employee(self, client, employee_headers, db_session):
        permission_service.update_module_access(Role.EMPLOYEE, Module.AUDIT_LOGS, True, [Action.READ], None)

        resp = client.get("/api/audit-logs", headers=employee_headers)
        assert resp.status_code == 200

    def test_bad_limit(self, client, super_admin_headers):
        resp = client.get("/api/audit-logs?limit=abc", headers=super_admin_headers)
        assert resp.status_code == 400

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/audit-logs").status_code == 401


class TestHealth:
    """GET /health"""

    def test_degraded_without_permissions(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"

    def test_healthy_after_init(self, client, setup_permissions):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
