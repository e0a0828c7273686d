"""
AdminSettings editor tests.

Verifies:
- committed reflects the server after load and after accepted edits
- A rejected edit discards the pending state and re-fetches
"""

import httpx
import pytest

from evcore_client import ApiError, AdminSettings


@pytest.fixture
def editor(live_login):
    settings = AdminSettings(live_login("super_admin").api)
    settings.load()
    return settings


class TestLoad:

    def test_load_all_roles(self, editor):
        assert set(editor.committed) == {"super_admin", "admin", "employee", "pilot"}
        assert editor.committed["pilot"]["trip_analytics"] == {"enabled": True, "permissions": ["read", "export"]}
        assert editor.pending is None

    def test_admin_cannot_load(self, live_login):
        settings = AdminSettings(live_login("admin").api)

        with pytest.raises(ApiError) as excinfo:
            settings.load()
        assert excinfo.value.status_code == 403


class TestUpdateModulePermission:

    def test_accepted_change_is_committed(self, editor):
        assert editor.update_module_permission("pilot", "vehicle_deployment", True, ["read"])

        assert editor.pending is None
        assert editor.committed["pilot"]["vehicle_deployment"] == {"enabled": True, "permissions": ["read"]}
        server = editor.api.get_role_permissions("pilot")
        assert server["modules"]["vehicle_deployment"] == {"enabled": True, "permissions": ["read"]}

    def test_omitted_permissions_are_kept(self, editor):
        assert editor.update_module_permission("employee", "trip_analytics", False)

        assert editor.committed["employee"]["trip_analytics"] == {
            "enabled": False,
            "permissions": ["read", "export"],
        }

    def test_rejected_change_refetches(self, editor):
        before = editor.committed

        assert not editor.update_module_permission("pilot", "teleporter", True, ["read"])

        assert editor.pending is None
        assert isinstance(editor.last_error, ApiError)
        assert editor.last_error.status_code == 400
        assert "teleporter" not in editor.state["pilot"]
        assert editor.committed == before

    def test_network_failure_refetches_canonical_state(self, make_session, storage):
        canonical = {"pilot": {"role": "pilot", "modules": {"dashboard": {"enabled": True, "permissions": ["read"]}}}}

        def handler(request):
            if request.method == "PATCH":
                raise httpx.ConnectError("Connection reset", request=request)
            return httpx.Response(200, json={"success": True, "data": {"permissions": canonical, "totalRoles": 1}})

        storage.set("authToken", "token")
        settings = AdminSettings(make_session(httpx.MockTransport(handler)).api)
        settings.committed = {"pilot": {"dashboard": {"enabled": False, "permissions": []}}}

        assert not settings.update_module_permission("pilot", "dashboard", False, [])

        assert settings.pending is None
        assert settings.committed == {"pilot": {"dashboard": {"enabled": True, "permissions": ["read"]}}}


class TestReplaceAndReset:

    def test_replace_role_modules(self, editor):
        modules = [{"name": "dashboard", "enabled": True, "permissions": ["read"]}]

        assert editor.replace_role_modules("pilot", modules)
        assert editor.committed["pilot"] == {"dashboard": {"enabled": True, "permissions": ["read"]}}

    def test_rejected_replace_keeps_server_state(self, editor):
        before = editor.committed["pilot"]

        assert not editor.replace_role_modules("pilot", [{"name": "dashboard", "enabled": "yes", "permissions": []}])
        assert editor.committed["pilot"] == before

    def test_reset_role(self, editor):
        editor.replace_role_modules("employee", [])
        assert editor.committed["employee"] == {}

        assert editor.reset_role("employee")
        assert editor.committed["employee"]["trip_analytics"] == {"enabled": True, "permissions": ["read", "export"]}
