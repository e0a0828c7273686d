"""
AuthSession tests.

Verifies:
- Stored tokens are classified and validated before granting a session
- Malformed, expired and unknown tokens are purged from both stores
- Server login first, demo fallback only outside production
- Logout is idempotent and wins over an in-flight refresh
- Permission checks prefer server-delivered modules over the fixed tables
"""

import threading
import time
from datetime import timedelta

import httpx
import pytest

from evcore.extensions import db
from evcore.models import User
from evcore.services import permission_service
from evcore.time_utils import utcnow
from evcore_client import AuthStatus, LocalFallbackToken, RealToken, classify_token, fabricate_fallback_token


PASSWORD = "Password123!"


def _stored(storage, session_storage):
    return {
        "authToken": (storage.get("authToken"), session_storage.get("authToken")),
        "refreshToken": (storage.get("refreshToken"), session_storage.get("refreshToken")),
    }


EMPTY = {"authToken": (None, None), "refreshToken": (None, None)}


def _refuse(request):
    raise httpx.ConnectError("Connection refused", request=request)


class TestInitialize:
    """Startup validation of the stored token."""

    def test_no_token(self, offline_session):
        assert offline_session.initialize() == AuthStatus.UNAUTHENTICATED
        assert offline_session.user is None

    def test_malformed_token_purges_both_stores(self, offline_session, storage, session_storage):
        storage.set("authToken", "garbage")
        storage.set("refreshToken", "also-garbage")
        session_storage.set("authToken", "garbage")
        session_storage.set("refreshToken", "also-garbage")

        assert offline_session.initialize() == AuthStatus.UNAUTHENTICATED
        assert _stored(storage, session_storage) == EMPTY

    def test_valid_fallback_token_restores_demo_user(self, offline_session, storage):
        storage.set("authToken", fabricate_fallback_token("pilot@example.com", "pilot"))

        assert offline_session.initialize() == AuthStatus.AUTHENTICATED
        assert offline_session.user == {"email": "pilot@example.com", "role": "pilot"}
        assert offline_session.is_fallback

    def test_expired_fallback_token_purged(self, offline_session, storage, session_storage):
        storage.set(
            "authToken",
            fabricate_fallback_token("admin@example.com", "admin", now=time.time() - 2 * 24 * 3600),
        )

        assert offline_session.initialize() == AuthStatus.UNAUTHENTICATED
        assert _stored(storage, session_storage) == EMPTY

    def test_fallback_token_for_unknown_user_purged(self, offline_session, storage):
        # Role does not match the demo user's role
        storage.set("authToken", fabricate_fallback_token("pilot@example.com", "super_admin"))

        assert offline_session.initialize() == AuthStatus.UNAUTHENTICATED
        assert storage.get("authToken") is None

    def test_fallback_token_rejected_in_production(self, make_session, storage):
        session = make_session(httpx.MockTransport(lambda request: httpx.Response(500)), environment="production")
        storage.set("authToken", fabricate_fallback_token("admin@example.com", "admin"))

        assert session.initialize() == AuthStatus.UNAUTHENTICATED
        assert storage.get("authToken") is None

    def test_real_token_verified_by_server(self, live_session, make_session, server, storage):
        assert live_session.login("pilot@evcore.test", PASSWORD)

        restarted = make_session(httpx.WSGITransport(app=server))
        assert restarted.initialize() == AuthStatus.AUTHENTICATED
        assert restarted.user["email"] == "pilot@evcore.test"
        assert restarted.has_permission("trip_analytics:read")

    def test_real_token_rejected_by_server_purged(self, live_session, storage, session_storage):
        assert live_session.login("pilot@evcore.test", PASSWORD)
        header, payload, _signature = storage.get("authToken").split(".")
        storage.set("authToken", f"{header}.{payload}.forged")
        storage.remove("refreshToken")

        assert live_session.initialize() == AuthStatus.UNAUTHENTICATED
        assert _stored(storage, session_storage) == EMPTY

    def test_real_token_with_server_down_purged(self, offline_session, storage):
        storage.set("authToken", "eyJhbGciOiJIUzI1NiJ9.eyJpZCI6MSwidHlwZSI6ImFjY2VzcyJ9.c2ln")

        assert offline_session.initialize() == AuthStatus.UNAUTHENTICATED
        assert storage.get("authToken") is None

    def test_verify_without_user_purged(self, make_session, storage):
        session = make_session(httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": True, "data": {}})
        ))
        storage.set("authToken", "eyJhbGciOiJIUzI1NiJ9.eyJpZCI6MSwidHlwZSI6ImFjY2VzcyJ9.c2ln")

        assert session.initialize() == AuthStatus.UNAUTHENTICATED
        assert storage.get("authToken") is None

    @pytest.mark.parametrize("data", [["oops"], "oops", None])
    def test_verify_with_non_object_data_purged(self, make_session, storage, session_storage, data):
        session = make_session(httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": True, "data": data})
        ))
        storage.set("authToken", "eyJhbGciOiJIUzI1NiJ9.eyJpZCI6MSwidHlwZSI6ImFjY2VzcyJ9.c2ln")
        storage.set("refreshToken", "refresh")

        assert session.initialize() == AuthStatus.UNAUTHENTICATED
        assert _stored(storage, session_storage) == EMPTY

    def test_unexpected_error_during_validation_purged(self, make_session, storage):
        def explode(request):
            raise RuntimeError("broken response handler")

        session = make_session(httpx.MockTransport(explode))
        storage.set("authToken", "eyJhbGciOiJIUzI1NiJ9.eyJpZCI6MSwidHlwZSI6ImFjY2VzcyJ9.c2ln")

        assert session.initialize() == AuthStatus.UNAUTHENTICATED
        assert not session.is_loading
        assert storage.get("authToken") is None


class TestLogin:

    def test_server_login_stores_pair(self, live_session, storage, notifications):
        assert live_session.login("employee@evcore.test", PASSWORD)

        assert isinstance(classify_token(storage.get("authToken")), RealToken)
        assert storage.get("refreshToken")
        assert live_session.status == AuthStatus.AUTHENTICATED
        assert not live_session.is_fallback
        assert notifications[-1][0] == "Welcome back!"

    def test_fallback_login_when_server_unreachable(self, offline_session, storage):
        before = time.time()

        assert offline_session.login("admin@example.com", "admin123")

        token = classify_token(storage.get("authToken"))
        assert isinstance(token, LocalFallbackToken)
        assert token.role == "admin"
        assert before + 24 * 3600 - 1 <= token.exp <= time.time() + 24 * 3600
        assert storage.get("refreshToken") is None
        assert offline_session.has_role("admin")
        assert offline_session.is_fallback

    def test_non_object_login_data_falls_back_to_demo(self, make_session, storage):
        session = make_session(httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": True, "data": "oops"})
        ))

        assert session.login("admin@example.com", "admin123")
        assert isinstance(classify_token(storage.get("authToken")), LocalFallbackToken)
        assert session.is_fallback

    def test_fallback_disabled_in_production(self, make_session, storage, notifications):
        session = make_session(
            httpx.MockTransport(_refuse),
            environment="production",
        )

        assert not session.login("admin@example.com", "admin123")
        assert storage.get("authToken") is None
        assert notifications[-1][0] == "Login Failed"

    def test_bad_credentials_do_not_touch_state(self, offline_session, storage):
        storage.set("authToken", "existing.token.value")

        assert not offline_session.login("admin@example.com", "wrong")
        assert storage.get("authToken") == "existing.token.value"
        assert offline_session.user is None

    def test_wrong_password_against_server(self, live_session, storage, notifications):
        assert not live_session.login("employee@evcore.test", "WrongPassword1!")
        assert storage.get("authToken") is None
        assert notifications[-1] == (
            "Login Failed",
            "Incorrect credentials or insufficient permissions. Please try again.",
        )

    def test_locked_account_gets_distinct_message(self, live_session, notifications):
        user = db.session.query(User).filter_by(email="employee@evcore.test").one()
        user.lock_until = utcnow() + timedelta(minutes=30)
        db.session.commit()

        assert not live_session.login("employee@evcore.test", PASSWORD)
        assert notifications[-1][0] == "Account Locked"

    def test_deactivated_account_gets_distinct_message(self, live_session, notifications):
        user = db.session.query(User).filter_by(email="employee@evcore.test").one()
        user.is_active = False
        db.session.commit()

        assert not live_session.login("employee@evcore.test", PASSWORD)
        assert notifications[-1][0] == "Account Deactivated"


class TestLogout:

    def test_double_logout_is_safe(self, live_session, storage, session_storage, navigated, notifications):
        assert live_session.login("employee@evcore.test", PASSWORD)

        live_session.logout()
        live_session.logout()

        assert _stored(storage, session_storage) == EMPTY
        assert live_session.status == AuthStatus.UNAUTHENTICATED
        assert navigated == ["/login", "/login"]
        assert [title for title, _ in notifications].count("Logged Out") == 1

    def test_logout_revokes_refresh_token_on_server(self, live_session, storage):
        assert live_session.login("employee@evcore.test", PASSWORD)
        refresh_token = storage.get("refreshToken")

        live_session.logout()

        storage.set("refreshToken", refresh_token)
        assert not live_session.refresh()

    def test_logout_clears_session_storage_duplicates(self, offline_session, storage, session_storage):
        assert offline_session.login("employee@example.com", "employee123")
        session_storage.set("authToken", storage.get("authToken"))
        session_storage.set("refreshToken", "stale")

        offline_session.logout()

        assert _stored(storage, session_storage) == EMPTY

    def test_logout_with_server_down(self, offline_session, storage, navigated):
        storage.set("authToken", "eyJhbGciOiJIUzI1NiJ9.eyJpZCI6MSwidHlwZSI6ImFjY2VzcyJ9.c2ln")

        offline_session.logout()

        assert storage.get("authToken") is None
        assert navigated == ["/login"]


class TestRefresh:

    def test_refresh_rotates_pair(self, live_session, storage):
        assert live_session.login("employee@evcore.test", PASSWORD)
        old_refresh = storage.get("refreshToken")

        assert live_session.refresh()
        assert storage.get("refreshToken") != old_refresh

    def test_rejected_refresh_ends_session(self, live_session, storage, session_storage):
        assert live_session.login("employee@evcore.test", PASSWORD)
        storage.set("refreshToken", "not-a-refresh-token")

        assert not live_session.refresh()
        assert _stored(storage, session_storage) == EMPTY
        assert live_session.user is None

    def test_unauthorized_request_refreshes_and_retries(self, make_session, storage):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            if request.url.path == "/api/auth/refresh":
                return httpx.Response(200, json={"success": True, "data": {"token": "new", "refreshToken": "r2"}})
            if request.headers.get("Authorization") == "Bearer new":
                return httpx.Response(200, json={"success": True, "data": {"user": {"id": 1}}})
            return httpx.Response(401, json={"success": False, "error": "TOKEN_EXPIRED"})

        session = make_session(httpx.MockTransport(handler))
        storage.set("authToken", "old")
        storage.set("refreshToken", "r1")

        assert session.api.me() == {"user": {"id": 1}}
        assert calls == ["/api/auth/me", "/api/auth/refresh", "/api/auth/me"]
        assert storage.get("refreshToken") == "r2"

    def test_concurrent_unauthorized_requests_share_one_refresh(self, make_session, storage):
        refreshes = []
        barrier = threading.Barrier(2, timeout=5)

        def handler(request):
            if request.url.path == "/api/auth/refresh":
                refreshes.append(1)
                return httpx.Response(200, json={"success": True, "data": {"token": "new", "refreshToken": "r2"}})
            if request.headers.get("Authorization") == "Bearer new":
                return httpx.Response(200, json={"success": True, "data": {"ok": True}})
            barrier.wait()
            return httpx.Response(401, json={"success": False, "error": "TOKEN_EXPIRED"})

        session = make_session(httpx.MockTransport(handler))
        storage.set("authToken", "old")
        storage.set("refreshToken", "r1")

        results = []
        threads = [threading.Thread(target=lambda: results.append(session.api.me())) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert results == [{"ok": True}, {"ok": True}]
        assert len(refreshes) == 1

    def test_logout_during_refresh_wins(self, make_session, storage, session_storage):
        holder = {}

        def handler(request):
            if request.url.path == "/api/auth/refresh":
                # The user logs out while the refresh is on the wire
                holder["session"].logout()
                return httpx.Response(200, json={"success": True, "data": {"token": "new", "refreshToken": "r2"}})
            return httpx.Response(200, json={"success": True, "data": {}})

        session = make_session(httpx.MockTransport(handler))
        holder["session"] = session
        storage.set("authToken", "eyJhbGciOiJIUzI1NiJ9.eyJpZCI6MSwidHlwZSI6ImFjY2VzcyJ9.c2ln")
        storage.set("refreshToken", "r1")

        assert not session.refresh()
        assert _stored(storage, session_storage) == EMPTY
        assert session.status == AuthStatus.UNAUTHENTICATED


class TestPermissionChecks:

    @pytest.mark.parametrize(
        "email,password,expected",
        [
            ("pilot@example.com", "pilot123", False),
            ("employee@example.com", "employee123", True),
            ("admin@example.com", "admin123", True),
        ],
    )
    def test_fixed_table_database_management(self, offline_session, email, password, expected):
        assert offline_session.login(email, password)
        assert offline_session.can_access_feature("database-management") is expected

    def test_fixed_table_pilot_features(self, offline_session):
        assert offline_session.login("pilot@example.com", "pilot123")

        assert offline_session.can_access_feature("charging-tracker")
        assert not offline_session.can_access_feature("reports")
        assert not offline_session.has_permission("trip_analytics")

    def test_server_modules_are_authoritative(self, live_login):
        session = live_login("employee")

        # Employee default row disables database_management
        assert not session.can_access_feature("database-management")
        assert session.can_access_feature("trip-details")
        # attendance has no server module; the fixed table applies
        assert session.can_access_feature("attendance")

    def test_has_permission_from_server_modules(self, live_login):
        session = live_login("pilot")

        assert session.has_permission("trip_analytics")
        assert session.has_permission("trip_analytics:export")
        assert not session.has_permission("trip_analytics:delete")
        assert not session.has_permission("data_hub")

    def test_privileged_roles_always_allowed(self, live_login):
        session = live_login("admin")

        assert session.has_permission("audit_logs:delete")
        assert session.can_access_feature("anything")

    def test_sync_picks_up_permission_changes(self, live_login):
        session = live_login("pilot")
        assert not session.can_access_feature("vehicle-deployment")

        permission_service.update_module_access("pilot", "vehicle_deployment", True, ["read"], None)

        assert session.sync_permissions()
        assert session.can_access_feature("vehicle-deployment")

    def test_anonymous(self, offline_session):
        assert not offline_session.has_role("admin")
        assert not offline_session.has_permission("dashboard")
        assert not offline_session.can_access_feature("reports")


class TestPasswordChange:

    def test_change_password_over_the_api(self, live_login, storage):
        session = live_login("employee")

        data = session.api.change_password(PASSWORD, "NewPassword456!", "NewPassword456!")

        assert data["token"]
        assert data["refreshToken"]
        session.api.client.store_tokens(data["token"], data["refreshToken"])
        assert session.initialize() == AuthStatus.AUTHENTICATED

    def test_first_login_password_change_over_the_api(self, live_session, server):
        user = db.session.query(User).filter_by(email="pilot@evcore.test").one()
        user.must_change_password = True
        db.session.commit()
        assert live_session.login("pilot@evcore.test", PASSWORD)

        data = live_session.api.first_login_password_change("FirstLogin789!", "FirstLogin789!")

        assert data["user"]["requirePasswordChange"] is False
