# EVCORE Client Test Suite - Shared Configuration and Fixtures
#
# This module provides:
# - An in-process EVCORE API (Flask app over httpx.WSGITransport)
# - Offline and scripted transports (httpx.MockTransport)
# - Client, session and storage fixtures

import httpx
import pytest

from evcore import create_app
from evcore.extensions import db
from evcore.permissions import Role
from evcore.services import permission_service
from evcore.services.auth_service import create_user

from evcore_client import ApiClient, AuthApi, AuthSession, ClientConfig, MemoryStorage


PASSWORD = "Password123!"
BASE_URL = "http://evcore.test"

SERVER_USERS = {
    Role.SUPER_ADMIN: ("superadmin@evcore.test", "9100000001"),
    Role.ADMIN: ("admin@evcore.test", "9100000002"),
    Role.EMPLOYEE: ("employee@evcore.test", "9100000003"),
    Role.PILOT: ("pilot@evcore.test", "9100000004"),
}


# =============================================================================
# SERVER
# =============================================================================

@pytest.fixture(scope="session")
def server_app():
    app = create_app({
        "TESTING": True,
        "APP_ENV": "test",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "BCRYPT_ROUNDS": 4,
        "JWT_SECRET": "client-test-access-secret",
        "JWT_REFRESH_SECRET": "client-test-refresh-secret",
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture
def server(server_app):
    """Fresh database with default permissions and one user per role."""
    with server_app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        permission_service.initialize_role_permissions()
        for role, (email, mobile) in SERVER_USERS.items():
            create_user(
                full_name=f"Client {role.replace('_', ' ').title()}",
                email=email,
                mobile_number=mobile,
                password=PASSWORD,
                role=role,
            )

        yield server_app

        db.session.rollback()


# =============================================================================
# CLIENT
# =============================================================================

@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def session_storage():
    return MemoryStorage()


@pytest.fixture
def navigated():
    return []


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def make_session(storage, session_storage, navigated, notifications):
    """make_session(transport, environment="development") -> AuthSession"""
    clients = []

    def _make_session(transport, environment="development"):
        config = ClientConfig(api_base_url=BASE_URL, environment=environment, request_timeout=5)
        client = ApiClient(config, storage=storage, session_storage=session_storage, transport=transport)
        clients.append(client)
        return AuthSession(
            AuthApi(client),
            navigate=navigated.append,
            notify=lambda title, message: notifications.append((title, message)),
        )

    yield _make_session

    for client in clients:
        client.close()


@pytest.fixture
def live_session(server, make_session):
    """AuthSession talking to the in-process Flask app."""
    return make_session(httpx.WSGITransport(app=server))


def _refuse(request):
    raise httpx.ConnectError("Connection refused", request=request)


@pytest.fixture
def offline_session(make_session):
    """AuthSession whose API is unreachable."""
    return make_session(httpx.MockTransport(_refuse))


@pytest.fixture
def live_login(live_session):
    """live_login(role) -> logged-in AuthSession for the server user of that role."""
    def _live_login(role):
        email, _mobile = SERVER_USERS[role]
        assert live_session.login(email, PASSWORD)
        return live_session
    return _live_login
