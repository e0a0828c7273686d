"""
Pytest fixtures for EVCORE backend tests.

Provides test database setup, user factories, and test client.
"""

import itertools

import pytest
from evcore import create_app
from evcore.extensions import db
from evcore.permissions import Role
from evcore.services import permission_service
from evcore.services.auth_service import create_user


DEFAULT_PASSWORD = "Password123!"

_mobile_numbers = itertools.count(1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'APP_ENV': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        # Fast hashing for tests
        'BCRYPT_ROUNDS': 4,
        'JWT_SECRET': 'test-access-secret',
        'JWT_REFRESH_SECRET': 'test-refresh-secret',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def setup_permissions(db_session):
    """Default RolePermission rows for every role."""
    permission_service.initialize_role_permissions()
    db_session.commit()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user(role="employee", email=None, password=DEFAULT_PASSWORD, **extra)."""
    def _make_user(role=Role.EMPLOYEE, email=None, password=DEFAULT_PASSWORD, **extra):
        n = next(_mobile_numbers)
        return create_user(
            full_name=extra.pop("full_name", f"Test {role.title()} {n}"),
            email=email or f"{role}{n}@evcore.test",
            mobile_number=extra.pop("mobile_number", f"9{n:09d}"),
            password=password,
            role=role,
            **extra,
        )
    return _make_user


@pytest.fixture(scope='function')
def super_admin(make_user):
    return make_user(Role.SUPER_ADMIN, email="superadmin@evcore.test")


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(Role.ADMIN, email="admin@evcore.test")


@pytest.fixture(scope='function')
def employee(make_user):
    return make_user(Role.EMPLOYEE, email="employee@evcore.test")


@pytest.fixture(scope='function')
def pilot(make_user):
    return make_user(Role.PILOT, email="pilot@evcore.test")


def _login(client, email: str, password: str = DEFAULT_PASSWORD):
    return client.post('/api/auth/login', json={'email': email, 'password': password})


def get_auth_token(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
    """Helper to get an access token for a user."""
    response = _login(client, email, password)
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def get_token_pair(client, email: str, password: str = DEFAULT_PASSWORD) -> tuple[str, str]:
    response = _login(client, email, password)
    assert response.status_code == 200, response.json
    data = response.json['data']
    return data['token'], data['refreshToken']


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def super_admin_headers(client, super_admin):
    return auth_headers(get_auth_token(client, super_admin.email))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email))


@pytest.fixture(scope='function')
def employee_headers(client, employee):
    return auth_headers(get_auth_token(client, employee.email))


@pytest.fixture(scope='function')
def pilot_headers(client, pilot):
    return auth_headers(get_auth_token(client, pilot.email))


@pytest.fixture(scope='function')
def login(client):
    """login(email, password=DEFAULT_PASSWORD) -> response."""
    def _do_login(email, password=DEFAULT_PASSWORD):
        return _login(client, email, password)
    return _do_login


@pytest.fixture(scope='function')
def token_pair(client):
    """token_pair(email, password=DEFAULT_PASSWORD) -> (access_token, refresh_token)."""
    def _token_pair(email, password=DEFAULT_PASSWORD):
        return get_token_pair(client, email, password)
    return _token_pair


@pytest.fixture(scope='function')
def headers_for(client):
    """headers_for(email, password=DEFAULT_PASSWORD) -> Authorization headers."""
    def _headers_for(email, password=DEFAULT_PASSWORD):
        return auth_headers(get_auth_token(client, email, password))
    return _headers_for
