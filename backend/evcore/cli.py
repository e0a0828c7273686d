# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/evcore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Full idempotent bootstrap: role permission defaults and one user per role.
# - python -m flask system init-permissions
#   Create missing RolePermission rows from the defaults only.
#
# User inspection/bootstrap:
# - python -m flask users list [--role employee]
#   List users with role and active status.
# - python -m flask users create --full-name "Ops Admin" --email ops@evcore.local --mobile 9876543210 --role admin
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-refresh-tokens
#   Delete refresh tokens past their expiry.

import click
from flask.cli import with_appcontext

from .errors import AuthError
from .extensions import db
from .models import User
from .permissions import ALL_ROLES, Role
from .services import permission_service, token_service
from .services.auth_service import create_user


# Default password meets requirements:
# - Minimum 8 characters
# - Uppercase, lowercase, digit, special char
DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("Super Admin", "superadmin@evcore.local", "9000000001", Role.SUPER_ADMIN),
    ("Admin", "admin@evcore.local", "9000000002", Role.ADMIN),
    ("Employee", "employee@evcore.local", "9000000003", Role.EMPLOYEE),
    ("Pilot", "pilot@evcore.local", "9000000004", Role.PILOT),
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize EVCORE: role permissions and one default user per role.

    Creates:
    - RolePermission rows for super_admin, admin, employee, pilot
    - Users: superadmin@evcore.local, admin@evcore.local,
      employee@evcore.local, pilot@evcore.local
    - All passwords default to: "Password123!" and must be changed on first login

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing EVCORE auth...")

    created = permission_service.initialize_role_permissions()
    click.echo(f"PASS Role permissions initialized ({created} created)")

    click.echo("\nUSERS Creating default users...")
    for full_name, email, mobile_number, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            create_user(
                full_name=full_name,
                email=email,
                mobile_number=mobile_number,
                password=DEFAULT_PASSWORD,
                role=role,
                must_change_password=True,
            )
            click.echo(f"PASS Created user: {email} with role '{role}'")
        except AuthError as e:
            click.echo(f"FAIL Failed to create user '{email}': {e.message}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE EVCORE Initialized Successfully!")
    click.echo("=" * 60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for _full_name, email, _mobile, _role in DEFAULT_USERS:
        click.echo(f"   {email:<26} / {DEFAULT_PASSWORD}")
    click.echo("")


@system_group.command('init-permissions')
@with_appcontext
def init_permissions():
    """Create RolePermission rows from the defaults for roles that lack one."""
    created = permission_service.initialize_role_permissions()
    click.echo(f"PASS Created {created} role permission rows")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--mobile', 'mobile_number', prompt=True, help='10-digit mobile number')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ALL_ROLES), prompt=True, help='Role')
@click.option('--must-change-password', is_flag=True, help='Force a password change on first login')
@with_appcontext
def create_user_cli(full_name, email, mobile_number, password, role, must_change_password):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            full_name=full_name,
            email=email,
            mobile_number=mobile_number,
            password=password,
            role=role,
            must_change_password=must_change_password,
        )
    except AuthError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@click.option('--role', type=click.Choice(ALL_ROLES), default=None, help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<30} {'Role':<12} {'Active':<8} {'Locked'}")
    click.echo("=" * 90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        locked_str = "Yes" if user.is_locked else "No"
        click.echo(f"{user.id:<5} {user.full_name[:20]:<20} {user.email:<30} {user.role:<12} {active_str:<8} {locked_str}")

    click.echo("=" * 90 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Periodic cleanup commands."""


@maintenance_group.command('cleanup-refresh-tokens')
@with_appcontext
def cleanup_refresh_tokens_cli():
    """Delete refresh tokens past their expiry."""
    deleted = token_service.cleanup_expired_refresh_tokens()
    click.echo(f"Deleted {deleted} expired refresh tokens.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
