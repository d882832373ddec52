# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/taller/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and one default user per area.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--area corte]
# - python -m flask users create --username ana --name "Ana" --area corte --password "Password123!"
#
# Repositions:
# - python -m flask repositions next-folio
#   Show the folio the next reposition will receive (allocates nothing).
#
# Ledger:
# - python -m flask ledger check
#   Verify every order's piece ledger sums to its total.

import click
from flask import current_app
from flask.cli import with_appcontext

from .enums import Area, enum_values
from .errors import ValidationError
from .extensions import db
from .models import User
from .services import auth_service, ledger_service, sequence_service


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and one default user per area.

    Usernames match area names; admin also gets can_approve_completion.
    All passwords default to "Password123!".

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing taller...")
    db.create_all()
    click.echo("PASS Tables ready")

    click.echo("\nUSERS Creating default users...")
    for area in Area:
        username = area.value
        if db.session.query(User.id).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            auth_service.create_user(
                username=username,
                password=DEFAULT_PASSWORD,
                name=area.value.capitalize(),
                area=area,
                can_approve_completion=area is Area.ADMIN,
            )
            db.session.commit()
            click.echo(f"PASS Created user: {username} (area {area.value})")
        except ValidationError as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create user '{username}': {e}")

    click.echo("\n" + "=" * 60)
    click.echo("DONE taller initialized")
    click.echo("=" * 60)
    click.echo(f"\nDefault password for every user (CHANGE IN PRODUCTION!): {DEFAULT_PASSWORD}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    current_app.logger.warning("Database reset from CLI")
    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--area', type=click.Choice(enum_values(Area)), help='Filter by area')
@with_appcontext
def list_users(area):
    """List all users with their area and flags."""
    users = auth_service.list_users(area=area)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Area':<12} {'Active':<8} {'Approver'}")
    click.echo("=" * 80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        approver_str = "Yes" if user.can_approve_completion else "No"
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.name:<25} {user.area.value:<12} {active_str:<8} {approver_str}"
        )


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--name', prompt=True)
@click.option('--area', type=click.Choice(enum_values(Area)), prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--can-approve-completion', is_flag=True, help='Receive reposition completion requests')
@with_appcontext
def create_user_cmd(username, name, area, password, can_approve_completion):
    """Create a user."""
    try:
        user = auth_service.create_user(
            username=username,
            password=password,
            name=name,
            area=area,
            can_approve_completion=can_approve_completion,
        )
        db.session.commit()
    except ValidationError as e:
        db.session.rollback()
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, area {user.area.value})")


@click.group('repositions')
def repositions_group():
    """Reposition helpers."""


@repositions_group.command('next-folio')
@with_appcontext
def next_folio():
    """Show the next reposition folio for the current month."""
    click.echo(sequence_service.peek_next_reposition_folio())


@click.group('ledger')
def ledger_group():
    """Piece ledger checks."""


@ledger_group.command('check')
@with_appcontext
def check_ledger():
    """Verify piece conservation for every order. Exits non-zero on violations."""
    violations = ledger_service.find_conservation_violations()
    if not violations:
        click.echo("PASS Every order's ledger matches its total")
        return

    for v in violations:
        click.echo(
            f"FAIL Order {v['folio']} (ID: {v['order_id']}): ledger holds {v['held']}, expected {v['expected']}"
        )
    current_app.logger.error("Piece ledger check found %d violations", len(violations))
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(repositions_group)
    app.cli.add_command(ledger_group)
