# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockpile/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create missing tables (no migrations needed for a local SQLite file).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Sample data:
# - python -m flask seed [--force]
#   Load the sample dataset and the demo users (manager@example.com, staff@example.com).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and status.
# - python -m flask users create --name "Jane" --email jane@example.com --password "12345678" --role manager
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired and revoked sessions older than 30 days.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import ROLES
from .services import auth_service, seed_service, session_service
from .services.auth_service import PasswordValidationError, UserValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create every table that does not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask seed' to load sample data.")


@click.command('seed')
@click.option('--force', is_flag=True, help='Reseed even if the store is already seeded')
@with_appcontext
def seed_command(force):
    """Load the sample dataset and provision the demo users."""
    result = seed_service.seed_database(force=force)
    if result.get("message"):
        click.echo(f"WARN  {result['message']} (use --force to reseed)")
        return

    password = current_app.config["SEED_DEFAULT_PASSWORD"]
    click.echo(f"PASS Seeded {result['count']} keys.")
    click.echo("\nDemo Credentials (CHANGE IN PRODUCTION!):")
    for seed_user in seed_service.SEED_USERS:
        click.echo(f"   {seed_user['role']:<8} -> {seed_user['email']:<22} / {password}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and status."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<38} {'Name':<20} {'Email':<30} {'Role':<8} {'Status'}")
    click.echo("="*100)

    for user in users:
        click.echo(f"{user.id:<38} {user.name:<20} {user.email:<30} {user.role:<8} {user.status}")

    click.echo("="*100 + "\n")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """
    Create a new user interactively.

    Password must be at least 8 characters.
    """
    try:
        user = auth_service.create_user(name=name, email=email, password=password, role=role)
        click.echo(f"PASS Created user: {user.email} with role '{user.role}' (ID: {user.id})")
    except (PasswordValidationError, UserValidationError) as e:
        click.echo(f"FAIL {str(e)}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired and revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(seed_command)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
