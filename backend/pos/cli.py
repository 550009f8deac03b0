# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and the default admin, manager and cashier accounts (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username admin --full-name "Admin" --password "Password123!" --role ADMIN
#
# Products:
# - python -m flask products low-stock --threshold 5

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER
from .services.auth_service import create_user
from .services.products_service import list_low_stock
from .validation import ConflictError, ValidationError

DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create all tables and the default users.

    Safe to run more than once: existing usernames are skipped.
    """
    click.echo("START Initializing POS database...")
    db.create_all()

    defaults = [
        ("admin", "Administrator", "admin@pos.local", ROLE_ADMIN),
        ("manager", "Store Manager", "manager@pos.local", ROLE_MANAGER),
        ("cashier", "Cashier", "cashier@pos.local", ROLE_CASHIER),
    ]
    for username, full_name, email, role in defaults:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        create_user(username, DEFAULT_PASSWORD, full_name, email=email, role=role)
        click.echo(f"PASS Created user: {username} ({role})")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for username, _, _, _ in defaults:
        click.echo(f"   {username:<8} / {DEFAULT_PASSWORD}")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to create users.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), default=ROLE_CASHIER, show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, full_name, email, password, role):
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
        user = create_user(username, password, full_name, email=email, role=role)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email or '-':<30} {active_str:<8} {user.role}")


@click.group('products')
def products_group():
    """Catalog inspection commands."""


@products_group.command('low-stock')
@click.option('--threshold', type=int, default=5, show_default=True, help='Report products at or below this quantity')
@with_appcontext
def low_stock(threshold):
    """List active products whose stock is at or below the threshold."""
    products = list_low_stock(threshold)

    if not products:
        click.echo(f"No products at or below {threshold} units.")
        return

    click.echo(f"{'ID':<5} {'SKU':<20} {'Name':<40} {'Stock'}")
    for product in products:
        click.echo(f"{product.id:<5} {product.sku:<20} {product.name:<40} {product.stock_quantity}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
