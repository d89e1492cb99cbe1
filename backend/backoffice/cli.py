# Overview: Flask CLI command groups for bootstrap, users and pricing maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --username admin --email admin@example.local --password "Password123!"
#   Create a back-office user (prompts if options are omitted).
# - python -m flask users list
#   List all users with active status.
#
# Pricing:
# - python -m flask pricing recalculate --user-id 1
#   Re-derive suggested prices for every active product.
# - python -m flask pricing mispriced --threshold 20 --limit 20
#   List products whose final prices drift from their suggested prices.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import create_user
from .services.cost_service import recalculate_all_product_prices
from .services.products_service import find_mispriced_products
from .validation import ServiceError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(username, email, password):
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
        user = create_user(username=username, email=email, password=password)
    except ServiceError as e:
        db.session.rollback()
        raise click.ClickException(f"Failed to create user: {e}")

    click.echo(f"PASS Created user: {user.username} ({user.email}) with ID {user.id}")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8}")
    click.echo("="*70)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8}")

    click.echo("="*70 + "\n")


@click.group('pricing')
def pricing_group():
    """Product pricing maintenance."""


@pricing_group.command('recalculate')
@click.option('--user-id', type=int, required=True, help='Acting user ID')
@with_appcontext
def recalculate_prices_cli(user_id):
    """Re-derive suggested prices for every active product."""
    user = db.session.get(User, user_id)
    if user is None:
        raise click.ClickException(f"User ID {user_id} not found")

    result = recalculate_all_product_prices(user.id)

    click.echo(
        f"PASS Processed {result.total_products} products: "
        f"{result.updated_products} updated, {result.skipped_products} unchanged, "
        f"{result.failed_products} failed"
    )
    if result.failed_product_codes:
        click.echo(f"FAIL Failed product codes: {', '.join(result.failed_product_codes)}")


@pricing_group.command('mispriced')
@click.option('--threshold', default=None, help='Percent difference that flags a product')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def mispriced_cli(threshold, limit):
    """List products whose final prices drift from their suggested prices."""
    try:
        items = find_mispriced_products(threshold=threshold, limit=limit)
    except ServiceError as e:
        raise click.ClickException(str(e))

    if not items:
        click.echo("No mispriced products.")
        return

    for item in items:
        click.echo(
            f"{item['code']:<12} {item['name']:<30} "
            f"retail {item['retail_difference_percentage']:>8}%  "
            f"wholesale {item['wholesale_difference_percentage']:>8}%  {item['issue_type']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(pricing_group)
