# Overview: Flask CLI command groups for bootstrap, demo data and user management.

# backend/hydropak/cli.py
# Commands Legend (run from the repository root):
# - flask --app hydropak system init
#   Create tables and the default admin (SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD).
# - flask --app hydropak system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app hydropak system seed-demo
#   Admin, a sample customer and two products.
# - flask --app hydropak users create --email a@b.pk --name "Ali" --password secret1 --role STAFF
# - flask --app hydropak users list

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Customer, Product, USER_ROLES
from .services.auth_service import create_user, ensure_seed_admin
from .services.products_service import create_product
from .validation import ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables and seed the default admin if there are no users. Idempotent."""
    click.echo("BUILD  Creating tables...")
    db.create_all()

    admin = ensure_seed_admin()
    if admin:
        click.echo(f"PASS Created admin: {admin.email}")
        click.echo("SECURITY Change SEED_ADMIN_PASSWORD in production!")
    else:
        click.echo("PASS Users already exist, no admin seeded")


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

    click.echo("PASS Database reset complete. Run 'flask --app hydropak system init' to initialize.")


DEMO_PRODUCTS = [
    {
        "sku": "HP-19L", "name": "19L Bottle", "brand": "HydroPak", "size_liters": 19,
        "type": "BOTTLE", "category": "Bottles", "cost_price_cents": 15000,
        "sale_price_cents": 25000, "stock": 120, "low_stock_level": 20,
    },
    {
        "sku": "HP-1.5L-6", "name": "1.5L Pack of 6", "brand": "HydroPak", "size_liters": 1.5,
        "type": "PACK", "category": "Packs", "cost_price_cents": 30000,
        "sale_price_cents": 48000, "stock": 60, "low_stock_level": 10,
    },
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Admin, a sample customer and two products. Skips rows that already exist."""
    db.create_all()
    ensure_seed_admin()

    if db.session.query(Customer).first() is None:
        db.session.add(Customer(
            name="Ahmed Traders", phone="+92 300 1234567", address="12 Mall Road",
            city="Lahore", status="ACTIVE", rating=4,
        ))
        db.session.commit()
        click.echo("PASS Created demo customer")

    for row in DEMO_PRODUCTS:
        try:
            create_product(patch=dict(row))
            click.echo(f"PASS Created product {row['sku']}")
        except ConflictError:
            click.echo(f"WARN  Product {row['sku']} already exists, skipping...")

    click.echo("DONE Demo data ready")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(USER_ROLES), case_sensitive=False), default='ADMIN', help='Role')
@with_appcontext
def create_user_cli(email, name, password, role):
    """Create a user; the password is hashed with bcrypt."""
    try:
        user = create_user(email=email, name=name, password=password, role=role)
        db.session.commit()
    except (ConflictError, ValueError) as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.email} with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<20} {'Role'}")
    click.echo("="*70)
    for u in users:
        click.echo(f"{u.id:<5} {u.email:<35} {(u.name or '-'):<20} {u.role}")
    click.echo("="*70 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
