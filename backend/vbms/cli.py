# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/vbms/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--business "Demo Pizza"] [--code DEMO]
#   Idempotent bootstrap: creates tables, a default business, and a main admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Business management (MULTI-TENANT):
# - python -m flask businesses list [--all]
#   List businesses (use --all to include inactive).
# - python -m flask businesses create --name "Demo Pizza" --code "DEMO"
#   Create a new business (tenant).
#
# User bootstrap:
# - python -m flask users create --business-id 1 --username owner --email owner@vbms.local --role admin
#   Create a user (prompts if options are omitted).
#
# Inventory maintenance:
# - python -m flask inventory recompute [--business-id 1]
#   Re-derive available stock, margins, and alert flags (e.g. after expiration dates pass).
#
# Identifier sequences:
# - python -m flask sequences list [--type ORDER]
#   Show allocated order/call number windows.

import click
from flask.cli import with_appcontext

from .extensions import db
from .enums import UserRole
from .models import Business, User
from .services import business_service, inventory_service, sequence_service
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--business', 'business_name', default='Default Business', help='Business name')
@click.option('--code', 'business_code', default='DEFAULT', help='Business code')
@with_appcontext
def init_system(business_name, business_code):
    """
    Initialize a usable VBMS database.

    Creates:
    - All tables (no-op when they already exist)
    - Default business (if none exists)
    - Main admin: admin@vbms.local (platform-wide, no business)
    """
    click.echo("START Initializing VBMS...")
    db.create_all()

    business = db.session.query(Business).order_by(Business.id.asc()).first()
    if not business:
        business = business_service.create_business(business_name, business_code)
        click.echo(f"PASS Created default business: {business.name} (ID: {business.id}, Code: {business.code})")
    else:
        click.echo(f"PASS Using existing business: {business.name} (ID: {business.id})")

    if db.session.query(User).filter_by(email="admin@vbms.local").first():
        click.echo("WARN  User 'admin' already exists, skipping...")
    else:
        admin = business_service.create_user(
            username="admin",
            email="admin@vbms.local",
            role=UserRole.MAIN_ADMIN,
            business_id=None,
        )
        click.echo(f"PASS Created main admin: {admin.username} ({admin.email})")

    click.echo("DONE VBMS initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# BUSINESS MANAGEMENT (MULTI-TENANT)
# =============================================================================

@click.group('businesses')
def businesses_group():
    """Business (tenant) management commands."""


@businesses_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive businesses')
@with_appcontext
def list_businesses_cli(include_inactive):
    """List businesses."""
    businesses = business_service.list_businesses(include_inactive=include_inactive)
    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active'}")
    click.echo("="*70)
    for b in businesses:
        active_str = "Yes" if b.is_active else "No"
        click.echo(f"{b.id:<5} {b.name:<30} {b.code or '-':<15} {active_str}")
    click.echo("="*70 + "\n")


@businesses_group.command('create')
@click.option('--name', required=True, help='Business name')
@click.option('--code', help='Short code (unique)')
@click.option('--email', help='Contact email')
@click.option('--phone', help='Contact phone')
@with_appcontext
def create_business_cli(name, code, email, phone):
    """Create a new business."""
    try:
        business = business_service.create_business(name, code, email=email, phone=phone)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created business: {business.name} (ID: {business.id}, Code: {business.code or '-'})")


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--business-id', type=int, help='Business ID (omit for main_admin)')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--role', type=click.Choice(UserRole.values()), prompt=True, help='Role')
@with_appcontext
def create_user_cli(business_id, username, email, role):
    """Create a user."""
    if business_id is not None and not business_service.get_business(business_id):
        click.echo(f"FAIL Business ID {business_id} not found")
        return
    try:
        user = business_service.create_user(
            username=username,
            email=email,
            role=role,
            business_id=business_id,
        )
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


# =============================================================================
# INVENTORY
# =============================================================================

@click.group('inventory')
def inventory_group():
    """Inventory maintenance commands."""


@inventory_group.command('recompute')
@click.option('--business-id', type=int, help='Limit to one business')
@with_appcontext
def recompute_inventory_cli(business_id):
    """Re-derive stock, margin, and alert fields for stored items."""
    count = inventory_service.recompute_all(business_id=business_id)
    click.echo(f"PASS Recomputed {count} inventory item(s)")


# =============================================================================
# SEQUENCES
# =============================================================================

@click.group('sequences')
def sequences_group():
    """Identifier sequence inspection."""


@sequences_group.command('list')
@click.option('--type', 'document_type', type=click.Choice(['ORDER', 'CALL']), help='Filter by sequence type')
@with_appcontext
def list_sequences_cli(document_type):
    """List order/call number sequences."""
    sequences = sequence_service.list_sequences(document_type=document_type)
    if not sequences:
        click.echo("No sequences allocated yet.")
        return

    click.echo(f"{'Type':<8} {'Window':<12} {'Next'}")
    for seq in sequences:
        click.echo(f"{seq.document_type:<8} {seq.window_key:<12} {seq.next_number}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(businesses_group)  # Multi-tenant business management
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sequences_group)
