# Overview: Flask CLI command groups for bootstrap, inspection, and ledger maintenance.

# backend/dealership/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-username admin] [--admin-password "Password123"]
#   Idempotent bootstrap: main warehouse, showroom warehouse, super admin user.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username clerk --email clerk@dealer.local --password "Password123" --role showroom_user --warehouse-id 2
#
# Warehouses:
# - python -m flask warehouses list [--all]
#
# Agent ledger:
# - python -m flask ledger verify [--agent-id 3]
#   Re-walk ledgers; exits non-zero when any issue is found.
# - python -m flask ledger repair --agent-id 3 --yes
#   Reset an agent's cached balance to its ledger balance.
#
# Maintenance:
# - python -m flask sessions cleanup
#   Delete session tokens past their absolute timeout.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Warehouse
from .models.auth import ROLE_SUPER_ADMIN, USER_ROLES, ROLE_AGENT
from .models.warehouses import WAREHOUSE_TYPE_MAIN, WAREHOUSE_TYPE_SHOWROOM
from .services.auth_service import create_user, PasswordValidationError, UserError
from .services import ledger_service, session_service
from .validation import NotFoundError


DEFAULT_WAREHOUSES = (
    ("Main warehouse", WAREHOUSE_TYPE_MAIN),
    ("Showroom", WAREHOUSE_TYPE_SHOWROOM),
)


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Super admin username')
@click.option('--admin-email', default='admin@dealer.local', help='Super admin email')
@click.option('--admin-password', default='Password123', help='Super admin password')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Create the default warehouses and a super admin account.

    Safe to run repeatedly; existing rows are left untouched.
    """
    click.echo("START Initializing dealership system...")

    for name, warehouse_type in DEFAULT_WAREHOUSES:
        existing = db.session.query(Warehouse).filter_by(name=name).first()
        if existing:
            click.echo(f"PASS Using existing warehouse: {name} (ID: {existing.id})")
            continue
        warehouse = Warehouse(name=name, type=warehouse_type)
        db.session.add(warehouse)
        db.session.commit()
        click.echo(f"PASS Created warehouse: {name} (ID: {warehouse.id}, type: {warehouse_type})")

    if db.session.query(User).filter_by(username=admin_username).first():
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
    else:
        try:
            create_user(
                username=admin_username,
                email=admin_email,
                password=admin_password,
                role=ROLE_SUPER_ADMIN,
            )
            click.echo(f"PASS Created super admin: {admin_username} ({admin_email})")
        except (PasswordValidationError, UserError) as e:
            db.session.rollback()
            raise click.ClickException(f"Failed to create super admin: {e}")

    click.echo("DONE Dealership system initialized. Change the default password in production!")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and active status."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<15} {'Warehouse':<10} {'Active':<6}")
    click.echo("-" * 60)
    for user in users:
        warehouse = str(user.warehouse_id) if user.warehouse_id else "-"
        active = "yes" if user.is_active else "no"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<15} {warehouse:<10} {active:<6}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option(
    '--role',
    type=click.Choice([r for r in USER_ROLES if r != ROLE_AGENT]),
    prompt=True,
    help='Role (agent logins are created together with the agent profile)',
)
@click.option('--warehouse-id', type=int, default=None, help='Warehouse for showroom users')
@with_appcontext
def create_user_cli(username, email, password, role, warehouse_id):
    """Create a staff user. Passwords need 8+ chars with a letter and a digit."""
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            warehouse_id=warehouse_id,
        )
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except UserError as e:
        db.session.rollback()
        raise click.ClickException(f"Failed to create user: {e}")

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@click.group('warehouses')
def warehouses_group():
    """Warehouse inspection commands."""


@warehouses_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive warehouses')
@with_appcontext
def list_warehouses_cli(include_inactive):
    query = db.session.query(Warehouse)
    if not include_inactive:
        query = query.filter(Warehouse.is_active.is_(True))
    warehouses = query.order_by(Warehouse.id).all()
    if not warehouses:
        click.echo("No warehouses found.")
        return

    for warehouse in warehouses:
        owner = f" agent={warehouse.agent_id}" if warehouse.agent_id else ""
        state = "" if warehouse.is_active else " (inactive)"
        click.echo(f"{warehouse.id:<5} {warehouse.type:<9} {warehouse.name}{owner}{state}")


@click.group('ledger')
def ledger_group():
    """Agent ledger verification and repair."""


@ledger_group.command('verify')
@click.option('--agent-id', type=int, default=None, help='Verify a single agent')
@with_appcontext
def verify_ledger_cli(agent_id):
    """Exit code 1 when any ledger has issues."""
    try:
        reports = (
            [ledger_service.verify_agent_ledger(agent_id)]
            if agent_id is not None
            else ledger_service.verify_all_ledgers()
        )
    except NotFoundError as e:
        raise click.ClickException(str(e))

    failures = 0
    for report in reports:
        if report["ok"]:
            click.echo(
                f"PASS Agent {report['agent_id']} ({report['agent_name']}): "
                f"{report['entry_count']} entries, balance {report['ledger_balance_cents']}"
            )
            continue
        failures += 1
        click.echo(f"FAIL Agent {report['agent_id']} ({report['agent_name']}):")
        for issue in report["issues"]:
            click.echo(f"     - {issue}")

    click.echo(f"\nChecked {len(reports)} ledger(s), {failures} with issues.")
    if failures:
        raise SystemExit(1)


@ledger_group.command('repair')
@click.option('--agent-id', type=int, required=True, help='Agent whose cached balance is reset')
@click.option('--yes', is_flag=True, help='Confirm the repair')
@with_appcontext
def repair_ledger_cli(agent_id, yes):
    """Reset an agent's cached balance to the ledger's final balance."""
    if not yes:
        raise click.ClickException("Refusing to repair without --yes")
    try:
        result = ledger_service.repair_agent_balance(agent_id)
    except NotFoundError as e:
        raise click.ClickException(str(e))

    if result["changed"]:
        click.echo(
            f"PASS Agent {agent_id} balance reset from "
            f"{result['previous_cached_balance_cents']} to {result['balance_cents']}"
        )
    else:
        click.echo(f"PASS Agent {agent_id} balance already matches the ledger ({result['balance_cents']})")


@click.group('sessions')
def sessions_group():
    """Session maintenance commands."""


@sessions_group.command('cleanup')
@with_appcontext
def cleanup_sessions_cli():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired session token(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(warehouses_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(sessions_group)
