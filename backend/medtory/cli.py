# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/medtory/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask db upgrade
#   Apply migrations (Flask-Migrate).
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: owner account plus a few starter categories and suppliers.
# - python -m flask system reset-db --yes [--seed]
#   DEV/TEST only: drop and recreate all tables, optionally re-running init.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all employees with position and status.
# - python -m flask users create --username jdoe --name "Jane Doe" --email jane@example.com --position Cashier
#   Create an active employee directly (prompts for the password).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired or revoked sessions older than 30 days.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Employee, ProductCategory, Supplier
from .permissions import Position
from .services.auth_service import PasswordValidationError
from .services.session_service import cleanup_expired_sessions
from .services.user_service import UserError, create_employee


DEFAULT_CATEGORIES = ("Analgesics", "Antibiotics", "Vitamins & Supplements", "Personal Care")
DEFAULT_SUPPLIERS = (
    ("Unilab Distribution", "orders@unilab.example"),
    ("Generic Pharma Supply", "sales@genericpharma.example"),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='owner', help='Owner username')
@click.option('--email', default='owner@medtory.local', help='Owner contact email')
@click.option('--password', default='Password123!', help='Owner password')
@with_appcontext
def init_system(username, email, password):
    """
    Initialize MedTory: the Owner account and starter catalog data.

    Safe to run again; existing rows are left alone.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing MedTory...")

    owner = db.session.query(Employee).filter_by(position=Position.OWNER.value).first()
    if owner:
        click.echo(f"WARN  Owner account already exists ({owner.username}), skipping...")
    else:
        try:
            owner = create_employee(
                username=username,
                password=password,
                employee_name="System Owner",
                position=Position.OWNER,
                contact_info=email,
            )
            click.echo(f"PASS Created owner: {owner.username} ({owner.contact_info})")
        except (PasswordValidationError, UserError) as e:
            click.echo(f"FAIL Failed to create owner '{username}': {str(e)}")
            return

    for name in DEFAULT_CATEGORIES:
        if db.session.query(ProductCategory).filter_by(category_name=name).first():
            continue
        db.session.add(ProductCategory(category_name=name, is_active=True))
        click.echo(f"PASS Created category: {name}")

    for name, contact in DEFAULT_SUPPLIERS:
        if db.session.query(Supplier).filter_by(name=name).first():
            continue
        db.session.add(Supplier(name=name, contact_info=contact))
        click.echo(f"PASS Created supplier: {name}")

    db.session.commit()

    click.echo("\n" + "="*60)
    click.echo("DONE MedTory Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nSECURITY WARNING:")
    click.echo("   - Change the owner password immediately in production!")
    click.echo("   - Password requirements: 8+ chars, uppercase, lowercase, digit, special char")
    click.echo("")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@click.option('--seed', is_flag=True, help='Run `system init` afterwards')
@click.pass_context
@with_appcontext
def reset_db(ctx, yes, seed):
    """
    DEV/TEST only: drop every MedTory table and recreate the schema.

    Sales history, stock batches, employees and open sessions (with their
    carts) are all lost. Use `flask db upgrade` for real deployments.
    """
    if not yes:
        click.confirm(f"WARN Wipe {db.engine.url.render_as_string(hide_password=True)}?", abort=True)

    tables = len(db.metadata.sorted_tables)
    db.drop_all()
    db.create_all()
    click.echo(f"PASS Recreated {tables} tables.")

    if seed:
        ctx.invoke(init_system)
    else:
        click.echo("Next: python -m flask system init")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Login name (no spaces)')
@click.option('--name', 'employee_name', prompt=True, help='Full name shown on receipts and logs')
@click.option('--email', prompt=True, help='Contact email for reset links')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--position', type=click.Choice([p.value for p in Position]), prompt=True, help='Position')
@with_appcontext
def create_user_cli(username, employee_name, email, password, position):
    """
    Create an active employee directly, skipping the emailed invitation.

    Useful for a second owner or a recovery account when SMTP is not set up.
    The password is checked with the same strength rule as the reset flow.
    """
    try:
        employee = create_employee(
            username=username,
            password=password,
            employee_name=employee_name,
            position=position,
            contact_info=email,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Weak password: {e}")
        return
    except UserError as e:
        click.echo(f"FAIL Could not create {username}: {e}")
        return

    click.echo(f"PASS Created user: {employee.username} ({employee.contact_info}) as {employee.position}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all employees with position and status."""
    employees = db.session.query(Employee).order_by(Employee.id.asc()).all()

    if not employees:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Position':<10} {'Status':<10} {'Contact'}")
    click.echo("="*100)

    for employee in employees:
        if employee.is_pending:
            status = "Pending"
        else:
            status = "Active" if employee.is_active else "Inactive"
        click.echo(
            f"{employee.id:<5} {employee.username:<20} {employee.employee_name:<25} "
            f"{employee.position:<10} {status:<10} {employee.contact_info}"
        )

    click.echo("="*100 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired or revoked sessions older than 30 days."""
    deleted = cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
