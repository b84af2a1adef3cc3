# Overview: Flask CLI command groups for bootstrap, account maintenance, and inspection.

# backend/ackit/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and seed a demo fleet (superadmin, admin, manager, organization, venue, devices).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask superadmins create --name Root --email root@ackit.local --password "Password123"
# - python -m flask admins create --name "Fleet Owner" --email owner@ackit.local --password "Password123"
# - python -m flask admins list
# - python -m flask admins suspend 1 --reason "Unpaid invoice"
# - python -m flask admins resume 1
# - python -m flask admins reset-password 1 --password "NewPassword123"
# - python -m flask managers create --admin-id 1 --name "Site Lead" --email lead@ackit.local --password "Password123"
# - python -m flask managers list [--admin-id 1]
#
# Maintenance / inspection:
# - python -m flask tokens sweep
#   Delete expired token-store records now (the background sweeper does this every 5 minutes).
# - python -m flask locks list [--admin-id 1] [--active-only]
#   Show the lock ledger.

import click
from flask.cli import with_appcontext

from .errors import AckitError
from .extensions import db, token_stores
from .models import Admin, Device, LockRecord, Manager, Organization, SuperAdmin, Venue
from .services import auth_service, suspension_service


DEMO_PASSWORD = "Password123"


def _fail(exc: AckitError):
    raise click.ClickException(exc.message)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and seed a demo fleet (idempotent).

    Creates:
    - Superadmin root@ackit.local
    - Admin owner@ackit.local
    - Manager lead@ackit.local (assigned to the demo organization)
    - Organization "Demo Organization" with venue "Main Hall" and two devices
    - All passwords default to: "Password123"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing ACKit...")
    db.create_all()

    superadmin = db.session.query(SuperAdmin).filter_by(email="root@ackit.local").first()
    if not superadmin:
        superadmin = auth_service.create_superadmin("Root", "root@ackit.local", DEMO_PASSWORD)
        click.echo(f"PASS Created superadmin: {superadmin.email}")

    admin = db.session.query(Admin).filter_by(email="owner@ackit.local").first()
    if not admin:
        admin = auth_service.create_admin("Fleet Owner", "owner@ackit.local", DEMO_PASSWORD)
        click.echo(f"PASS Created admin: {admin.email} (ID: {admin.id})")

    manager = db.session.query(Manager).filter_by(email="lead@ackit.local").first()
    if not manager:
        manager = auth_service.create_manager(admin.id, "Site Lead", "lead@ackit.local", DEMO_PASSWORD)
        click.echo(f"PASS Created manager: {manager.email} (ID: {manager.id})")

    org = db.session.query(Organization).filter_by(admin_id=admin.id).first()
    if not org:
        org = Organization(name="Demo Organization", batch_number="DEMO-001", admin_id=admin.id, manager_id=manager.id)
        db.session.add(org)
        db.session.flush()
        venue = Venue(name="Main Hall", organization_id=org.id, admin_id=admin.id)
        db.session.add(venue)
        db.session.flush()
        db.session.add_all([
            Device(name="Main Hall AC 1", serial_number="DEMO-AC-0001", venue_id=venue.id, temperature=24, is_on=True),
            Device(name="Main Hall AC 2", serial_number="DEMO-AC-0002", venue_id=venue.id, temperature=22, is_on=False),
        ])
        db.session.commit()
        click.echo(f"PASS Created organization {org.name} with venue {venue.name} and 2 devices")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    click.echo(f"\nDONE Demo accounts use password \"{DEMO_PASSWORD}\"")


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
    token_stores.clear()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed demo data.")


@click.group('superadmins')
def superadmins_group():
    """Superadmin accounts."""


@superadmins_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_superadmin(name, email, password):
    try:
        superadmin = auth_service.create_superadmin(name, email, password)
    except AckitError as exc:
        _fail(exc)
    click.echo(f"PASS Created superadmin {superadmin.email} (ID: {superadmin.id})")


@click.group('admins')
def admins_group():
    """Admin accounts and suspension."""


@admins_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_admin(name, email, password):
    try:
        admin = auth_service.create_admin(name, email, password)
    except AckitError as exc:
        _fail(exc)
    click.echo(f"PASS Created admin {admin.email} (ID: {admin.id})")


@admins_group.command('list')
@with_appcontext
def list_admins():
    admins = db.session.query(Admin).order_by(Admin.id).all()
    if not admins:
        click.echo("No admins found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Status'}")
    click.echo("=" * 80)
    for admin in admins:
        click.echo(f"{admin.id:<5} {admin.name:<25} {admin.email:<35} {admin.status}")
    click.echo("=" * 80 + "\n")


@admins_group.command('suspend')
@click.argument('admin_id', type=int)
@click.option('--reason', default=None, help='Suspension reason')
@click.option('--superadmin-id', type=int, default=None, help='Acting superadmin')
@with_appcontext
def suspend_admin(admin_id, reason, superadmin_id):
    try:
        result = suspension_service.suspend_admin(admin_id, reason=reason, superadmin_id=superadmin_id)
    except AckitError as exc:
        _fail(exc)
    click.echo(
        f"PASS Admin {admin_id} suspended. Invalidated {result['sessions_invalidated']} session(s) "
        f"for {result['managers_affected']} manager(s)."
    )


@admins_group.command('resume')
@click.argument('admin_id', type=int)
@click.option('--superadmin-id', type=int, default=None, help='Acting superadmin')
@with_appcontext
def resume_admin(admin_id, superadmin_id):
    try:
        suspension_service.resume_admin(admin_id, superadmin_id=superadmin_id)
    except AckitError as exc:
        _fail(exc)
    click.echo(f"PASS Admin {admin_id} resumed.")


@admins_group.command('reset-password')
@click.argument('admin_id', type=int)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def reset_admin_password(admin_id, password):
    admin = db.session.get(Admin, admin_id)
    if admin is None:
        raise click.ClickException("Admin not found")
    try:
        auth_service.set_password(admin, password)
    except AckitError as exc:
        _fail(exc)
    revoked = token_stores.admin.revoke_all_for(admin_id)
    click.echo(f"PASS Password reset for {admin.email}; {revoked} session(s) revoked.")


@click.group('managers')
def managers_group():
    """Manager accounts."""


@managers_group.command('create')
@click.option('--admin-id', type=int, required=True)
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_manager(admin_id, name, email, password):
    try:
        manager = auth_service.create_manager(admin_id, name, email, password)
    except AckitError as exc:
        _fail(exc)
    click.echo(f"PASS Created manager {manager.email} (ID: {manager.id}) for admin {admin_id}")


@managers_group.command('list')
@click.option('--admin-id', type=int, help='Filter by admin ID')
@with_appcontext
def list_managers(admin_id):
    query = db.session.query(Manager).order_by(Manager.id)
    if admin_id:
        query = query.filter_by(admin_id=admin_id)
    managers = query.all()
    if not managers:
        click.echo("No managers found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Admin':<6} {'Name':<25} {'Email':<35} {'Status'}")
    click.echo("=" * 90)
    for manager in managers:
        click.echo(f"{manager.id:<5} {manager.admin_id:<6} {manager.name:<25} {manager.email:<35} {manager.status}")
    click.echo("=" * 90 + "\n")


@click.group('tokens')
def tokens_group():
    """Token store maintenance."""


@tokens_group.command('sweep')
@with_appcontext
def sweep_tokens():
    removed = token_stores.sweep_expired()
    click.echo(f"PASS Removed {removed} expired token record(s).")


@click.group('locks')
def locks_group():
    """Lock ledger inspection."""


@locks_group.command('list')
@click.option('--admin-id', type=int, help='Filter by admin ID')
@click.option('--active-only', is_flag=True, help='Only locks currently in effect')
@with_appcontext
def list_locks(admin_id, active_only):
    query = db.session.query(LockRecord).order_by(LockRecord.locked_at.desc(), LockRecord.id.desc())
    if admin_id:
        query = query.filter(LockRecord.admin_id == admin_id)
    if active_only:
        query = query.filter(LockRecord.is_active.is_(True))
    locks = query.all()
    if not locks:
        click.echo("No locks found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<5} {'Admin':<6} {'Entity':<14} {'Type':<18} {'Active':<7} {'Devices':<8} {'Locked by'}")
    click.echo("=" * 100)
    for lock in locks:
        entity = f"{lock.entity_type}:{lock.entity_id}"
        active_str = "Yes" if lock.is_active else "No"
        devices = len(lock.locked_temperatures or [])
        click.echo(
            f"{lock.id:<5} {lock.admin_id or '-':<6} {entity:<14} {lock.lock_type:<18} "
            f"{active_str:<7} {devices:<8} {lock.locked_by or '-'}"
        )
    click.echo("=" * 100 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(superadmins_group)
    app.cli.add_command(admins_group)
    app.cli.add_command(managers_group)
    app.cli.add_command(tokens_group)
    app.cli.add_command(locks_group)
