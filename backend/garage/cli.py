# Overview: Flask CLI command groups for bootstrap, demo data, finance repair and backups.

# backend/garage/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Demo data:
# - python -m flask garage seed
#   Load demo clients, cars, services, a supplier and products (empty database only).
#
# Finance ledger:
# - python -m flask finance retry-pending
#   Replay maintenance payment bookings that failed after their payment committed.
# - python -m flask finance pending
#   List bookings still waiting in the outbox.
#
# Backups:
# - python -m flask backup export --output backup.json
#   Write a version 1.0 backup of clients, cars, insurance, services, products,
#   suppliers, maintenance and logs.
# - python -m flask backup import backup.json --yes
#   Replace those collections from a backup file (logs are merged).

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import GarageError
from .extensions import db
from .services import backup_service, finance_service, seed_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create every table that does not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date")


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

    click.echo("PASS Database reset complete")


@click.group('garage')
def garage_group():
    """Garage data commands."""


@garage_group.command('seed')
@click.option('--actor', default=None, help='Identity recorded in the audit log')
@with_appcontext
def seed(actor):
    """Load demo data into an empty database."""
    if seed_service.seed_demo_data(actor=actor):
        click.echo("PASS Demo data loaded")
    else:
        click.echo("SKIP Database already contains clients; nothing seeded")


@click.group('finance')
def finance_group():
    """Finance ledger maintenance."""


@finance_group.command('pending')
@with_appcontext
def list_pending():
    """List outbox entries that have not been booked yet."""
    entries = finance_service.pending_outbox_entries()
    if not entries:
        click.echo("No pending finance bookings")
        return
    for entry in entries:
        click.echo(
            f"#{entry.id} {entry.kind} attempts={entry.attempts} "
            f"payload={json.dumps(entry.payload)} last_error={entry.last_error or '-'}"
        )


@finance_group.command('retry-pending')
@with_appcontext
def retry_pending():
    """Replay every pending outbox entry in order."""
    succeeded, failed = finance_service.retry_pending_outbox()
    click.echo(f"PASS Booked {succeeded} pending entr{'y' if succeeded == 1 else 'ies'}")
    if failed:
        click.echo(f"FAIL {failed} entr{'y' if failed == 1 else 'ies'} still pending (see logs)")
        raise SystemExit(1)


@click.group('backup')
def backup_group():
    """Backup export and restore."""


@backup_group.command('export')
@click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), default=None,
              help='File to write (default: stdout)')
@with_appcontext
def export_backup(output):
    """Write a JSON backup."""
    payload = json.dumps(backup_service.export_backup(), indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(payload)
        click.echo(f"PASS Backup written to {output}")
    else:
        click.echo(payload)


@backup_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@click.option('--actor', default=None, help='Identity recorded in the audit log')
@with_appcontext
def import_backup(path, yes, actor):
    """Restore a JSON backup (replaces the collections it contains)."""
    if not yes:
        click.confirm("WARN This will REPLACE clients, cars, products and maintenance. Continue?", abort=True)
    with open(path, "r", encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as exc:
            raise click.ClickException(f"Invalid JSON: {exc}")
    try:
        counts = backup_service.import_backup(payload, actor=actor)
    except GarageError as exc:
        current_app.logger.warning("Backup import rejected: %s", exc.message)
        raise click.ClickException(exc.message)
    summary = ", ".join(f"{name}={count}" for name, count in counts.items())
    click.echo(f"PASS Database restored from backup ({summary})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(garage_group)
    app.cli.add_command(finance_group)
    app.cli.add_command(backup_group)
