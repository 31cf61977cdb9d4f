# Overview: Command line entry for the offline queue (python -m garage.client).

# Commands:
# - python -m garage.client status
#   Probe the API and list queued operations.
# - python -m garage.client sync
#   Replay queued operations in order (stops at the first failure).
# - python -m garage.client clear --yes
#   Discard every queued operation.
#
# Settings come from GARAGE_BASE_URL, GARAGE_QUEUE_PATH, GARAGE_ACTOR, ...

import logging

import click

from .api_client import OfflineAwareClient
from .config import ClientConfig
from .sync_service import SyncService


@click.group()
@click.option('--base-url', default=None, help='Garage API root (overrides GARAGE_BASE_URL)')
@click.option('--queue-path', default=None, help='Offline queue file (overrides GARAGE_QUEUE_PATH)')
@click.option('--verbose', '-v', is_flag=True, help='Log client activity')
@click.pass_context
def cli(ctx, base_url, queue_path, verbose):
    """Offline queue tools for the Garage API client."""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)
    config = ClientConfig.from_env()
    if base_url:
        config.base_url = base_url.rstrip("/")
    if queue_path:
        config.queue_path = queue_path
    client = OfflineAwareClient(config)
    ctx.call_on_close(client.close)
    ctx.obj = client


@cli.command('status')
@click.pass_obj
def status(client):
    """Show connectivity and the pending operations."""
    online = client.monitor.probe()
    click.echo(f"Network: {'online' if online else 'offline'} ({client.config.base_url})")
    operations = client.queue.operations()
    click.echo(f"Pending operations: {len(operations)}")
    for operation in operations:
        line = f"  {operation.timestamp} {operation.method} {operation.url} retries={operation.retry_count}"
        if operation.last_error:
            line += f" last_error={operation.last_error}"
        click.echo(line)


@cli.command('sync')
@click.pass_obj
def sync(client):
    """Replay queued operations now."""
    sync_service = SyncService(client, auto_sync=False)
    client.monitor.probe()
    result = sync_service.sync()
    if result.skipped:
        click.echo(f"SKIP Network offline; {result.remaining} operation(s) still queued")
        raise SystemExit(1)
    click.echo(f"PASS Synced {result.synced} operation(s); {result.remaining} remaining")
    if result.failed:
        head = client.queue.head()
        click.echo(f"FAIL Stopped at {head.method} {head.url}: {head.last_error}")
        raise SystemExit(1)


@cli.command('clear')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@click.pass_obj
def clear(client, yes):
    """Discard every queued operation."""
    pending = client.queue.count()
    if not pending:
        click.echo("Queue is empty")
        return
    if not yes:
        click.confirm(f"WARN This will discard {pending} queued operation(s). Continue?", abort=True)
    dropped = SyncService(client, auto_sync=False).clear()
    click.echo(f"PASS Discarded {dropped} operation(s)")


if __name__ == "__main__":
    cli()
