"""Spreadsheet sync CLI commands.

Commands:
    sync status - Show authentication state and pending deliveries
    sync login --token TOKEN - Store an access token and replay the queue
    sync logout - Forget the stored access token
    sync flush - Replay pending deliveries
    sync camp --camp ID - Send every stored record of a camp
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import click

from eyecamp_intake.cli.common import get_config, get_repository, get_sync_service
from eyecamp_intake.sync.service import SyncService, SyncStatus
from eyecamp_intake.utils.exceptions import StorageError

logger = logging.getLogger(__name__)


@click.group(name="sync")
@click.pass_context
def sync_group(ctx: click.Context) -> None:
    """Spreadsheet sync commands."""
    ctx.ensure_object(dict)


def _service(ctx: click.Context) -> SyncService:
    try:
        return get_sync_service(get_config(ctx))
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)


@sync_group.command(name="status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """Show sync authentication and queue state."""
    config = get_config(ctx)
    service = _service(ctx)

    click.echo(f"Sink:          {config.sync.sink}")
    click.echo(f"Enabled:       {config.sync.enabled}")
    if service.is_authenticated() and service.credentials is not None:
        expires = datetime.fromtimestamp(service.credentials.expires_at, tz=timezone.utc)
        click.secho(
            f"Authenticated: yes (until {expires.isoformat(timespec='seconds')})", fg="green"
        )
    else:
        click.secho("Authenticated: no", fg="yellow")

    items = service.queue.items()
    click.echo(f"Pending:       {len(items)} camp(s)")
    for item in items:
        line = f"  {item.camp_id}: {len(item.records)} row(s), {item.attempts} attempt(s)"
        if item.last_error:
            line += f", last error: {item.last_error}"
        click.echo(line)


@sync_group.command(name="login")
@click.option("--token", prompt=True, hide_input=True, help="Access token")
@click.option(
    "--expires-in", type=int, default=3600, show_default=True, help="Token lifetime in seconds"
)
@click.pass_context
def login_command(ctx: click.Context, token: str, expires_in: int) -> None:
    """Store an access token and send any queued rows."""
    service = _service(ctx)
    try:
        service.set_credentials(token, expires_in)
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)
    click.secho("✓ Sync credentials saved", fg="green")
    pending = service.pending_camps()
    if pending:
        click.secho(f"  {len(pending)} camp(s) still pending", fg="yellow")


@sync_group.command(name="logout")
@click.pass_context
def logout_command(ctx: click.Context) -> None:
    """Forget the stored access token."""
    _service(ctx).logout()
    click.echo("Sync credentials cleared")


@sync_group.command(name="flush")
@click.pass_context
def flush_command(ctx: click.Context) -> None:
    """Replay pending deliveries.

    Exit Codes:
        0: Queue empty after the run
        1: Not authenticated
        2: Deliveries still pending or dropped
    """
    service = _service(ctx)
    report = service.process_queue()
    if report.skipped:
        click.secho(
            "✗ Not authenticated. Run 'eyecamp-intake sync login' first.", fg="red", err=True
        )
        sys.exit(1)

    for camp_id in report.delivered:
        click.secho(f"✓ {camp_id} delivered", fg="green")
    for camp_id in report.failed:
        click.secho(f"✗ {camp_id} dropped (permanent failure, see log)", fg="red")
    for camp_id in report.remaining:
        click.secho(f"! {camp_id} still pending", fg="yellow")
    if report.remaining or report.failed:
        sys.exit(2)


@sync_group.command(name="camp")
@click.option("--camp", "camp_id", required=True, help="Camp to send")
@click.option("--spreadsheet", "spreadsheet_id", default=None, help="Destination sheet id")
@click.pass_context
def camp_command(ctx: click.Context, camp_id: str, spreadsheet_id: Optional[str]) -> None:
    """Send every stored record of a camp to the spreadsheet."""
    config = get_config(ctx)
    service = _service(ctx)
    try:
        records = get_repository(config).list_for_camp(camp_id)
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)

    status = service.sync_records(camp_id, records, spreadsheet_id)
    if status == SyncStatus.DELIVERED:
        click.secho(f"✓ Sent {len(records)} row(s) for {camp_id}", fg="green")
    elif status == SyncStatus.QUEUED:
        click.secho(f"! Rows for {camp_id} queued for later delivery", fg="yellow")
    else:
        click.secho(f"✗ Sync of {camp_id} failed (see log)", fg="red", err=True)
        sys.exit(2)
