"""Draft inspection CLI commands.

Commands:
    draft list - List saved drafts
    draft show --camp ID [--patient ID] - Show a draft's contents
    draft clear --camp ID [--patient ID] - Delete a draft
"""

import logging
import sys
from typing import Optional

import click

from eyecamp_intake.cli.common import get_config, get_draft_store
from eyecamp_intake.models.draft import Draft
from eyecamp_intake.models.patient import PatientRecord
from eyecamp_intake.storage.drafts import draft_key
from eyecamp_intake.utils.exceptions import StorageError

logger = logging.getLogger(__name__)


@click.group(name="draft")
def draft_group() -> None:
    """Saved draft commands."""


@draft_group.command(name="list")
@click.pass_context
def list_command(ctx: click.Context) -> None:
    """List saved drafts with their camp and section."""
    config = get_config(ctx)
    store = get_draft_store(config)
    keys = store.keys()
    if not keys:
        click.echo("No saved drafts")
        return

    for key in keys:
        try:
            draft = Draft.from_json(store.get(key) or "")
        except (StorageError, ValueError, KeyError, TypeError) as e:
            click.secho(f"  {key}: unreadable ({e})", fg="red")
            continue
        name = draft.data.get("name") or "(no name)"
        click.echo(
            f"  {key}: {name} | section={draft.active_section} | "
            f"saved {draft.timestamp.isoformat(timespec='seconds')}"
        )


@draft_group.command(name="show")
@click.option("--camp", "camp_id", required=True, help="Camp of the draft")
@click.option("--patient", "patient_id", default=None, help="Patient being edited")
@click.pass_context
def show_command(ctx: click.Context, camp_id: str, patient_id: Optional[str]) -> None:
    """Show the filled fields of a draft."""
    config = get_config(ctx)
    key = draft_key(camp_id, patient_id, config.form.draft_keying)
    try:
        text = get_draft_store(config).get(key)
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)
    if text is None:
        click.echo(f"No draft saved for {key}")
        sys.exit(1)

    try:
        draft = Draft.from_json(text)
    except (ValueError, KeyError, TypeError) as e:
        click.secho(f"✗ Draft {key} is unreadable: {e}", fg="red", err=True)
        sys.exit(1)
    values = PatientRecord.from_dict(draft.data, camp_id=draft.camp_id).form_values()
    click.echo(f"Draft {key}")
    click.echo(f"  Camp:    {draft.camp_id}")
    click.echo(f"  Section: {draft.active_section}")
    click.echo(f"  Saved:   {draft.timestamp.isoformat(timespec='seconds')}")
    for name, value in values.items():
        if isinstance(value, str) and value:
            click.echo(f"  {name}: {value}")


@draft_group.command(name="clear")
@click.option("--camp", "camp_id", required=True, help="Camp of the draft")
@click.option("--patient", "patient_id", default=None, help="Patient being edited")
@click.pass_context
def clear_command(ctx: click.Context, camp_id: str, patient_id: Optional[str]) -> None:
    """Delete a draft."""
    config = get_config(ctx)
    key = draft_key(camp_id, patient_id, config.form.draft_keying)
    try:
        get_draft_store(config).delete(key)
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)
    click.echo(f"Cleared draft {key}")
