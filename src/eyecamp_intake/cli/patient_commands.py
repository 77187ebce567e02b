"""Patient record CLI commands.

Commands:
    patient validate <file> - Validate a patient record JSON file
    patient submit <file> --camp ID - Validate, store and sync a record
    patient list --camp ID - Show a camp's stored records as sheet rows
"""

import json as json_lib
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import pandas as pd

from eyecamp_intake.cli.common import build_engine, get_camp_registry, get_config, get_repository
from eyecamp_intake.form.engine import FormSettings, IntakeFormEngine
from eyecamp_intake.models.patient import OUTCOME_LABELS, PatientRecord
from eyecamp_intake.storage.drafts import InMemoryDraftStore
from eyecamp_intake.sync.rows import records_to_frame
from eyecamp_intake.utils.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)


@click.group(name="patient")
def patient_group() -> None:
    """Patient record commands."""


def _read_record_file(file: Path) -> Dict[str, Any]:
    """Load a serialized patient record.

    Raises:
        ValidationError: If the file is not a JSON object
    """
    try:
        with open(file, "r", encoding="utf-8") as f:
            data = json_lib.load(f)
    except json_lib.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {file}: line {e.lineno}, column {e.colno}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"{file} must contain a JSON object with patient fields")
    return data


@patient_group.command(name="validate")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@click.pass_context
def validate_command(ctx: click.Context, file: Path, json_output: bool) -> None:
    """Validate a patient record file against the intake form rules.

    Exits with code 0 when the record could be submitted (warnings are OK),
    code 1 when it has errors.

    Examples:

        eyecamp-intake patient validate patient.json

        eyecamp-intake patient validate patient.json --json
    """
    config = get_config(ctx)
    try:
        data = _read_record_file(file)
    except ValidationError as e:
        click.secho(f"Validation Error: {e}", fg="red", err=True)
        sys.exit(1)

    record = PatientRecord.from_dict(data, camp_id=data.get("campId") or "unassigned")
    engine = IntakeFormEngine(
        record.camp_id,
        draft_store=InMemoryDraftStore(),
        record=record,
        settings=FormSettings.from_config(config.form),
    )
    result = engine.validate_all()

    if json_output:
        click.echo(json_lib.dumps(result.to_dict(), indent=2))
    elif not result.valid:
        click.secho(result.format_report(), fg="red", err=True)
    elif result.warnings:
        click.secho(result.format_report(), fg="yellow")
    else:
        click.secho(result.format_report(), fg="green")

    sys.exit(0 if result.valid else 1)


@patient_group.command(name="submit")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option("--camp", "camp_id", required=True, help="Camp the patient is registered at")
@click.option("--no-sync", is_flag=True, help="Store the record without syncing it")
@click.pass_context
def submit_command(ctx: click.Context, file: Path, camp_id: str, no_sync: bool) -> None:
    """Validate a patient record file and store it.

    When sync is enabled in configuration the camp's rows are sent to the
    spreadsheet sink, or queued if delivery is not possible.

    Exit Codes:
        0: Record stored
        1: Validation errors or unknown camp
        2: Record could not be stored

    Example:

        eyecamp-intake patient submit patient.json --camp camp-1718000000000
    """
    config = get_config(ctx)
    try:
        if get_camp_registry(config).get(camp_id) is None:
            click.secho(f"✗ Unknown camp: {camp_id}", fg="red", err=True)
            click.echo("  → List camps with: eyecamp-intake camp list", err=True)
            sys.exit(1)
        data = _read_record_file(file)
    except ValidationError as e:
        click.secho(f"Validation Error: {e}", fg="red", err=True)
        sys.exit(1)
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)

    record = PatientRecord.from_dict(data, camp_id=camp_id)
    engine = build_engine(config, camp_id, record=record, with_sync=not no_sync)
    result = engine.submit()

    if not result.ok:
        if result.error:
            click.secho(f"✗ Failed to store record: {result.error}", fg="red", err=True)
            sys.exit(2)
        click.secho(result.validation.format_report(), fg="red", err=True)
        sys.exit(1)

    stored = result.record
    click.secho(f"✓ Stored patient {stored.id if stored else ''}", fg="green")
    if result.validation.warnings:
        click.secho(f"  {len(result.validation.warnings)} warning(s):", fg="yellow")
        for issue in result.validation.warnings:
            click.secho(f"  ! [{issue.field_name}] {issue.message}", fg="yellow")
    if result.sync_status:
        color = {"delivered": "green", "queued": "yellow"}.get(result.sync_status, "red")
        click.secho(f"  Sync: {result.sync_status}", fg=color)


@patient_group.command(name="list")
@click.option("--camp", "camp_id", required=True, help="Camp to list")
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the rows to a CSV file instead of printing them",
)
@click.pass_context
def list_command(ctx: click.Context, camp_id: str, output: Optional[Path]) -> None:
    """Show a camp's stored patients in spreadsheet column layout."""
    config = get_config(ctx)
    try:
        records = get_repository(config).list_for_camp(camp_id)
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)

    if not records:
        click.echo(f"No patients recorded for camp {camp_id}")
        return

    df = records_to_frame(records)
    if output:
        df.to_csv(output, index=False)
        click.echo(f"Wrote {len(df)} rows to {output}")
        return

    labels = {outcome.value: label for outcome, label in OUTCOME_LABELS.items()}
    summary = df[["Patient ID", "Name", "Age", "Sex", "Outcome"]].copy()
    summary["Outcome"] = summary["Outcome"].map(lambda v: labels.get(v, v))
    with pd.option_context("display.max_columns", None, "display.width", 200):
        click.echo(summary.to_string(index=False))
    click.echo(f"\n{len(df)} patient(s)")
