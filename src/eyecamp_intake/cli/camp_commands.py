"""Camp registry CLI commands."""

import logging
import sys
from datetime import datetime
from typing import Tuple

import click

from eyecamp_intake.cli.common import get_camp_registry, get_config
from eyecamp_intake.utils.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)


@click.group(name="camp")
def camp_group() -> None:
    """Camp registry commands."""


@camp_group.command(name="create")
@click.option("--name", required=True, help="Camp name")
@click.option("--location", required=True, help="Where the camp is held")
@click.option(
    "--date", "camp_date", required=True, type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Camp date (YYYY-MM-DD)",
)
@click.option("--description", required=True, help="Short description")
@click.option(
    "--student", "students", multiple=True, help="Assigned student email (repeatable)"
)
@click.pass_context
def create_command(
    ctx: click.Context,
    name: str,
    location: str,
    camp_date: datetime,
    description: str,
    students: Tuple[str, ...],
) -> None:
    """Register a new camp.

    Example:

        eyecamp-intake camp create --name "Rampur Eye Camp" --location "Rampur PHC" \\
            --date 2024-06-10 --description "District screening camp" \\
            --student asha@example.org
    """
    config = get_config(ctx)
    try:
        camp = get_camp_registry(config).create(
            name=name,
            location=location,
            camp_date=camp_date.date(),
            description=description,
            assigned_students=students,
        )
    except ValidationError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)

    click.secho(f"✓ Created camp {camp.id}", fg="green")


@camp_group.command(name="list")
@click.pass_context
def list_command(ctx: click.Context) -> None:
    """List registered camps."""
    config = get_config(ctx)
    try:
        camps = get_camp_registry(config).list()
    except StorageError as e:
        click.secho(f"Storage Error: {e}", fg="red", err=True)
        sys.exit(2)

    if not camps:
        click.echo("No camps registered")
        return
    for camp in camps:
        click.echo(
            f"  {camp.id}  {camp.date.isoformat()}  {camp.name} ({camp.location}) "
            f"- {len(camp.assigned_students)} student(s)"
        )
