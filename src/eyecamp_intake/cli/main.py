"""Main CLI entry point for Eye Camp Intake.

This module provides the main Click command group for the eyecamp-intake CLI.
"""

from pathlib import Path
from typing import Optional

import click

from eyecamp_intake import __version__
from eyecamp_intake.cli.camp_commands import camp_group
from eyecamp_intake.cli.draft_commands import draft_group
from eyecamp_intake.cli.patient_commands import patient_group
from eyecamp_intake.cli.refraction_commands import refraction_group
from eyecamp_intake.cli.sync_commands import sync_group
from eyecamp_intake.config import load_config
from eyecamp_intake.logging_audit import configure_logging
from eyecamp_intake.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="eyecamp-intake")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact-pii",
    is_flag=True,
    help="Redact PII (patient names, ages) from logs",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact_pii: bool,
) -> None:
    """Eye Camp Intake - patient registration for optometry outreach camps.

    Records patients through the six-section clinical intake form, keeps
    drafts and records on the local disk and syncs camp rows to a
    spreadsheet when connectivity allows.

    Common usage:

        # Register a camp
        eyecamp-intake camp create --name "Rampur Eye Camp" ...

        # Check a patient record before submitting it
        eyecamp-intake patient validate patient.json

        # Store a patient record
        eyecamp-intake patient submit patient.json --camp camp-1718000000000

        # Format a refraction
        eyecamp-intake refraction encode --sph 1.00 --cyl 0.50 --axis 180

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose
    ctx.obj["redact_pii"] = redact_pii
    ctx.obj["log_file"] = log_file

    # Precedence: CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file
    redact_pii_setting = redact_pii if redact_pii else config_obj.logging.redact_pii

    configure_logging(level=log_level, log_file=log_file_path, redact_pii=redact_pii_setting)


cli.add_command(camp_group)
cli.add_command(draft_group)
cli.add_command(patient_group)
cli.add_command(refraction_group)
cli.add_command(sync_group)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Args:
        config_file: Path to configuration file to validate

    Example:
        eyecamp-intake config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)

        click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
        click.echo(f"\nConfiguration file: {config_file}")
        click.echo("\nStorage:")
        click.echo(f"  Drafts:      {config_obj.storage.drafts_dir}")
        click.echo(f"  Records:     {config_obj.storage.records_dir}")
        click.echo(f"  Camps:       {config_obj.storage.camps_file}")

        click.echo("\nForm:")
        click.echo(f"  Mode:        {config_obj.form.mode}")
        click.echo(f"  Draft slots: {config_obj.form.draft_keying}")

        click.echo("\nSync:")
        click.echo(f"  Enabled:     {config_obj.sync.enabled}")
        click.echo(f"  Sink:        {config_obj.sync.sink}")
        if config_obj.sync.sink == "http":
            click.echo(f"  Endpoint:    {config_obj.sync.endpoint_url}")
            click.echo(f"  Verify TLS:  {config_obj.sync.verify_tls}")
        else:
            click.echo(f"  Sheets:      {config_obj.sync.sheets_dir}")
        click.echo(f"  Retries:     {config_obj.sync.max_retries}")

        click.echo("\nLogging:")
        click.echo(f"  Level:       {config_obj.logging.level}")
        click.echo(f"  Log file:    {config_obj.logging.log_file}")
        click.echo(f"  Redact PII:  {config_obj.logging.redact_pii}")

    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)


cli.add_command(config)


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"eyecamp-intake version {__version__}")


if __name__ == "__main__":
    cli()
