"""Refraction notation CLI commands.

Commands:
    refraction encode - Format sphere/cylinder/axis values as notation
    refraction parse <notation> - Split notation back into its values
"""

import json as json_lib
import logging
import sys

import click

from eyecamp_intake.models.refraction import RefractionMeasurement
from eyecamp_intake.refraction import check_measurement, format_measurement, parse_refraction
from eyecamp_intake.refraction.encoder import PREVIEW_PLACEHOLDER
from eyecamp_intake.utils.exceptions import RefractionNotationError

logger = logging.getLogger(__name__)

SIGN_CHOICE = click.Choice(["+", "-"])


@click.group(name="refraction")
def refraction_group() -> None:
    """Refraction notation commands."""


@refraction_group.command(name="encode")
@click.option("--sph", default="", help="Sphere magnitude, e.g. 1.00")
@click.option("--sph-sign", type=SIGN_CHOICE, default="+", show_default=True, help="Sphere sign")
@click.option("--cyl", default="", help="Cylinder magnitude, e.g. 0.50")
@click.option("--cyl-sign", type=SIGN_CHOICE, default="-", show_default=True, help="Cylinder sign")
@click.option("--axis", default="", help="Cylinder axis in degrees (0-180)")
@click.option("--check", is_flag=True, help="Also report implausible values")
def encode_command(
    sph: str, sph_sign: str, cyl: str, cyl_sign: str, axis: str, check: bool
) -> None:
    """Format refraction values in standard notation.

    Example:

        eyecamp-intake refraction encode --sph 1.00 --cyl 0.50 --axis 180
    """
    measurement = RefractionMeasurement(
        sphere=sph,
        sphere_positive=sph_sign == "+",
        cylinder=cyl,
        cylinder_positive=cyl_sign == "+",
        axis=axis,
    )
    notation = format_measurement(measurement)
    if notation:
        click.echo(notation)
    else:
        click.secho(PREVIEW_PLACEHOLDER, fg="yellow")

    if check:
        for issue in check_measurement(measurement, "value"):
            click.secho(f"! {issue.message}", fg="yellow", err=True)
            if issue.suggestion:
                click.echo(f"  → {issue.suggestion}", err=True)


@refraction_group.command(name="parse")
@click.argument("notation")
@click.option("--json", "json_output", is_flag=True, help="Output values as JSON")
def parse_command(notation: str, json_output: bool) -> None:
    """Split refraction notation into sign, sphere, cylinder and axis.

    Exit Codes:
        0: Notation parsed
        1: Notation could not be parsed

    Example:

        eyecamp-intake refraction parse "+1.00DS/-0.50DCx180" --json
    """
    try:
        measurement = parse_refraction(notation)
    except RefractionNotationError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        logger.error(f"Refraction parse failed: {e}")
        sys.exit(1)

    values = {
        "sphere": measurement.sphere,
        "spherePositive": measurement.sphere_positive,
        "cylinder": measurement.cylinder,
        "cylinderPositive": measurement.cylinder_positive,
        "axis": measurement.axis,
    }
    if json_output:
        click.echo(json_lib.dumps(values, indent=2))
        return

    sphere_sign = "+" if measurement.sphere_positive else "-"
    cylinder_sign = "+" if measurement.cylinder_positive else "-"
    click.echo(f"Sphere:   {sphere_sign}{measurement.sphere}" if measurement.sphere else "Sphere:   -")
    click.echo(
        f"Cylinder: {cylinder_sign}{measurement.cylinder}" if measurement.cylinder else "Cylinder: -"
    )
    click.echo(f"Axis:     {measurement.axis or '-'}")
