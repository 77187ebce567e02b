"""Magnitude checks for refraction input.

The encoder never rejects input, so range and step problems are surfaced here
as warnings next to the fields they concern.
"""

from decimal import Decimal, InvalidOperation
from typing import List, Optional

from eyecamp_intake.models.refraction import RefractionMeasurement
from eyecamp_intake.models.validation import IssueSeverity, ValidationIssue

POWER_STEP = Decimal("0.25")
MAX_POWER = Decimal("30")
MIN_AXIS = 0
MAX_AXIS = 180


def _parse_decimal(value: str) -> Optional[Decimal]:
    try:
        parsed = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _check_power(
    value: str, field_name: str, section: str, label: str
) -> List[ValidationIssue]:
    if not value:
        return []

    power = _parse_decimal(value)
    if power is None:
        return [
            ValidationIssue(
                field_name=field_name,
                section=section,
                severity=IssueSeverity.WARNING,
                message=f"{label} is not a number: {value}",
                suggestion="Enter the magnitude in diopters, e.g. 1.25",
            )
        ]

    issues = []
    if power < 0:
        issues.append(
            ValidationIssue(
                field_name=field_name,
                section=section,
                severity=IssueSeverity.WARNING,
                message=f"{label} magnitude is negative: {value}",
                suggestion="Enter the magnitude only and use the +/- toggle for the sign",
            )
        )
    elif abs(power) <= MAX_POWER and power % POWER_STEP != 0:
        issues.append(
            ValidationIssue(
                field_name=field_name,
                section=section,
                severity=IssueSeverity.WARNING,
                message=f"{label} is not in 0.25D steps: {value}",
                suggestion="Round to the nearest quarter diopter",
            )
        )
    if abs(power) > MAX_POWER:
        issues.append(
            ValidationIssue(
                field_name=field_name,
                section=section,
                severity=IssueSeverity.WARNING,
                message=f"{label} looks implausibly high: {value}",
                suggestion="Verify the value was typed correctly",
            )
        )
    return issues


def check_measurement(
    measurement: RefractionMeasurement,
    field_prefix: str,
    section: str = "refraction",
) -> List[ValidationIssue]:
    """Check one eye's refraction values for range and step problems.

    Args:
        measurement: Values to check
        field_prefix: Serialized key prefix (e.g. "rightEye", "acceptanceLeft")
            used to name the offending fields
        section: Section id to attach to the issues

    Returns:
        Warning-level issues; empty when everything looks plausible

    Example:
        >>> issues = check_measurement(
        ...     RefractionMeasurement(sphere="1.30", axis="200"), "rightEye"
        ... )
        >>> [i.field_name for i in issues]
        ['rightEyeSph', 'rightEyeAxis', 'rightEyeAxis']
    """
    issues: List[ValidationIssue] = []
    issues.extend(_check_power(measurement.sphere, f"{field_prefix}Sph", section, "Sphere"))
    issues.extend(_check_power(measurement.cylinder, f"{field_prefix}Cyl", section, "Cylinder"))

    axis_field = f"{field_prefix}Axis"
    if measurement.axis:
        axis = _parse_decimal(measurement.axis)
        if axis is None or axis != axis.to_integral_value():
            issues.append(
                ValidationIssue(
                    field_name=axis_field,
                    section=section,
                    severity=IssueSeverity.WARNING,
                    message=f"Axis must be a whole number of degrees: {measurement.axis}",
                    suggestion="Enter an integer between 0 and 180",
                )
            )
        elif not MIN_AXIS <= axis <= MAX_AXIS:
            issues.append(
                ValidationIssue(
                    field_name=axis_field,
                    section=section,
                    severity=IssueSeverity.WARNING,
                    message=f"Axis out of range: {measurement.axis}",
                    suggestion="Axis must be between 0 and 180 degrees",
                )
            )

    if measurement.has_orphan_axis:
        issues.append(
            ValidationIssue(
                field_name=axis_field,
                section=section,
                severity=IssueSeverity.WARNING,
                message="Axis entered without a cylinder; it will not appear on the prescription",
                suggestion="Enter the cylinder power or clear the axis",
            )
        )

    return issues
