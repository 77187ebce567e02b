"""Refraction notation encoder.

Renders sign toggles, magnitudes and axis into the short-hand used on
prescriptions, e.g. ``+1.00DS/-0.50DCx180``. The encoder is pure string
formatting: it never validates, clamps or raises, and passes whatever text
was typed straight through.
"""

from eyecamp_intake.models.refraction import RefractionMeasurement

# Shown in place of an empty preview
PREVIEW_PLACEHOLDER = "Example: +1.00DS/-0.50DCx180"


def _sign(positive: bool) -> str:
    return "+" if positive else "-"


def encode_refraction(
    sphere_positive: bool,
    sphere: str,
    cylinder_positive: bool,
    cylinder: str,
    axis: str,
) -> str:
    """Format one eye's refraction values in standard optical notation.

    The sphere term is emitted only when a sphere value is present. The
    cylinder term is emitted only when a cylinder value is present and carries
    the ``x{axis}`` suffix only when an axis is present too. An axis without a
    cylinder is ignored.

    Args:
        sphere_positive: Sphere sign toggle (True = "+")
        sphere: Sphere magnitude as typed, or "" when not entered
        cylinder_positive: Cylinder sign toggle (True = "+")
        cylinder: Cylinder magnitude as typed, or "" when not entered
        axis: Axis as typed, or "" when not entered

    Returns:
        Notation string, or "" when sphere, cylinder and axis are all empty

    Example:
        >>> encode_refraction(True, "1.00", False, "0.50", "180")
        '+1.00DS/-0.50DCx180'
        >>> encode_refraction(True, "", False, "0.50", "180")
        '/-0.50DCx180'
        >>> encode_refraction(True, "", False, "", "")
        ''
    """
    sphere = sphere or ""
    cylinder = cylinder or ""
    axis = axis or ""

    if not sphere and not cylinder and not axis:
        return ""

    sphere_term = f"{_sign(sphere_positive)}{sphere}DS" if sphere else ""

    cylinder_term = ""
    if cylinder:
        cylinder_term = f"/{_sign(cylinder_positive)}{cylinder}DC"
        if axis:
            cylinder_term += f"x{axis}"

    return f"{sphere_term}{cylinder_term}"


def format_measurement(measurement: RefractionMeasurement) -> str:
    """Encode a RefractionMeasurement.

    Args:
        measurement: Values for one eye

    Returns:
        Notation string ("" when nothing was entered)
    """
    return encode_refraction(
        measurement.sphere_positive,
        measurement.sphere,
        measurement.cylinder_positive,
        measurement.cylinder,
        measurement.axis,
    )


def preview(measurement: RefractionMeasurement) -> str:
    """Live preview text for the form: the notation or the placeholder example."""
    return format_measurement(measurement) or PREVIEW_PLACEHOLDER
