"""Parser for refraction notation produced by the encoder.

Turns ``+1.00DS/-0.50DCx180`` back into a RefractionMeasurement so that
prescriptions typed or imported as a single string can be edited with the
sign toggles and magnitude fields.
"""

import re

from eyecamp_intake.models.refraction import RefractionMeasurement
from eyecamp_intake.utils.exceptions import RefractionNotationError

_MAGNITUDE = r"(?:\d+(?:\.\d*)?|\.\d+)"

NOTATION_PATTERN = re.compile(
    rf"""
    ^
    (?:(?P<sph_sign>[+-])(?P<sph>{_MAGNITUDE})DS)?
    (?:/(?P<cyl_sign>[+-])(?P<cyl>{_MAGNITUDE})DC
        (?:[xX](?P<axis>\d+))?
    )?
    $
    """,
    re.VERBOSE | re.IGNORECASE,
)


def parse_refraction(notation: str) -> RefractionMeasurement:
    """Parse a refraction notation string.

    Magnitudes and axis are kept as the exact text found in the notation, so
    ``encode_refraction`` reproduces the input for any string it produced.
    Signs that do not appear (no sphere or no cylinder term) keep the form
    defaults: sphere positive, cylinder negative.

    Args:
        notation: Notation such as ``+1.00DS/-0.50DCx180`` or ``/-0.50DC``.
            Surrounding and inner whitespace is ignored.

    Returns:
        RefractionMeasurement with the parsed values

    Raises:
        RefractionNotationError: If the text is not valid refraction notation

    Example:
        >>> m = parse_refraction("+1.50DS/-0.50DCx90")
        >>> (m.sphere, m.cylinder, m.axis)
        ('1.50', '0.50', '90')
    """
    compact = re.sub(r"\s+", "", notation or "")
    if not compact:
        return RefractionMeasurement()

    match = NOTATION_PATTERN.match(compact)
    if match is None or not (match.group("sph") or match.group("cyl")):
        raise RefractionNotationError(
            f"Cannot parse refraction notation: {notation!r}. "
            f"Expected a form like +1.00DS/-0.50DCx180"
        )

    measurement = RefractionMeasurement()
    if match.group("sph"):
        measurement.sphere = match.group("sph")
        measurement.sphere_positive = match.group("sph_sign") == "+"
    if match.group("cyl"):
        measurement.cylinder = match.group("cyl")
        measurement.cylinder_positive = match.group("cyl_sign") == "+"
        measurement.axis = match.group("axis") or ""
    return measurement
