"""Refraction measurement data model.

One RefractionMeasurement holds the values for a single eye at a single
refraction stage (dry refraction, acceptance or add-given).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class RefractionStage(Enum):
    """Refraction stages recorded on the intake form."""

    DRY = "dry"
    ACCEPTANCE = "acceptance"
    ADD_GIVEN = "add_given"


class Eye(Enum):
    """Eye being measured (OD = right, OS = left)."""

    RIGHT = "right"
    LEFT = "left"


SIGN_TRUE_VALUES = ("true", "1", "yes", "on", "+")


def parse_sign(value: Any) -> bool:
    """Read a sign toggle from a form value or a serialized record.

    Strings are matched against SIGN_TRUE_VALUES (case-insensitive), so
    "false", "0" and "-" all read as negative. Other values use truthiness.

    Example:
        >>> parse_sign("false"), parse_sign("+"), parse_sign(True)
        (False, True, True)
    """
    if isinstance(value, str):
        return value.strip().lower() in SIGN_TRUE_VALUES
    return bool(value)


@dataclass
class RefractionMeasurement:
    """Sphere, cylinder and axis values for one eye.

    Magnitudes are kept exactly as typed (e.g. "1.00", "0.5", "090") and the
    sign of sphere and cylinder lives in separate toggles, matching how the
    values are entered on the form. An empty string means "not entered".

    Attributes:
        sphere: Sphere magnitude in diopters (non-negative, 0.25 steps)
        sphere_positive: Sphere sign toggle (True = "+")
        cylinder: Cylinder magnitude in diopters (non-negative, 0.25 steps)
        cylinder_positive: Cylinder sign toggle (True = "+")
        axis: Cylinder axis in degrees (integer 0-180)
        note: Free-text annotation
    """

    sphere: str = ""
    sphere_positive: bool = True
    cylinder: str = ""
    cylinder_positive: bool = False
    axis: str = ""
    note: str = ""

    @property
    def has_orphan_axis(self) -> bool:
        """True when an axis was entered without a cylinder."""
        return bool(self.axis) and not self.cylinder
