"""Refraction module.

This module provides the refraction notation encoder, its inverse parser
and input magnitude checks.
"""

from eyecamp_intake.refraction.checks import check_measurement
from eyecamp_intake.refraction.encoder import (
    PREVIEW_PLACEHOLDER,
    encode_refraction,
    format_measurement,
    preview,
)
from eyecamp_intake.refraction.parser import parse_refraction

__all__ = [
    "PREVIEW_PLACEHOLDER",
    "check_measurement",
    "encode_refraction",
    "format_measurement",
    "parse_refraction",
    "preview",
]
