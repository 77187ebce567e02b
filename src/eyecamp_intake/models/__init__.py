"""Models module.

This module provides data models and dataclasses for the application.
"""

from eyecamp_intake.models.camp import Camp
from eyecamp_intake.models.draft import Draft
from eyecamp_intake.models.patient import SECTION_ORDER, Outcome, PatientRecord, Section, Sex
from eyecamp_intake.models.refraction import Eye, RefractionMeasurement, RefractionStage
from eyecamp_intake.models.validation import IssueSeverity, ValidationIssue

__all__ = [
    "Camp",
    "Draft",
    "Eye",
    "Outcome",
    "PatientRecord",
    "RefractionMeasurement",
    "RefractionStage",
    "SECTION_ORDER",
    "Section",
    "Sex",
    "IssueSeverity",
    "ValidationIssue",
]
