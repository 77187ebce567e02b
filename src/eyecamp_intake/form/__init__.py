"""Form module.

This module provides the declarative intake schema and the intake form engine.
"""

from eyecamp_intake.form.engine import (
    MODES,
    DraftSaveResult,
    FieldUpdate,
    FormSettings,
    IntakeFormEngine,
    SubmitResult,
)
from eyecamp_intake.form.schema import (
    FieldSpec,
    FormValidationResult,
    IntakeSchema,
    SectionSchema,
    SectionValidation,
    build_intake_schema,
)

__all__ = [
    "MODES",
    "DraftSaveResult",
    "FieldSpec",
    "FieldUpdate",
    "FormSettings",
    "FormValidationResult",
    "IntakeFormEngine",
    "IntakeSchema",
    "SectionSchema",
    "SectionValidation",
    "SubmitResult",
    "build_intake_schema",
]
