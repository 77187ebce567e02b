"""Spreadsheet row layout for patient records."""

from typing import Iterable, List

import pandas as pd

from eyecamp_intake.models.patient import PatientRecord
from eyecamp_intake.models.refraction import Eye, RefractionStage
from eyecamp_intake.refraction.encoder import format_measurement

SHEET_NAME = "Patient Records"
# Data rows start below the header row
SHEET_RANGE = f"{SHEET_NAME}!A2:O"

SHEET_COLUMNS = [
    "Patient ID",
    "Name",
    "Age",
    "Sex",
    "History",
    "Vision Right",
    "Vision Left",
    "Dry Refraction Right",
    "Dry Refraction Left",
    "Acceptance Right",
    "Acceptance Left",
    "Ocular Diagnosis",
    "Outcome",
    "Created At",
    "Updated At",
]

ID_COLUMN = SHEET_COLUMNS[0]


def record_to_row(record: PatientRecord) -> List[str]:
    """Render a record as one spreadsheet row in SHEET_COLUMNS order.

    Vision columns carry distant acuity; refraction columns carry the
    encoded notation (empty when nothing was measured).

    Example:
        >>> record = PatientRecord(camp_id="camp-1", id="patient-1", name="Asha")
        >>> record.dry_right.sphere = "1.00"
        >>> record_to_row(record)[7]
        '+1.00DS'
    """
    return [
        record.id,
        record.name,
        record.age,
        record.sex,
        record.history,
        record.distant_vision_right,
        record.distant_vision_left,
        format_measurement(record.measurement(RefractionStage.DRY, Eye.RIGHT)),
        format_measurement(record.measurement(RefractionStage.DRY, Eye.LEFT)),
        format_measurement(record.measurement(RefractionStage.ACCEPTANCE, Eye.RIGHT)),
        format_measurement(record.measurement(RefractionStage.ACCEPTANCE, Eye.LEFT)),
        record.ocular_diagnosis,
        record.outcome,
        record.created_at,
        record.updated_at,
    ]


def records_to_frame(records: Iterable[PatientRecord]) -> pd.DataFrame:
    """Build a DataFrame of sheet rows with SHEET_COLUMNS as columns."""
    return pd.DataFrame([record_to_row(r) for r in records], columns=SHEET_COLUMNS, dtype=str)
