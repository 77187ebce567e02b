"""Patient record data model.

This module defines the PatientRecord dataclass that backs the clinical intake
form, together with the serialized (camelCase) key layout shared with the
browser client, drafts and exported records.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional

from eyecamp_intake.models.refraction import (
    Eye,
    RefractionMeasurement,
    RefractionStage,
    parse_sign,
)


class Section(Enum):
    """Intake form sections, in wizard order."""

    DEMOGRAPHICS = "demographics"
    HISTORY = "history"
    VISION = "vision"
    REFRACTION = "refraction"
    DIAGNOSIS = "diagnosis"
    OUTCOME = "outcome"


SECTION_ORDER: list[str] = [section.value for section in Section]


class Sex(Enum):
    """Patient sex choices."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Outcome(Enum):
    """Camp outcome for a patient."""

    GLASSES = "glasses"
    REFERRED = "referred"
    FOLLOWUP = "followup"
    NORMAL = "normal"


OUTCOME_LABELS = {
    Outcome.GLASSES: "Glass Prescription",
    Outcome.REFERRED: "Referred to Hospital",
    Outcome.FOLLOWUP: "Follow-up Required",
    Outcome.NORMAL: "Normal - No Treatment",
}

# Serialized key prefix for every (stage, eye) measurement
REFRACTION_KEY_PREFIXES: dict[tuple[RefractionStage, Eye], str] = {
    (RefractionStage.DRY, Eye.RIGHT): "rightEye",
    (RefractionStage.DRY, Eye.LEFT): "leftEye",
    (RefractionStage.ACCEPTANCE, Eye.RIGHT): "acceptanceRight",
    (RefractionStage.ACCEPTANCE, Eye.LEFT): "acceptanceLeft",
    (RefractionStage.ADD_GIVEN, Eye.RIGHT): "addGivenRight",
    (RefractionStage.ADD_GIVEN, Eye.LEFT): "addGivenLeft",
}

# Serialized key suffix -> RefractionMeasurement attribute
REFRACTION_KEY_SUFFIXES: dict[str, str] = {
    "Sph": "sphere",
    "SphPositive": "sphere_positive",
    "Cyl": "cylinder",
    "CylPositive": "cylinder_positive",
    "Axis": "axis",
    "RefractionNote": "note",
}

# Serialized key -> PatientRecord attribute for the plain text fields
TEXT_FIELD_KEYS: dict[str, str] = {
    "name": "name",
    "age": "age",
    "sex": "sex",
    "history": "history",
    "distantVisionRight": "distant_vision_right",
    "distantVisionLeft": "distant_vision_left",
    "nearVisionRight": "near_vision_right",
    "nearVisionLeft": "near_vision_left",
    "ocularDiagnosis": "ocular_diagnosis",
    "outcome": "outcome",
}


def measurement_attr(stage: RefractionStage, eye: Eye) -> str:
    """Return the PatientRecord attribute holding a (stage, eye) measurement.

    Example:
        >>> measurement_attr(RefractionStage.ADD_GIVEN, Eye.LEFT)
        'add_given_left'
    """
    return f"{stage.value}_{eye.value}"


@dataclass
class PatientRecord:
    """Clinical intake record for one patient at one camp.

    All clinical values are stored as text exactly as entered; unset optional
    values are the empty string.

    Attributes:
        camp_id: Owning camp identifier (required)
        id: Patient identifier, assigned when the record is first persisted
        name: Patient name
        age: Age in years, as typed
        sex: One of Sex values
        history: Medical and ocular history
        distant_vision_right: Distant visual acuity OD (e.g. "6/9")
        distant_vision_left: Distant visual acuity OS
        near_vision_right: Near visual acuity OD (e.g. "N6")
        near_vision_left: Near visual acuity OS
        dry_right: Dry refraction OD
        dry_left: Dry refraction OS
        acceptance_right: Accepted refraction OD
        acceptance_left: Accepted refraction OS
        add_given_right: Near addition OD
        add_given_left: Near addition OS
        ocular_diagnosis: Free-text diagnosis
        outcome: One of Outcome values
        created_at: ISO-8601 creation timestamp (set on first save)
        updated_at: ISO-8601 update timestamp (set on every save)
    """

    camp_id: str
    id: str = ""
    name: str = ""
    age: str = ""
    sex: str = ""
    history: str = ""
    distant_vision_right: str = ""
    distant_vision_left: str = ""
    near_vision_right: str = ""
    near_vision_left: str = ""
    dry_right: RefractionMeasurement = field(default_factory=RefractionMeasurement)
    dry_left: RefractionMeasurement = field(default_factory=RefractionMeasurement)
    acceptance_right: RefractionMeasurement = field(default_factory=RefractionMeasurement)
    acceptance_left: RefractionMeasurement = field(default_factory=RefractionMeasurement)
    add_given_right: RefractionMeasurement = field(default_factory=RefractionMeasurement)
    add_given_left: RefractionMeasurement = field(default_factory=RefractionMeasurement)
    ocular_diagnosis: str = ""
    outcome: str = ""
    created_at: str = ""
    updated_at: str = ""

    def measurement(self, stage: RefractionStage, eye: Eye) -> RefractionMeasurement:
        """Return the measurement for a refraction stage and eye."""
        return getattr(self, measurement_attr(stage, eye))

    def copy(self) -> "PatientRecord":
        """Return a deep copy (measurements are copied too)."""
        measurements = {
            f.name: replace(getattr(self, f.name))
            for f in fields(self)
            if isinstance(getattr(self, f.name), RefractionMeasurement)
        }
        return replace(self, **measurements)

    def form_values(self) -> dict[str, Any]:
        """Return the form field values keyed by serialized field name.

        Identity and timestamp fields are not part of the form and are left out.

        Returns:
            Flat dictionary of every intake form field
        """
        values: dict[str, Any] = {
            key: getattr(self, attr) for key, attr in TEXT_FIELD_KEYS.items()
        }
        for (stage, eye), prefix in REFRACTION_KEY_PREFIXES.items():
            measurement = self.measurement(stage, eye)
            for suffix, attr in REFRACTION_KEY_SUFFIXES.items():
                values[f"{prefix}{suffix}"] = getattr(measurement, attr)
        return values

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns:
            Flat camelCase dictionary including identity and timestamps
        """
        data: dict[str, Any] = {"id": self.id, "campId": self.camp_id}
        data.update(self.form_values())
        data["createdAt"] = self.created_at
        data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], camp_id: Optional[str] = None) -> "PatientRecord":
        """Build a record from a serialized dictionary.

        Unknown keys are ignored and missing keys fall back to their defaults,
        so partially filled drafts load cleanly.

        Args:
            data: Serialized record (camelCase keys)
            camp_id: Camp to use when the dictionary carries no campId

        Returns:
            PatientRecord instance
        """
        record = cls(camp_id=str(data.get("campId") or camp_id or ""))
        record.id = _text(data.get("id"))
        record.created_at = _text(data.get("createdAt"))
        record.updated_at = _text(data.get("updatedAt"))

        for key, attr in TEXT_FIELD_KEYS.items():
            setattr(record, attr, _text(data.get(key)))

        for (stage, eye), prefix in REFRACTION_KEY_PREFIXES.items():
            measurement = record.measurement(stage, eye)
            for suffix, attr in REFRACTION_KEY_SUFFIXES.items():
                key = f"{prefix}{suffix}"
                if key not in data:
                    continue
                if attr.endswith("_positive"):
                    setattr(measurement, attr, parse_sign(data[key]))
                else:
                    setattr(measurement, attr, _text(data[key]))

        return record


def _text(value: Any) -> str:
    """Normalize a serialized value to the stored text form."""
    if value is None:
        return ""
    return str(value)
