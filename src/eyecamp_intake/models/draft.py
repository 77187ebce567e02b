"""Draft data model for offline save/resume of the intake form."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from eyecamp_intake.models.patient import SECTION_ORDER


@dataclass
class Draft:
    """Locally persisted, not-yet-submitted snapshot of an intake form.

    The serialized layout ``{data, campId, patientId, activeSection, timestamp}``
    is shared with the browser client's localStorage drafts.

    Attributes:
        data: PatientRecord-shaped dictionary (camelCase keys)
        camp_id: Owning camp
        active_section: Section the operator was on when the draft was saved
        timestamp: When the draft was saved (UTC)
        patient_id: Patient identifier when editing an existing record

    Example:
        >>> draft = Draft(
        ...     data={"name": "Rajesh Kumar", "age": "45"},
        ...     camp_id="camp-1718000000000",
        ...     active_section="vision",
        ...     timestamp=datetime.fromisoformat("2024-06-10T09:30:00+00:00"),
        ... )
        >>> restored = Draft.from_json(draft.to_json())
    """

    data: Dict[str, Any]
    camp_id: str
    active_section: str
    timestamp: datetime
    patient_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "data": self.data,
            "campId": self.camp_id,
            "patientId": self.patient_id,
            "activeSection": self.active_section,
            "timestamp": self.timestamp.isoformat(),
            **self.extra,
        }

    def to_json(self) -> str:
        """Serialize draft to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "Draft":
        """Deserialize draft from JSON string.

        Args:
            json_str: JSON string representation of draft

        Returns:
            Draft instance

        Raises:
            json.JSONDecodeError: If JSON is invalid
            KeyError: If data or timestamp is missing
            ValueError: If timestamp is not ISO-8601
        """
        raw = json.loads(json_str)
        known = {"data", "campId", "patientId", "activeSection", "timestamp", "step"}
        return cls(
            data=raw["data"],
            camp_id=raw.get("campId") or raw["data"].get("campId", ""),
            patient_id=raw.get("patientId"),
            # Drafts written by the step-based wizard carry "step" instead
            active_section=raw.get("activeSection") or _section_for_step(raw.get("step")),
            timestamp=datetime.fromisoformat(raw["timestamp"].replace("Z", "+00:00")),
            extra={k: v for k, v in raw.items() if k not in known},
        )


def _section_for_step(step: Any) -> str:
    """Map a 1-based wizard step number to its section id."""
    try:
        index = int(step) - 1
    except (TypeError, ValueError):
        return SECTION_ORDER[0]
    if 0 <= index < len(SECTION_ORDER):
        return SECTION_ORDER[index]
    return SECTION_ORDER[0]
