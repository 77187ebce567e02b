"""Camp data model."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List


@dataclass
class Camp:
    """An outreach eye camp that patients are registered against.

    Attributes:
        id: Camp identifier (``camp-<epoch millis>``)
        name: Camp name
        location: Where the camp is held
        date: Day of the camp
        description: Short description for the operators
        assigned_students: Student emails allowed to enter patients
    """

    id: str
    name: str
    location: str
    date: date
    description: str = ""
    assigned_students: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "date": self.date.isoformat(),
            "description": self.description,
            "assignedStudents": list(self.assigned_students),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Camp":
        """Build a camp from its serialized dictionary.

        Raises:
            KeyError: If id, name, location or date is missing
            ValueError: If date is not an ISO-8601 date
        """
        return cls(
            id=data["id"],
            name=data["name"],
            location=data["location"],
            date=date.fromisoformat(data["date"]),
            description=data.get("description", ""),
            assigned_students=list(data.get("assignedStudents", [])),
        )
