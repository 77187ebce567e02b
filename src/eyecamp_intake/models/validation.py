"""Validation issue models shared by the form engine and the refraction checks."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class IssueSeverity(Enum):
    """Severity level for validation issues."""

    ERROR = "error"
    WARNING = "warning"


@dataclass
class ValidationIssue:
    """Individual validation issue with context and suggested fix.

    Attributes:
        field_name: Serialized field name the issue belongs to
        section: Form section the field lives in
        severity: ERROR blocks submission, WARNING is advisory
        message: Description of what's wrong
        suggestion: Actionable guidance on how to fix the issue
    """

    field_name: str
    section: str
    severity: IssueSeverity
    message: str
    suggestion: str = ""

    @property
    def is_error(self) -> bool:
        """Check if the issue blocks submission."""
        return self.severity == IssueSeverity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "field": self.field_name,
            "section": self.section,
            "severity": self.severity.value,
            "message": self.message,
            "suggestion": self.suggestion,
        }
