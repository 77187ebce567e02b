"""Camp registry.

Camps are created by the coordinator before the outreach day; patients are
registered against a camp id. The registry keeps every camp in one JSON file.
"""

import json
import logging
import time
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional

from eyecamp_intake.models.camp import Camp
from eyecamp_intake.utils.exceptions import StorageError, ValidationError
from eyecamp_intake.utils.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3
MIN_LOCATION_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10


def generate_camp_id() -> str:
    """Generate a camp identifier from the current time.

    Returns:
        Identifier of the form ``camp-<epoch milliseconds>``
    """
    return f"camp-{int(time.time() * 1000)}"


def validate_camp_fields(
    name: str,
    location: str,
    description: str,
    assigned_students: Iterable[str],
) -> List[str]:
    """Check the camp creation rules.

    Returns:
        List of error messages (empty when valid)
    """
    errors = []
    if len((name or "").strip()) < MIN_NAME_LENGTH:
        errors.append(f"Camp name must be at least {MIN_NAME_LENGTH} characters")
    if len((location or "").strip()) < MIN_LOCATION_LENGTH:
        errors.append(f"Location must be at least {MIN_LOCATION_LENGTH} characters")
    if len((description or "").strip()) < MIN_DESCRIPTION_LENGTH:
        errors.append(f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters")
    if not [s for s in assigned_students if s and s.strip()]:
        errors.append("Please assign at least one student")
    return errors


class CampRegistry:
    """JSON file store of camps.

    Args:
        path: Registry file (created on first write)

    Example:
        >>> registry = CampRegistry(Path("data/camps.json"))
        >>> camp = registry.create(
        ...     name="Rampur Eye Camp",
        ...     location="Rampur PHC",
        ...     camp_date=date(2024, 6, 10),
        ...     description="Screening camp for the district",
        ...     assigned_students=["student@example.org"],
        ... )
        >>> registry.get(camp.id).name
        'Rampur Eye Camp'
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> List[Camp]:
        try:
            raw = read_json(self.path, default=[])
            return [Camp.from_dict(item) for item in raw]
        except (OSError, json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            raise StorageError(f"Failed to read camp registry {self.path}: {e}") from e

    def _store(self, camps: List[Camp]) -> None:
        try:
            write_json_atomic(self.path, [camp.to_dict() for camp in camps])
        except OSError as e:
            raise StorageError(f"Failed to write camp registry {self.path}: {e}") from e

    def create(
        self,
        name: str,
        location: str,
        camp_date: date,
        description: str,
        assigned_students: Iterable[str],
    ) -> Camp:
        """Validate and register a new camp.

        Raises:
            ValidationError: If any camp rule fails (all failures are listed)
            StorageError: If the registry cannot be read or written
        """
        students = [s.strip() for s in assigned_students if s and s.strip()]
        errors = validate_camp_fields(name, location, description, students)
        if errors:
            raise ValidationError("Invalid camp:\n  " + "\n  ".join(errors))

        camps = self._load()
        camp_id = generate_camp_id()
        # Two camps created within the same millisecond
        existing = {camp.id for camp in camps}
        while camp_id in existing:
            camp_id = f"camp-{int(camp_id.split('-', 1)[1]) + 1}"

        camp = Camp(
            id=camp_id,
            name=name.strip(),
            location=location.strip(),
            date=camp_date,
            description=description.strip(),
            assigned_students=students,
        )
        camps.append(camp)
        self._store(camps)
        logger.info(f"Created camp {camp.id} ({camp.name}) with {len(students)} students")
        return camp

    def get(self, camp_id: str) -> Optional[Camp]:
        for camp in self._load():
            if camp.id == camp_id:
                return camp
        return None

    def list(self) -> List[Camp]:
        """Return all camps, most recent date first."""
        return sorted(self._load(), key=lambda c: (c.date, c.id), reverse=True)
