"""Patient record persistence.

Finalized records are stored as one JSON document per camp, mapping patient
id to the serialized record. This mirrors the per-camp patient map the browser
client keeps in local storage.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote

from eyecamp_intake.models.patient import PatientRecord
from eyecamp_intake.utils.exceptions import RecordStorageError
from eyecamp_intake.utils.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


def generate_patient_id() -> str:
    """Generate a new patient identifier.

    Returns:
        Identifier of the form ``patient-<12 hex chars>``
    """
    return f"patient-{uuid.uuid4().hex[:12]}"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PatientRepository(Protocol):
    """Durable storage of finalized patient records."""

    def save(self, record: PatientRecord) -> PatientRecord: ...

    def get(self, camp_id: str, patient_id: str) -> Optional[PatientRecord]: ...

    def list_for_camp(self, camp_id: str) -> List[PatientRecord]: ...


class JsonPatientRepository:
    """Patient repository writing one JSON document per camp.

    Document layout::

        {"campId": "camp-1718000000000",
         "patients": {"patient-9f3c...": {...record...}}}

    Args:
        directory: Directory holding the camp documents
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, camp_id: str) -> Path:
        return self.directory / f"{quote(camp_id, safe='')}.json"

    def _load(self, camp_id: str) -> Dict[str, Any]:
        path = self._path(camp_id)
        try:
            document = read_json(path, default=None)
        except (OSError, json.JSONDecodeError) as e:
            raise RecordStorageError(f"Failed to read patient records from {path}: {e}") from e
        if document is None:
            return {"campId": camp_id, "patients": {}}
        if not isinstance(document, dict) or not isinstance(document.get("patients"), dict):
            raise RecordStorageError(f"Malformed patient record document: {path}")
        return document

    def save(self, record: PatientRecord) -> PatientRecord:
        """Insert or update a patient record.

        Assigns an id and created_at on first save and refreshes updated_at on
        every save. An existing record keeps its stored created_at. The passed
        record is not modified.

        Args:
            record: Record to persist (camp_id is required)

        Returns:
            The stored record, with id and timestamps filled in

        Raises:
            RecordStorageError: If the record has no camp or cannot be written
        """
        if not record.camp_id:
            raise RecordStorageError("Cannot save a patient record without a camp id")

        stored = record.copy()
        now = utc_now_iso()
        if not stored.id:
            stored.id = generate_patient_id()
        if not stored.created_at:
            stored.created_at = now
        stored.updated_at = now

        document = self._load(stored.camp_id)
        previous = document["patients"].get(stored.id)
        if previous and previous.get("createdAt"):
            stored.created_at = previous["createdAt"]
        document["patients"][stored.id] = stored.to_dict()

        path = self._path(stored.camp_id)
        try:
            write_json_atomic(path, document)
        except OSError as e:
            raise RecordStorageError(f"Failed to write patient records to {path}: {e}") from e

        logger.info(f"Saved patient {stored.id} for camp {stored.camp_id}")
        return stored

    def get(self, camp_id: str, patient_id: str) -> Optional[PatientRecord]:
        data = self._load(camp_id)["patients"].get(patient_id)
        if data is None:
            return None
        return PatientRecord.from_dict(data, camp_id=camp_id)

    def list_for_camp(self, camp_id: str) -> List[PatientRecord]:
        """Return every record of a camp, oldest first."""
        patients = self._load(camp_id)["patients"].values()
        records = [PatientRecord.from_dict(data, camp_id=camp_id) for data in patients]
        return sorted(records, key=lambda r: (r.created_at, r.id))
