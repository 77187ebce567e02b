"""Persisted queue of spreadsheet deliveries waiting for connectivity."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from eyecamp_intake.models.patient import PatientRecord
from eyecamp_intake.utils.exceptions import StorageError
from eyecamp_intake.utils.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


@dataclass
class SyncQueueItem:
    """Pending delivery of a camp's patient rows.

    Attributes:
        camp_id: Camp whose rows are pending
        spreadsheet_id: Destination spreadsheet
        records: Serialized patient records (latest snapshot of the camp)
        queued_at: When this snapshot was queued
        attempts: Delivery attempts made so far
        last_error: Message of the most recent failure
    """

    camp_id: str
    spreadsheet_id: str
    records: List[Dict[str, Any]]
    queued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempts: int = 0
    last_error: Optional[str] = None

    def patient_records(self) -> List[PatientRecord]:
        return [PatientRecord.from_dict(data, camp_id=self.camp_id) for data in self.records]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "campId": self.camp_id,
            "spreadsheetId": self.spreadsheet_id,
            "patients": self.records,
            "queuedAt": self.queued_at.isoformat(),
            "attempts": self.attempts,
            "lastError": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncQueueItem":
        return cls(
            camp_id=data["campId"],
            spreadsheet_id=data.get("spreadsheetId") or data["campId"],
            records=list(data.get("patients", [])),
            queued_at=datetime.fromisoformat(data["queuedAt"])
            if data.get("queuedAt")
            else datetime.now(timezone.utc),
            attempts=int(data.get("attempts", 0)),
            last_error=data.get("lastError"),
        )


class SyncQueue:
    """Queue with at most one entry per camp.

    Queuing a camp that is already queued replaces its rows with the newer
    snapshot, so replaying the queue is idempotent. With a path the queue is
    loaded on construction and saved after every change.

    Args:
        path: JSON file backing the queue, or None for an in-memory queue
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else None
        self._items: List[SyncQueueItem] = self._load()

    def _load(self) -> List[SyncQueueItem]:
        if self.path is None:
            return []
        try:
            raw = read_json(self.path, default=[])
            return [SyncQueueItem.from_dict(item) for item in raw]
        except (OSError, json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            raise StorageError(f"Failed to read sync queue {self.path}: {e}") from e

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            write_json_atomic(self.path, [item.to_dict() for item in self._items])
        except OSError as e:
            raise StorageError(f"Failed to write sync queue {self.path}: {e}") from e

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> List[SyncQueueItem]:
        return list(self._items)

    def get(self, camp_id: str) -> Optional[SyncQueueItem]:
        for item in self._items:
            if item.camp_id == camp_id:
                return item
        return None

    def enqueue(
        self,
        camp_id: str,
        spreadsheet_id: str,
        records: List[PatientRecord],
        error: Optional[str] = None,
    ) -> SyncQueueItem:
        """Queue the latest rows of a camp, replacing any older entry.

        Returns:
            The queued item
        """
        existing = self.get(camp_id)
        serialized = [record.to_dict() for record in records]
        if existing is not None:
            existing.spreadsheet_id = spreadsheet_id
            existing.records = serialized
            existing.queued_at = datetime.now(timezone.utc)
            existing.last_error = error
            item = existing
        else:
            item = SyncQueueItem(
                camp_id=camp_id,
                spreadsheet_id=spreadsheet_id,
                records=serialized,
                last_error=error,
            )
            self._items.append(item)
        self._save()
        logger.debug(f"Queued {len(serialized)} rows for camp {camp_id}")
        return item

    def record_failure(self, camp_id: str, error: str) -> None:
        item = self.get(camp_id)
        if item is not None:
            item.attempts += 1
            item.last_error = error
            self._save()

    def remove(self, camp_id: str) -> None:
        before = len(self._items)
        self._items = [item for item in self._items if item.camp_id != camp_id]
        if len(self._items) != before:
            self._save()

    def clear(self) -> None:
        self._items = []
        self._save()
