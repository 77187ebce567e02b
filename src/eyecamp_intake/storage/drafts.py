"""Draft storage collaborators.

Drafts are opaque JSON text keyed by a slot name. The form engine owns the
serialization; stores only keep the text.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol
from urllib.parse import quote, unquote

from eyecamp_intake.utils.exceptions import DraftStorageError
from eyecamp_intake.utils.files import write_text_atomic

logger = logging.getLogger(__name__)

# Slot name used by the browser client, shared by every patient in single_slot mode
LEGACY_DRAFT_KEY = "patientFormData"

NEW_PATIENT_SLOT = "new"


def draft_key(
    camp_id: str, patient_id: Optional[str] = None, keying: str = "per_patient"
) -> str:
    """Return the storage key of the draft slot for a camp and patient.

    Args:
        camp_id: Owning camp
        patient_id: Patient being edited, or None for a new registration
        keying: "per_patient" (one slot per camp and patient) or "single_slot"

    Returns:
        Draft key

    Example:
        >>> draft_key("camp-1718000000000")
        'patientFormData:camp-1718000000000:new'
        >>> draft_key("camp-1718000000000", keying="single_slot")
        'patientFormData'
    """
    if keying == "single_slot":
        return LEGACY_DRAFT_KEY
    return f"{LEGACY_DRAFT_KEY}:{camp_id}:{patient_id or NEW_PATIENT_SLOT}"


class DraftStore(Protocol):
    """Key/value store for draft text."""

    def set(self, key: str, text: str) -> None: ...

    def get(self, key: str) -> Optional[str]: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


class InMemoryDraftStore:
    """Draft store backed by a dictionary. Used in tests and for throwaway sessions."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def set(self, key: str, text: str) -> None:
        self._items[key] = text

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._items)


class FileDraftStore:
    """Draft store keeping one JSON file per slot in a directory.

    Writes go through a temporary file and an atomic rename, so a crash
    mid-save leaves the previous draft intact. Last write wins.

    Args:
        directory: Directory holding the draft files (created on first write)

    Example:
        >>> store = FileDraftStore(Path("data/drafts"))
        >>> store.set("patientFormData", '{"data": {}}')
        >>> store.keys()
        ['patientFormData']
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{self.SUFFIX}"

    def set(self, key: str, text: str) -> None:
        """Write a draft.

        Raises:
            DraftStorageError: If the draft file cannot be written
        """
        path = self._path(key)
        try:
            write_text_atomic(path, text)
        except OSError as e:
            raise DraftStorageError(f"Failed to write draft {key!r} to {path}: {e}") from e
        logger.debug(f"Draft written: {path}")

    def get(self, key: str) -> Optional[str]:
        """Read a draft.

        Raises:
            DraftStorageError: If the draft file exists but cannot be read
        """
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise DraftStorageError(f"Failed to read draft {key!r} from {path}: {e}") from e

    def delete(self, key: str) -> None:
        """Remove a draft. Missing drafts are ignored.

        Raises:
            DraftStorageError: If the draft file cannot be removed
        """
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise DraftStorageError(f"Failed to delete draft {key!r}: {e}") from e

    def keys(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(
            unquote(p.name[: -len(self.SUFFIX)])
            for p in self.directory.glob(f"*{self.SUFFIX}")
            if not p.name.startswith(".")
        )
