"""Clinical intake form engine.

The engine holds one patient's in-progress record, partitioned into the six
intake sections. It validates sections against the declarative intake schema,
tracks which sections are complete, gates wizard navigation, checkpoints
drafts to a local store and submits finalized records.

Every public operation reports problems through its return value. Storage
and sync failures are caught here, logged and turned into result objects.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from eyecamp_intake.config.schema import FormConfig
from eyecamp_intake.form.schema import (
    FormValidationResult,
    IntakeSchema,
    SectionValidation,
    build_intake_schema,
)
from eyecamp_intake.logging_audit import log_audit_event
from eyecamp_intake.models.draft import Draft
from eyecamp_intake.models.patient import SECTION_ORDER, PatientRecord
from eyecamp_intake.models.refraction import Eye, RefractionStage
from eyecamp_intake.refraction.encoder import preview
from eyecamp_intake.storage.drafts import DraftStore, draft_key
from eyecamp_intake.storage.records import (
    PatientRepository,
    generate_patient_id,
    utc_now_iso,
)
from eyecamp_intake.sync.service import SyncService
from eyecamp_intake.utils.exceptions import StorageError

logger = logging.getLogger(__name__)

TABBED = "tabbed"
WIZARD = "wizard"
MODES = (TABBED, WIZARD)


@dataclass
class FormSettings:
    """Engine settings.

    Attributes:
        name_min_length: Minimum accepted patient name length
        draft_keying: "per_patient" or "single_slot"
    """

    name_min_length: int = 2
    draft_keying: str = "per_patient"

    @classmethod
    def from_config(cls, config: FormConfig) -> "FormSettings":
        return cls(name_min_length=config.name_min_length, draft_keying=config.draft_keying)


@dataclass
class FieldUpdate:
    """Result of set_field.

    Attributes:
        ok: False when the field name was rejected
        field_name: Field that was set
        section: Section owning the field (None when rejected)
        completed: Completed sections after the update
        error: Rejection message
    """

    ok: bool
    field_name: str
    section: Optional[str]
    completed: frozenset
    error: Optional[str] = None


@dataclass
class DraftSaveResult:
    """Result of save_draft."""

    ok: bool
    key: str
    error: Optional[str] = None


@dataclass
class SubmitResult:
    """Result of submit.

    Attributes:
        ok: True when the record was persisted
        record: The stored record (with id and timestamps) on success
        validation: Whole-record validation result
        sync_status: "delivered", "queued" or "failed" when a sync service
            is attached, otherwise None
        error: Persistence failure message
    """

    ok: bool
    record: Optional[PatientRecord]
    validation: FormValidationResult
    sync_status: Optional[str] = None
    error: Optional[str] = None

    @property
    def errors(self) -> Dict[str, List[str]]:
        """Error messages grouped by section."""
        grouped: Dict[str, List[str]] = {}
        for issue in self.validation.errors:
            grouped.setdefault(issue.section, []).append(issue.message)
        if self.error:
            grouped.setdefault("storage", []).append(self.error)
        return grouped


class IntakeFormEngine:
    """Section-partitioned intake form for one patient.

    Args:
        camp_id: Camp the patient is registered at
        draft_store: Store used for draft checkpoints
        repository: Persistence for submitted records
        sync_service: Optional spreadsheet sync for submitted records
        mode: "tabbed" (free navigation) or "wizard" (gated navigation)
        record: Existing record to edit; a blank record when omitted
        settings: Engine settings
        spreadsheet_id: Destination sheet for sync (defaults to the camp id)

    Raises:
        ValueError: If mode is unknown or camp_id is empty

    Example:
        >>> engine = IntakeFormEngine("camp-1718000000000", draft_store=InMemoryDraftStore())
        >>> engine.set_field("name", "Rajesh Kumar").section
        'demographics'
        >>> engine.refraction_preview("dry", "right")
        'Example: +1.00DS/-0.50DCx180'
    """

    def __init__(
        self,
        camp_id: str,
        *,
        draft_store: DraftStore,
        repository: Optional[PatientRepository] = None,
        sync_service: Optional[SyncService] = None,
        mode: str = TABBED,
        record: Optional[PatientRecord] = None,
        settings: Optional[FormSettings] = None,
        spreadsheet_id: Optional[str] = None,
    ) -> None:
        if not camp_id:
            raise ValueError("camp_id is required")
        if mode not in MODES:
            raise ValueError(f"Invalid form mode: {mode}. Must be one of: {', '.join(MODES)}")

        self.camp_id = camp_id
        self.mode = mode
        self.settings = settings or FormSettings()
        self.draft_store = draft_store
        self.repository = repository
        self.sync_service = sync_service
        self.spreadsheet_id = spreadsheet_id
        self.schema: IntakeSchema = build_intake_schema(self.settings.name_min_length)

        self._record = record.copy() if record is not None else PatientRecord(camp_id=camp_id)
        self._record.camp_id = camp_id
        self._active_section = SECTION_ORDER[0]
        self._completed = self.compute_completion()

    # -- state ------------------------------------------------------------

    @property
    def record(self) -> PatientRecord:
        """Copy of the record being edited."""
        return self._record.copy()

    @property
    def patient_id(self) -> Optional[str]:
        return self._record.id or None

    @property
    def active_section(self) -> str:
        return self._active_section

    @property
    def completed_sections(self) -> frozenset:
        return self._completed

    @property
    def draft_key(self) -> str:
        return draft_key(self.camp_id, self.patient_id, self.settings.draft_keying)

    @property
    def progress(self) -> float:
        """Percentage shown on the progress bar.

        Wizard mode reports the position of the active step; tabbed mode
        reports the share of completed sections.
        """
        total = len(SECTION_ORDER)
        if self.mode == WIZARD:
            return (SECTION_ORDER.index(self._active_section) + 1) / total * 100
        return len(self._completed) / total * 100

    def values(self) -> Dict[str, Any]:
        return self._record.form_values()

    def get_field(self, name: str) -> Any:
        """Return a field value.

        Raises:
            UnknownFieldError: If the field is not part of the form
        """
        return self.schema.field(name).get(self._record)

    def set_field(self, name: str, value: Any) -> FieldUpdate:
        """Set one field and recompute section completion.

        Unknown field names are rejected without touching the record.

        Args:
            name: Serialized field name, e.g. "rightEyeSph"
            value: New value; text for every field, bool for sign toggles

        Returns:
            FieldUpdate with the owning section and the new completion set
        """
        if not self.schema.has_field(name):
            logger.warning(f"Rejected update of unknown field: {name}")
            return FieldUpdate(
                ok=False,
                field_name=name,
                section=None,
                completed=self._completed,
                error=f"Unknown intake field: {name}",
            )

        spec = self.schema.field(name)
        spec.set(self._record, value)
        self._completed = self.compute_completion()
        return FieldUpdate(ok=True, field_name=name, section=spec.section, completed=self._completed)

    def update(self, values: Dict[str, Any]) -> List[FieldUpdate]:
        """Set several fields; each is accepted or rejected on its own."""
        return [self.set_field(name, value) for name, value in values.items()]

    def reset(self) -> None:
        """Clear the form back to a blank record on the first section."""
        self._record = PatientRecord(camp_id=self.camp_id)
        self._active_section = SECTION_ORDER[0]
        self._completed = self.compute_completion()

    # -- validation -------------------------------------------------------

    def validate_section(self, section: str) -> SectionValidation:
        """Validate one section.

        Unknown section ids come back as an invalid result, not an exception.
        """
        return self.schema.validate_section(self._record, section)

    def validate_all(self) -> FormValidationResult:
        return self.schema.validate_all(self._record)

    def compute_completion(self) -> frozenset:
        """Return the ids of sections whose completion predicate holds."""
        return self.schema.completed_sections(self._record)

    # -- navigation -------------------------------------------------------

    def go_to(self, section: str) -> bool:
        """Make a section active.

        Tabbed mode always allows the move. Wizard mode allows moving back
        freely and moving forward only when every section from the active one
        up to the target validates.

        Returns:
            True when the active section changed or already was the target;
            False for an unknown section or a blocked wizard move
        """
        if section not in SECTION_ORDER:
            logger.warning(f"Ignoring navigation to unknown section: {section}")
            return False
        current = SECTION_ORDER.index(self._active_section)
        target = SECTION_ORDER.index(section)

        if self.mode == WIZARD and target > current:
            for intermediate in SECTION_ORDER[current:target]:
                if not self.validate_section(intermediate).valid:
                    logger.debug(f"Wizard blocked at {intermediate} on the way to {section}")
                    return False

        self._active_section = section
        return True

    def next_section(self) -> bool:
        """Advance to the next section.

        In wizard mode the active section must validate first.

        Returns:
            False when already on the last section or validation failed
        """
        index = SECTION_ORDER.index(self._active_section)
        if index == len(SECTION_ORDER) - 1:
            return False
        return self.go_to(SECTION_ORDER[index + 1])

    def previous_section(self) -> bool:
        index = SECTION_ORDER.index(self._active_section)
        if index == 0:
            return False
        self._active_section = SECTION_ORDER[index - 1]
        return True

    def refraction_preview(
        self,
        stage: Union[RefractionStage, str],
        eye: Union[Eye, str],
    ) -> str:
        """Notation preview for one refraction stage and eye.

        Returns:
            Encoded notation, or the example placeholder when nothing is entered
        """
        return preview(self._record.measurement(RefractionStage(stage), Eye(eye)))

    # -- drafts -----------------------------------------------------------

    def _draft(self) -> Draft:
        return Draft(
            data=self._record.form_values(),
            camp_id=self.camp_id,
            active_section=self._active_section,
            timestamp=datetime.now(timezone.utc),
            patient_id=self.patient_id,
            # Read by clients that still track the wizard step number
            extra={"step": SECTION_ORDER.index(self._active_section) + 1},
        )

    def save_draft(self) -> DraftSaveResult:
        """Checkpoint the current form state to the draft store.

        A failed write is reported in the result; the in-memory form is kept.
        """
        key = self.draft_key
        try:
            self.draft_store.set(key, self._draft().to_json())
        except (StorageError, OSError) as e:
            logger.error(f"Failed to save draft {key}: {e}")
            log_audit_event(
                "DRAFT_SAVED",
                {"status": "failure", "camp_id": self.camp_id, "error_message": str(e)},
            )
            return DraftSaveResult(ok=False, key=key, error=str(e))

        log_audit_event(
            "DRAFT_SAVED",
            {
                "status": "success",
                "camp_id": self.camp_id,
                "patient_id": self.patient_id or "new",
                "section": self._active_section,
            },
        )
        return DraftSaveResult(ok=True, key=key)

    def load_draft(self, key: Optional[str] = None) -> Optional[Draft]:
        """Read a draft without applying it.

        Args:
            key: Draft key; the engine's own slot when omitted

        Returns:
            The draft, or None when there is none or it cannot be read
        """
        key = key or self.draft_key
        try:
            text = self.draft_store.get(key)
        except (StorageError, OSError) as e:
            logger.error(f"Failed to read draft {key}: {e}")
            return None
        if text is None:
            return None
        try:
            return Draft.from_json(text)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring corrupt draft {key}: {e}")
            return None

    def resume_draft(self, key: Optional[str] = None) -> bool:
        """Restore the record and active section from a draft.

        Drafts belonging to another camp are not applied.

        Returns:
            True when a draft was applied
        """
        draft = self.load_draft(key)
        if draft is None:
            return False
        if draft.camp_id and draft.camp_id != self.camp_id:
            logger.warning(
                f"Draft belongs to camp {draft.camp_id}, not {self.camp_id}; not resuming"
            )
            return False

        record = PatientRecord.from_dict(draft.data, camp_id=self.camp_id)
        record.camp_id = self.camp_id
        record.id = draft.patient_id or ""
        self._record = record
        self._active_section = (
            draft.active_section if draft.active_section in SECTION_ORDER else SECTION_ORDER[0]
        )
        self._completed = self.compute_completion()
        logger.info(f"Resumed draft from {draft.timestamp.isoformat()} at {self._active_section}")
        return True

    def clear_draft(self, key: Optional[str] = None) -> bool:
        key = key or self.draft_key
        try:
            self.draft_store.delete(key)
        except (StorageError, OSError) as e:
            logger.warning(f"Failed to clear draft {key}: {e}")
            return False
        return True

    # -- submission -------------------------------------------------------

    def _persist(self, record: PatientRecord) -> PatientRecord:
        if self.repository is not None:
            return self.repository.save(record)
        stored = record.copy()
        now = utc_now_iso()
        stored.id = stored.id or generate_patient_id()
        stored.created_at = stored.created_at or now
        stored.updated_at = now
        return stored

    def _sync(self, stored: PatientRecord) -> Optional[str]:
        if self.sync_service is None:
            return None
        try:
            if self.repository is not None:
                records = self.repository.list_for_camp(self.camp_id)
            else:
                records = [stored]
            status = self.sync_service.sync_records(self.camp_id, records, self.spreadsheet_id)
        except Exception as e:
            logger.error(f"Sync of camp {self.camp_id} failed after submit: {e}")
            return "failed"
        return status.value

    def submit(self) -> SubmitResult:
        """Validate and persist the record.

        On validation failure the active section moves to the first failing
        section and nothing is persisted. On success the record is stored,
        its draft is cleared, the form is reset and the camp's rows are handed
        to the sync service.

        Returns:
            SubmitResult
        """
        validation = self.validate_all()
        if not validation.valid:
            failing = validation.first_failing_section
            if failing is not None:
                self._active_section = failing
            log_audit_event(
                "SUBMIT_REJECTED",
                {
                    "status": "failure",
                    "camp_id": self.camp_id,
                    "section": failing,
                    "error_count": len(validation.errors),
                    "error_message": "validation failed",
                },
            )
            return SubmitResult(ok=False, record=None, validation=validation)

        key = self.draft_key
        try:
            stored = self._persist(self._record)
        except (StorageError, OSError) as e:
            logger.error(f"Failed to persist patient for camp {self.camp_id}: {e}")
            log_audit_event(
                "PATIENT_SUBMITTED",
                {"status": "failure", "camp_id": self.camp_id, "error_message": str(e)},
            )
            return SubmitResult(ok=False, record=None, validation=validation, error=str(e))

        self.clear_draft(key)
        self.reset()
        sync_status = self._sync(stored)

        log_audit_event(
            "PATIENT_SUBMITTED",
            {
                "status": "success",
                "camp_id": self.camp_id,
                "patient_id": stored.id,
                "warning_count": len(validation.warnings),
                "sync_status": sync_status or "disabled",
            },
        )
        return SubmitResult(ok=True, record=stored, validation=validation, sync_status=sync_status)
