"""Storage module.

This module provides the draft stores and the patient record repository.
"""

from eyecamp_intake.storage.drafts import (
    LEGACY_DRAFT_KEY,
    DraftStore,
    FileDraftStore,
    InMemoryDraftStore,
    draft_key,
)
from eyecamp_intake.storage.records import JsonPatientRepository, PatientRepository

__all__ = [
    "LEGACY_DRAFT_KEY",
    "DraftStore",
    "FileDraftStore",
    "InMemoryDraftStore",
    "JsonPatientRepository",
    "PatientRepository",
    "draft_key",
]
