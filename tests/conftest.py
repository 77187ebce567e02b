"""
Shared pytest configuration and fixtures.

This module provides fixtures and configuration used across the unit and
integration test suites.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Generator

import pytest

from eyecamp_intake.form.engine import IntakeFormEngine
from eyecamp_intake.storage.drafts import InMemoryDraftStore
from eyecamp_intake.storage.records import JsonPatientRepository

CAMP_ID = "camp-1718000000000"


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """
    Remove handlers installed by configure_logging after each test.

    Yields:
        None
    """
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, logging.FileHandler) or getattr(handler, "baseFilename", None):
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host EYECAMP_* variables out of the tests."""
    for name in (
        "EYECAMP_SYNC_TOKEN",
        "EYECAMP_SYNC_TOKEN_EXPIRES_IN",
        "EYECAMP_FORM_MODE",
        "EYECAMP_LOG_LEVEL",
        "EYECAMP_LOG_FILE",
        "EYECAMP_SYNC_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """
    Return the project root directory.

    Returns:
        Path: Absolute path to the project root directory.
    """
    return Path(__file__).parent.parent


@pytest.fixture
def camp_id() -> str:
    """Camp identifier used across tests."""
    return CAMP_ID


@pytest.fixture
def minimal_patient() -> Dict[str, Any]:
    """
    Return the smallest set of fields that makes a record submittable.

    Returns:
        dict: Demographics plus outcome, keyed by serialized field name.
    """
    return {"name": "Rajesh Kumar", "age": "45", "sex": "male", "outcome": "glasses"}


@pytest.fixture
def full_patient(minimal_patient: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a fully filled patient as serialized form values.

    Returns:
        dict: Every section filled with plausible values.
    """
    return {
        **minimal_patient,
        "history": "Diabetic for 10 years, blurred near vision",
        "distantVisionRight": "6/9",
        "distantVisionLeft": "6/12",
        "nearVisionRight": "N6",
        "nearVisionLeft": "N8",
        "rightEyeSph": "1.50",
        "rightEyeSphPositive": True,
        "rightEyeCyl": "0.50",
        "rightEyeCylPositive": False,
        "rightEyeAxis": "90",
        "leftEyeSph": "1.25",
        "acceptanceRightSph": "1.25",
        "acceptanceLeftSph": "1.00",
        "addGivenRightSph": "2.00",
        "addGivenLeftSph": "2.00",
        "ocularDiagnosis": "Presbyopia with hyperopia",
    }


@pytest.fixture
def draft_store() -> InMemoryDraftStore:
    """Empty in-memory draft store."""
    return InMemoryDraftStore()


@pytest.fixture
def repository(tmp_path: Path) -> JsonPatientRepository:
    """Patient repository writing under tmp_path."""
    return JsonPatientRepository(tmp_path / "records")


@pytest.fixture
def make_engine(
    draft_store: InMemoryDraftStore, repository: JsonPatientRepository
) -> Callable[..., IntakeFormEngine]:
    """
    Return a factory for engines wired to the test stores.

    Returns:
        Callable accepting IntakeFormEngine keyword overrides.
    """

    def _make(**kwargs: Any) -> IntakeFormEngine:
        kwargs.setdefault("draft_store", draft_store)
        kwargs.setdefault("repository", repository)
        return IntakeFormEngine(kwargs.pop("camp_id", CAMP_ID), **kwargs)

    return _make


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """
    Create a configuration file keeping every path under tmp_path.

    Returns:
        Path: Path to the configuration file.
    """
    data_dir = tmp_path / "data"
    config = {
        "storage": {
            "data_dir": str(data_dir),
            "drafts_dir": str(data_dir / "drafts"),
            "records_dir": str(data_dir / "records"),
            "camps_file": str(data_dir / "camps.json"),
        },
        "form": {"mode": "tabbed", "name_min_length": 2, "draft_keying": "per_patient"},
        "sync": {
            "enabled": True,
            "sink": "csv",
            "sheets_dir": str(data_dir / "sheets"),
            "queue_file": str(data_dir / "sync_queue.json"),
            "credentials_file": str(data_dir / "sync_credentials.json"),
        },
        "logging": {"level": "INFO", "log_file": str(tmp_path / "logs" / "test.log")},
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config, indent=2))
    return path
