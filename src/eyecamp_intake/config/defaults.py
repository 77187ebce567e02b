"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "storage": {
        # Everything lives under one local directory so a camp laptop can be backed up by copying it
        "data_dir": "data",
        "drafts_dir": "data/drafts",
        "records_dir": "data/records",
        "camps_file": "data/camps.json",
    },
    "form": {
        # Tabbed mode lets operators jump between sections freely
        "mode": "tabbed",
        "name_min_length": 2,
        # One draft slot per camp + patient
        "draft_keying": "per_patient",
    },
    "sync": {
        "enabled": False,
        "sink": "csv",
        "endpoint_url": None,
        "sheets_dir": "data/sheets",
        "queue_file": "data/sync_queue.json",
        "credentials_file": "data/sync_credentials.json",
        "verify_tls": True,
        "timeout": 30,
        "max_retries": 3,
        "backoff_factor": 0.5,
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/eyecamp-intake.log",
        # Do not redact PII by default (operator must opt-in)
        "redact_pii": False,
    },
}

DEFAULT_CONFIG_PATH = "config/config.json"
