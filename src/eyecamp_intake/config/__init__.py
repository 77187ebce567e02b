"""Config module.

This module provides configuration management functionality.
"""

from eyecamp_intake.config.manager import (
    get_form_config,
    get_storage_config,
    get_sync_config,
    load_config,
)
from eyecamp_intake.config.schema import (
    Config,
    FormConfig,
    LoggingConfig,
    StorageConfig,
    SyncConfig,
)

__all__ = [
    "load_config",
    "get_form_config",
    "get_storage_config",
    "get_sync_config",
    "Config",
    "FormConfig",
    "LoggingConfig",
    "StorageConfig",
    "SyncConfig",
]
