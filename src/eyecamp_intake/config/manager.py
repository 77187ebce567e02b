"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading functionality, including
support for JSON configuration files, environment variable overrides,
and configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from eyecamp_intake.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from eyecamp_intake.config.schema import Config, FormConfig, StorageConfig, SyncConfig
from eyecamp_intake.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "EYECAMP_"

# (environment suffix, config section, field, converter)
ENV_OVERRIDES: list[tuple[str, str, str, Callable[[str], Any]]] = [
    ("DATA_DIR", "storage", "data_dir", str),
    ("DRAFTS_DIR", "storage", "drafts_dir", str),
    ("RECORDS_DIR", "storage", "records_dir", str),
    ("CAMPS_FILE", "storage", "camps_file", str),
    ("FORM_MODE", "form", "mode", str),
    ("NAME_MIN_LENGTH", "form", "name_min_length", int),
    ("DRAFT_KEYING", "form", "draft_keying", str),
    ("SYNC_ENABLED", "sync", "enabled", lambda v: _parse_bool(v)),
    ("SYNC_SINK", "sync", "sink", str),
    ("SYNC_ENDPOINT_URL", "sync", "endpoint_url", str),
    ("SYNC_SHEETS_DIR", "sync", "sheets_dir", str),
    ("SYNC_QUEUE_FILE", "sync", "queue_file", str),
    ("SYNC_VERIFY_TLS", "sync", "verify_tls", lambda v: _parse_bool(v)),
    ("SYNC_TIMEOUT", "sync", "timeout", int),
    ("SYNC_MAX_RETRIES", "sync", "max_retries", int),
    ("SYNC_BACKOFF_FACTOR", "sync", "backoff_factor", float),
    ("LOG_LEVEL", "logging", "level", str),
    ("LOG_FILE", "logging", "log_file", str),
    ("REDACT_PII", "logging", "redact_pii", lambda v: _parse_bool(v)),
]


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (EYECAMP_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("camp/config.json"))
        >>> config.form.mode
        'tabbed'
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)
    config_dict = _apply_env_overrides(config_dict)
    _check_sensitive_values(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format."
        ) from e


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If JSON is malformed or the file is unreadable
    """
    if not config_path.exists():
        logger.info(f"Config file not found: {config_path}. Using default configuration.")
        # Deep copy so callers never mutate the defaults
        return json.loads(json.dumps(DEFAULT_CONFIG))

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_dict = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in config file: {config_path}\n"
            f"Error: {e}\n"
            f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file: {config_path}\n"
            f"Error: {e}\n"
            f"Fix: Check file permissions and path"
        ) from e

    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a JSON object at the top level"
        )

    logger.info(f"Loaded configuration from {config_path}")
    return config_dict


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with EYECAMP_ prefix.

    Environment variables follow the pattern: EYECAMP_<SETTING>
    For example: EYECAMP_FORM_MODE, EYECAMP_LOG_LEVEL, EYECAMP_SYNC_ENABLED

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with environment overrides applied

    Raises:
        ConfigurationError: If a numeric override cannot be converted
    """
    for suffix, section, field, convert in ENV_OVERRIDES:
        raw = os.getenv(f"{ENV_PREFIX}{suffix}")
        if not raw:
            continue
        try:
            value = convert(raw)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid value for {ENV_PREFIX}{suffix}: {raw!r}. Error: {e}"
            ) from e
        config_dict.setdefault(section, {})[field] = value
        logger.debug(f"Override: {section}.{field} from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string.

    Args:
        value: String value to parse (case-insensitive)

    Returns:
        Boolean value
    """
    return value.lower() in ("true", "1", "yes", "on")


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when an access token is stored in the configuration file.

    Args:
        config_dict: Configuration dictionary to check
    """
    sync = config_dict.get("sync", {})
    if isinstance(sync, dict) and "access_token" in sync:
        logger.warning(
            "WARNING: sync access token found in configuration file! "
            "Tokens should be set with 'eyecamp-intake sync login' or the "
            f"{ENV_PREFIX}SYNC_TOKEN environment variable instead."
        )


def get_storage_config(config: Config) -> StorageConfig:
    """Get storage configuration.

    Args:
        config: Configuration instance

    Returns:
        StorageConfig instance
    """
    return config.storage


def get_form_config(config: Config) -> FormConfig:
    """Get form engine configuration.

    Args:
        config: Configuration instance

    Returns:
        FormConfig instance
    """
    return config.form


def get_sync_config(config: Config) -> SyncConfig:
    """Get spreadsheet sync configuration.

    Args:
        config: Configuration instance

    Returns:
        SyncConfig instance
    """
    return config.sync
