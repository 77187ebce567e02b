"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class StorageConfig(BaseModel):
    """Configuration for local durable storage.

    Attributes:
        data_dir: Base data directory
        drafts_dir: Directory holding one JSON file per draft slot
        records_dir: Directory holding one JSON document of patients per camp
        camps_file: JSON file with the camp registry
    """

    data_dir: Path = Field(default=Path("data"), description="Base data directory")
    drafts_dir: Path = Field(default=Path("data/drafts"), description="Draft directory")
    records_dir: Path = Field(
        default=Path("data/records"), description="Finalized patient records directory"
    )
    camps_file: Path = Field(default=Path("data/camps.json"), description="Camp registry file")


class FormConfig(BaseModel):
    """Configuration for the intake form engine.

    Attributes:
        mode: Navigation mode, "tabbed" (free navigation) or "wizard" (gated)
        name_min_length: Minimum accepted length for the patient name
        draft_keying: "per_patient" keys drafts by camp and patient,
            "single_slot" reuses one global draft slot
    """

    mode: str = Field(default="tabbed", description="Navigation mode: tabbed or wizard")
    name_min_length: int = Field(default=2, ge=1, description="Minimum patient name length")
    draft_keying: str = Field(
        default="per_patient", description="Draft keying: per_patient or single_slot"
    )

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Validate navigation mode.

        Args:
            v: Mode string

        Returns:
            Validated mode (lowercase)

        Raises:
            ValueError: If mode is not tabbed or wizard
        """
        v_lower = v.lower()
        if v_lower not in ("tabbed", "wizard"):
            raise ValueError(f"Invalid form mode: {v}. Must be one of: tabbed, wizard")
        return v_lower

    @field_validator("draft_keying")
    @classmethod
    def validate_draft_keying(cls, v: str) -> str:
        """Validate draft keying strategy.

        Args:
            v: Keying strategy string

        Returns:
            Validated keying strategy

        Raises:
            ValueError: If keying strategy is unknown
        """
        if v not in ("per_patient", "single_slot"):
            raise ValueError(
                f"Invalid draft_keying: {v}. Must be one of: per_patient, single_slot"
            )
        return v


class SyncConfig(BaseModel):
    """Configuration for spreadsheet synchronization.

    Attributes:
        enabled: Whether submitted records are forwarded to the sync service
        sink: Spreadsheet sink type, "csv" (local sheet files) or "http"
        endpoint_url: Spreadsheet endpoint for the http sink
        sheets_dir: Directory for csv sheet files
        queue_file: Persisted pending-delivery queue
        credentials_file: Persisted access token and expiry
        verify_tls: Whether to verify TLS certificates for the http sink
        timeout: Request timeout in seconds
        max_retries: Maximum retry attempts for failed requests
        backoff_factor: Exponential backoff factor for retries
    """

    enabled: bool = False
    sink: str = Field(default="csv", description="Spreadsheet sink: csv or http")
    endpoint_url: Optional[str] = Field(default=None, description="HTTP sink endpoint URL")
    sheets_dir: Path = Field(default=Path("data/sheets"), description="CSV sheet directory")
    queue_file: Path = Field(
        default=Path("data/sync_queue.json"), description="Pending sync queue file"
    )
    credentials_file: Path = Field(
        default=Path("data/sync_credentials.json"), description="Sync credentials file"
    )
    verify_tls: bool = True
    timeout: int = Field(default=30, ge=1, description="Request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Maximum retry attempts")
    backoff_factor: float = Field(default=0.5, ge=0.0, description="Exponential backoff factor")

    @field_validator("sink")
    @classmethod
    def validate_sink(cls, v: str) -> str:
        """Validate sink type.

        Args:
            v: Sink type string

        Returns:
            Validated sink type (lowercase)

        Raises:
            ValueError: If sink type is unknown
        """
        v_lower = v.lower()
        if v_lower not in ("csv", "http"):
            raise ValueError(f"Invalid sync sink: {v}. Must be one of: csv, http")
        return v_lower

    @field_validator("endpoint_url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate URL is valid HTTP/HTTPS.

        Args:
            v: URL string to validate

        Returns:
            Validated URL string

        Raises:
            ValueError: If URL does not start with http:// or https://
        """
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL: {v}. Must start with http:// or https://")
        return v

    @model_validator(mode="after")
    def validate_http_endpoint(self) -> "SyncConfig":
        """Require an endpoint when the http sink is selected.

        Returns:
            Validated SyncConfig instance

        Raises:
            ValueError: If sink is http and endpoint_url is missing
        """
        if self.sink == "http" and not self.endpoint_url:
            raise ValueError(
                "sync.endpoint_url is required when sync.sink is 'http'. "
                "Fix: Set endpoint_url or use sink 'csv'."
            )
        return self


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_pii: Whether to redact PII from logs
    """

    level: str = Field(default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL")
    log_file: Path = Field(default=Path("logs/eyecamp-intake.log"), description="Log file path")
    redact_pii: bool = Field(default=False, description="Redact PII from logs")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Args:
            v: Log level string

        Returns:
            Validated log level (uppercase)

        Raises:
            ValueError: If log level is not valid
        """
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return v_upper


class Config(BaseModel):
    """Root configuration model.

    Attributes:
        storage: Local storage locations
        form: Intake form engine settings
        sync: Spreadsheet sync settings
        logging: Logging configuration

    Example:
        >>> config = Config(form=FormConfig(mode="wizard"))
        >>> config.form.mode
        'wizard'
    """

    storage: StorageConfig = StorageConfig()
    form: FormConfig = FormConfig()
    sync: SyncConfig = SyncConfig()
    logging: LoggingConfig = LoggingConfig()
