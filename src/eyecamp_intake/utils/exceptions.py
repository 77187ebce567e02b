"""Custom exception classes for the Eye Camp Intake package.

All exceptions inherit from EyeCampIntakeError to allow catching all custom exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests


class EyeCampIntakeError(Exception):
    """Base exception for all Eye Camp Intake custom exceptions."""

    pass


class ValidationError(EyeCampIntakeError):
    """Raised when data validation fails.

    Examples:
        - Patient record file missing required demographics
        - Camp created without a name or location
        - Invalid outcome value in an imported record
    """

    pass


class UnknownFieldError(ValidationError):
    """Raised when a field name is not declared in the intake schema.

    Examples:
        - Typo in a field name (``rightEyeSphere`` instead of ``rightEyeSph``)
        - Field from a superseded form layout (``dryRefractionRight``)
    """

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"Unknown intake field: {field_name}")


class RefractionNotationError(ValidationError):
    """Raised when a refraction notation string cannot be parsed.

    Examples:
        - Missing DS/DC unit suffix
        - Axis given without a cylinder term
    """

    pass


class ConfigurationError(EyeCampIntakeError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration
        - Invalid configuration file format
        - Configuration value out of range
    """

    pass


class StorageError(EyeCampIntakeError):
    """Base exception for local durable storage failures.

    Examples:
        - Disk full or quota exceeded
        - Permission denied on the data directory
        - Corrupted JSON document
    """

    pass


class DraftStorageError(StorageError):
    """Raised when a draft cannot be written to or read from the draft store."""

    pass


class RecordStorageError(StorageError):
    """Raised when a finalized patient record cannot be persisted."""

    pass


class SyncError(EyeCampIntakeError):
    """Raised when spreadsheet synchronization fails.

    Examples:
        - Spreadsheet endpoint returned an error response
        - Spreadsheet file could not be written
    """

    pass


class SyncAuthError(SyncError):
    """Raised when the sync service has no valid credentials.

    Examples:
        - Access token never set
        - Access token expired
    """

    pass


class ErrorCategory(Enum):
    """Error categorization for handling strategy.

    Determines how errors should be handled when delivering records to the
    spreadsheet sync collaborator.

    Attributes:
        TRANSIENT: Queue and retry later (network issues, timeouts, 5xx, expired auth)
        PERMANENT: Do not retry (validation errors, 4xx)
        CRITICAL: Stop immediately (configuration errors, TLS failures)

    Example:
        >>> category = categorize_error(requests.Timeout("read timed out"))
        >>> category == ErrorCategory.TRANSIENT
        True
    """

    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"
    CRITICAL = "CRITICAL"


@dataclass
class ErrorInfo:
    """Structured error information for actionable error handling.

    Attributes:
        category: Error category (TRANSIENT, PERMANENT, CRITICAL)
        error_type: Exception class name (e.g., "ConnectionError")
        message: User-friendly error message
        remediation: Actionable guidance for resolving the error
        is_retryable: Whether the error should leave the item queued for retry
        technical_details: Optional technical details for debugging
        camp_id: Optional camp ID if error occurred during a camp sync
    """

    category: ErrorCategory
    error_type: str
    message: str
    remediation: str
    is_retryable: bool
    technical_details: Optional[str] = None
    camp_id: Optional[str] = None


def categorize_error(exception: Exception) -> ErrorCategory:
    """Categorize exception for error handling strategy.

    Args:
        exception: The exception to categorize

    Returns:
        ErrorCategory indicating handling strategy

    Example:
        >>> categorize_error(SyncAuthError("token expired"))
        <ErrorCategory.TRANSIENT: 'TRANSIENT'>
        >>> categorize_error(ValidationError("Invalid data"))
        <ErrorCategory.PERMANENT: 'PERMANENT'>
    """
    if isinstance(exception, ConfigurationError):
        return ErrorCategory.CRITICAL

    if isinstance(exception, requests.exceptions.SSLError):
        return ErrorCategory.CRITICAL

    # Missing or expired credentials resolve once the operator reconnects
    if isinstance(exception, SyncAuthError):
        return ErrorCategory.TRANSIENT

    if isinstance(exception, (requests.ConnectionError, requests.Timeout, StorageError)):
        return ErrorCategory.TRANSIENT

    if isinstance(exception, requests.HTTPError):
        if exception.response is not None:
            if exception.response.status_code in (401, 403, 429):
                return ErrorCategory.TRANSIENT
            if 500 <= exception.response.status_code < 600:
                return ErrorCategory.TRANSIENT
            if 400 <= exception.response.status_code < 500:
                return ErrorCategory.PERMANENT

    if isinstance(exception, SyncError):
        return ErrorCategory.TRANSIENT

    if isinstance(exception, ValidationError):
        return ErrorCategory.PERMANENT

    return ErrorCategory.PERMANENT


def create_error_info(exception: Exception, camp_id: Optional[str] = None) -> ErrorInfo:
    """Create structured error information from exception.

    Args:
        exception: Exception that occurred
        camp_id: Optional camp ID if error occurred during a camp sync

    Returns:
        ErrorInfo with categorization and remediation guidance
    """
    category = categorize_error(exception)

    technical_details = None
    if exception.__cause__ is not None:
        technical_details = (
            f"Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}"
        )

    return ErrorInfo(
        category=category,
        error_type=type(exception).__name__,
        message=str(exception),
        remediation=_generate_remediation(exception),
        is_retryable=category == ErrorCategory.TRANSIENT,
        technical_details=technical_details,
        camp_id=camp_id,
    )


def _generate_remediation(exception: Exception) -> str:
    """Generate actionable remediation message for an error.

    Args:
        exception: Exception that occurred

    Returns:
        Actionable remediation message
    """
    if isinstance(exception, SyncAuthError):
        return (
            "Spreadsheet account is not connected. Records stay queued and will "
            "sync after credentials are set with: eyecamp-intake sync login"
        )

    if isinstance(exception, requests.exceptions.SSLError):
        return (
            "TLS/SSL validation failed. Check the sync endpoint certificate "
            "or set sync.verify_tls=false in config.json (development only)."
        )

    if isinstance(exception, requests.ConnectionError):
        return (
            "Cannot reach the sync endpoint. Records stay queued; run "
            "'eyecamp-intake sync flush' once the camp has connectivity."
        )

    if isinstance(exception, requests.Timeout):
        return "Request timed out. Consider increasing sync.timeout in config.json."

    if isinstance(exception, StorageError):
        return (
            "Local storage write failed. Check free disk space and permissions "
            "on the configured data directory."
        )

    if isinstance(exception, ValidationError):
        return "Data validation failed. Correct the highlighted fields and resubmit."

    if isinstance(exception, ConfigurationError):
        return (
            "Configuration error. Check config.json for missing or invalid values. "
            "Use 'eyecamp-intake config validate' to inspect it."
        )

    return "Review the error message and check logs/eyecamp-intake.log for details."
