"""Unit tests for error categorization and remediation."""

from unittest.mock import Mock

import pytest
from requests.exceptions import ConnectionError, HTTPError, SSLError, Timeout

from eyecamp_intake.utils.exceptions import (
    ConfigurationError,
    DraftStorageError,
    ErrorCategory,
    EyeCampIntakeError,
    RefractionNotationError,
    SyncAuthError,
    SyncError,
    UnknownFieldError,
    ValidationError,
    categorize_error,
    create_error_info,
)


class TestExceptionHierarchy:
    """Test the custom exception hierarchy."""

    def test_all_errors_share_base(self):
        """Test every custom error derives from EyeCampIntakeError."""
        for error in (ValidationError("x"), UnknownFieldError("f"), DraftStorageError("x"),
                      SyncAuthError("x"), ConfigurationError("x")):
            assert isinstance(error, EyeCampIntakeError)

    def test_notation_and_field_errors_are_validation_errors(self):
        """Test input errors are ValidationErrors."""
        assert isinstance(RefractionNotationError("x"), ValidationError)
        error = UnknownFieldError("rightEyeSphere")
        assert isinstance(error, ValidationError)
        assert error.field_name == "rightEyeSphere"
        assert "rightEyeSphere" in str(error)


class TestErrorCategorization:
    """Test error categorization functionality."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (ConfigurationError("bad"), ErrorCategory.CRITICAL),
            (SSLError("cert"), ErrorCategory.CRITICAL),
            (SyncAuthError("expired"), ErrorCategory.TRANSIENT),
            (ConnectionError("down"), ErrorCategory.TRANSIENT),
            (Timeout("slow"), ErrorCategory.TRANSIENT),
            (DraftStorageError("disk"), ErrorCategory.TRANSIENT),
            (SyncError("sheet locked"), ErrorCategory.TRANSIENT),
            (ValidationError("bad"), ErrorCategory.PERMANENT),
            (RuntimeError("other"), ErrorCategory.PERMANENT),
        ],
    )
    def test_categories(self, error, expected):
        """Test each error type maps to its handling category."""
        assert categorize_error(error) == expected

    @pytest.mark.parametrize(
        "status, expected",
        [
            (401, ErrorCategory.TRANSIENT),
            (429, ErrorCategory.TRANSIENT),
            (503, ErrorCategory.TRANSIENT),
            (400, ErrorCategory.PERMANENT),
            (404, ErrorCategory.PERMANENT),
        ],
    )
    def test_http_status_categories(self, status, expected):
        """Test HTTP errors are categorized by status code."""
        error = HTTPError(response=Mock(status_code=status))
        assert categorize_error(error) == expected


class TestCreateErrorInfo:
    """Test structured error info."""

    def test_transient_is_retryable(self):
        """Test transient errors are retryable with remediation."""
        info = create_error_info(SyncAuthError("token expired"), camp_id="camp-1")

        assert info.is_retryable
        assert info.camp_id == "camp-1"
        assert "sync login" in info.remediation

    def test_cause_in_technical_details(self):
        """Test chained causes are reported."""
        try:
            try:
                raise OSError("No space left on device")
            except OSError as e:
                raise DraftStorageError("write failed") from e
        except DraftStorageError as error:
            info = create_error_info(error)

        assert info.technical_details == "Caused by: OSError: No space left on device"
        assert "disk space" in info.remediation

    def test_permanent_not_retryable(self):
        """Test permanent errors are not retried."""
        info = create_error_info(ValidationError("bad record"))
        assert not info.is_retryable
        assert info.error_type == "ValidationError"
