"""Unit tests for logging_audit module."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from eyecamp_intake.logging_audit import (
    PIIRedactingFormatter,
    configure_logging,
    get_logger,
    log_audit_event,
)


def _record(msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0, msg=msg, args=(), exc_info=None
    )


class TestConfigureLogging:
    """Test logging configuration."""

    def test_configure_logging_creates_file(self, tmp_path):
        """Test logging configuration creates log file."""
        # Arrange
        log_file = tmp_path / "test.log"

        # Act
        configure_logging(level="INFO", log_file=log_file, redact_pii=False)
        get_logger(__name__).info("Test message")

        # Assert
        assert log_file.exists()
        assert "Test message" in log_file.read_text()

    def test_configure_logging_file_level_debug(self, tmp_path):
        """Test file handler always uses DEBUG level while console follows the setting."""
        # Arrange
        log_file = tmp_path / "test.log"

        # Act
        configure_logging(level="WARNING", log_file=log_file, redact_pii=False)
        get_logger(__name__).debug("Debug message")

        # Assert
        assert "Debug message" in log_file.read_text()
        root_logger = logging.getLogger()
        console = [
            h for h in root_logger.handlers
            if isinstance(h, logging.StreamHandler) and not hasattr(h, "baseFilename")
        ]
        assert console[0].level == logging.WARNING

    def test_configure_logging_creates_directory(self, tmp_path):
        """Test logging creates parent directories if needed."""
        log_file = tmp_path / "nested" / "dir" / "test.log"

        configure_logging(level="INFO", log_file=log_file)

        assert log_file.parent.is_dir()

    def test_configure_logging_invalid_level_raises_error(self, tmp_path):
        """Test invalid log levels raise ValueError."""
        with pytest.raises(ValueError) as exc_info:
            configure_logging(level="LOUD", log_file=tmp_path / "test.log")

        assert "Invalid log level" in str(exc_info.value)

    def test_configure_logging_environment_variable(self, tmp_path, monkeypatch):
        """Test EYECAMP_LOG_FILE is used when no file is given."""
        # Arrange
        env_log_file = tmp_path / "env.log"
        monkeypatch.setenv("EYECAMP_LOG_FILE", str(env_log_file))

        # Act
        configure_logging(level="INFO")
        get_logger(__name__).info("From env")

        # Assert
        assert "From env" in env_log_file.read_text()

    def test_configure_logging_idempotent(self, tmp_path):
        """Test reconfiguring does not stack handlers."""
        log_file = tmp_path / "test.log"

        configure_logging(level="INFO", log_file=log_file)
        configure_logging(level="DEBUG", log_file=log_file)

        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1


class TestPIIRedactingFormatter:
    """Test PII redaction formatter."""

    def test_redact_patient_name(self):
        """Test name=... values are masked."""
        formatter = PIIRedactingFormatter(redact_pii=True)

        result = formatter.format(_record('Saved draft name="Rajesh Kumar" age=45'))

        assert "Rajesh Kumar" not in result
        assert "[NAME-REDACTED]" in result
        assert "age=[AGE-REDACTED]" in result

    def test_redact_labelled_name(self):
        """Test "Patient: First Last" is masked."""
        formatter = PIIRedactingFormatter(redact_pii=True)

        result = formatter.format(_record("Patient: Asha Devi registered"))

        assert result.endswith("Patient: [NAME-REDACTED] registered")

    def test_no_redaction_when_disabled(self):
        """Test messages pass through when redaction is off."""
        formatter = PIIRedactingFormatter(redact_pii=False)

        result = formatter.format(_record('name="Rajesh Kumar"'))

        assert "Rajesh Kumar" in result


class TestLogAuditEvent:
    """Test audit trail logging."""

    def test_log_audit_event_success(self, tmp_path):
        """Test key fields come first in a fixed order."""
        # Arrange
        log_file = tmp_path / "test.log"
        configure_logging(level="INFO", log_file=log_file)

        # Act
        log_audit_event(
            "PATIENT_SUBMITTED",
            {"patient_id": "patient-1", "status": "success", "camp_id": "camp-1", "extra": 1},
        )

        # Assert
        content = log_file.read_text()
        assert "AUDIT [PATIENT_SUBMITTED] | status=success | camp_id=camp-1 | patient_id=patient-1" in content
        assert "extra=1" in content
        assert "correlation_id=" in content

    def test_log_audit_event_failure_logged_as_error(self, tmp_path):
        """Test failures are logged at ERROR level."""
        log_file = tmp_path / "test.log"
        configure_logging(level="INFO", log_file=log_file)

        log_audit_event("SYNC_FAILED", {"status": "failure", "error_message": "HTTP 400"})

        content = log_file.read_text()
        assert "ERROR" in content
        assert "error_message=HTTP 400" in content

    def test_log_audit_event_preserves_custom_correlation_id(self, tmp_path):
        """Test a supplied correlation id is kept."""
        log_file = tmp_path / "test.log"
        configure_logging(level="INFO", log_file=log_file)

        log_audit_event("DRAFT_SAVED", {"status": "success", "correlation_id": "abc-123"})

        assert "correlation_id=abc-123" in log_file.read_text()
