"""Custom log formatters for the Eye Camp Intake package.

This module provides specialized formatters for logging, including PII redaction.
"""

import logging
import re
from typing import List, Tuple


class PIIRedactingFormatter(logging.Formatter):
    """Custom formatter that redacts patient identifying details from log messages.

    Camp operators often run with logs shared over chat or copied to USB sticks,
    so patient names and ages can be masked before they reach any handler.

    Attributes:
        redact_pii: Whether to enable PII redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = PIIRedactingFormatter(
        ...     fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        ...     redact_pii=True
        ... )
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_pii: bool = False,
    ) -> None:
        """Initialize the PIIRedactingFormatter.

        Args:
            fmt: Log message format string
            datefmt: Date format string (optional)
            redact_pii: Whether to enable PII redaction
        """
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_pii = redact_pii

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # name="Rajesh Kumar", name='Asha', name=Asha
            (re.compile(r'name=(?:"[^"]*"|\'[^\']*\'|[^\s|,]+)'), "name=[NAME-REDACTED]"),
            # age=45, age="45"
            (re.compile(r'age=["\']?\d+["\']?'), "age=[AGE-REDACTED]"),
            # "Patient: Rajesh Kumar", "Name: Asha Devi"
            (
                re.compile(r"(Patient|Name):\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+"),
                r"\1: [NAME-REDACTED]",
            ),
        ]

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with optional PII redaction.

        Args:
            record: Log record to format

        Returns:
            Formatted log message with PII redacted if enabled
        """
        original = super().format(record)

        if self.redact_pii:
            for pattern, replacement in self.patterns:
                original = pattern.sub(replacement, original)

        return original
