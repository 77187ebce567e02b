"""Audit trail functionality for the Eye Camp Intake package.

This module provides structured audit logging for patient registration,
draft checkpoints and spreadsheet delivery.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)

# Key fields rendered first, in this order
FIELD_ORDER = [
    "status",
    "camp_id",
    "patient_id",
    "section",
    "record_count",
    "error_count",
    "error_message",
    "correlation_id",
]


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Creates a structured audit log entry with standard fields. Audit events are
    logged at INFO level for successful operations and ERROR level for failures.

    Args:
        event_type: Type of operation (e.g., "DRAFT_SAVED", "PATIENT_SUBMITTED",
                   "SUBMIT_REJECTED", "SYNC_QUEUED", "SYNC_DELIVERED")
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - camp_id: Owning camp
                - patient_id: Patient identifier (if assigned)
                - record_count: Number of records involved
                - error_message: Error details (if status is failure)
                - correlation_id: Optional correlation ID for tracking related events

    Example:
        >>> log_audit_event("PATIENT_SUBMITTED", {
        ...     "status": "success",
        ...     "camp_id": "camp-1718000000000",
        ...     "patient_id": "patient-9f3c",
        ... })
    """
    if "timestamp" not in details:
        details["timestamp"] = time.time()

    if "correlation_id" not in details:
        details["correlation_id"] = str(uuid.uuid4())

    message_parts = [f"AUDIT [{event_type}]"]

    for field in FIELD_ORDER:
        if field in details:
            message_parts.append(f"{field}={details[field]}")

    for key, value in details.items():
        if key not in FIELD_ORDER and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    if details.get("status") == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)
