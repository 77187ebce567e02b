"""Spreadsheet sync service.

Owns the sync credentials and the pending-delivery queue. Deliveries that
fail for a retryable reason (no credentials, no network, server errors) are
queued per camp and replayed by process_queue once the cause clears.
"""

import json
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from eyecamp_intake.config.schema import SyncConfig
from eyecamp_intake.logging_audit import log_audit_event
from eyecamp_intake.models.patient import PatientRecord
from eyecamp_intake.sync.queue import SyncQueue
from eyecamp_intake.sync.sinks import CsvSpreadsheetSink, HttpSpreadsheetSink, SpreadsheetSink
from eyecamp_intake.utils.exceptions import (
    ConfigurationError,
    ErrorCategory,
    StorageError,
    SyncAuthError,
    create_error_info,
)
from eyecamp_intake.utils.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "EYECAMP_SYNC_TOKEN"
TOKEN_EXPIRES_ENV_VAR = "EYECAMP_SYNC_TOKEN_EXPIRES_IN"
DEFAULT_TOKEN_LIFETIME = 3600


class SyncStatus(Enum):
    """Outcome of a delivery attempt."""

    DELIVERED = "delivered"
    QUEUED = "queued"
    FAILED = "failed"


@dataclass
class SyncCredentials:
    """Access token with its expiry.

    Attributes:
        access_token: Bearer token for the spreadsheet service
        expires_at: Expiry as epoch seconds
    """

    access_token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.access_token) and self.expires_at > now

    def to_dict(self) -> dict:
        return {"accessToken": self.access_token, "expiresAt": self.expires_at}

    @classmethod
    def from_dict(cls, data: dict) -> "SyncCredentials":
        return cls(access_token=data["accessToken"], expires_at=float(data["expiresAt"]))


@dataclass
class QueueReport:
    """Summary of one process_queue run.

    Attributes:
        delivered: Camp ids whose rows were delivered and dequeued
        remaining: Camp ids still queued
        failed: Camp ids dropped after a permanent failure
        skipped: True when the queue was not processed (not authenticated)
    """

    delivered: List[str] = field(default_factory=list)
    remaining: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: bool = False


class SyncService:
    """Delivers patient rows to a spreadsheet sink.

    Args:
        sink: Where rows are written
        queue: Pending deliveries (in-memory queue when omitted)
        credentials_file: Where credentials are persisted, or None to keep
            them in memory only
        clock: Source of the current epoch time

    Example:
        >>> service = SyncService(CsvSpreadsheetSink(Path("data/sheets")))
        >>> service.sync_records("camp-1", [record])
        <SyncStatus.QUEUED: 'queued'>
        >>> service.set_credentials("token", expires_in=3600)
        >>> service.pending_camps()
        []
    """

    def __init__(
        self,
        sink: SpreadsheetSink,
        queue: Optional[SyncQueue] = None,
        credentials_file: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.sink = sink
        self.queue = queue if queue is not None else SyncQueue()
        self.credentials_file = Path(credentials_file) if credentials_file else None
        self._clock = clock
        self._syncing = False
        self._credentials: Optional[SyncCredentials] = self._load_credentials()

    def _load_credentials(self) -> Optional[SyncCredentials]:
        if self.credentials_file is None:
            return None
        try:
            data = read_json(self.credentials_file, default=None)
            credentials = SyncCredentials.from_dict(data) if data else None
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable sync credentials {self.credentials_file}: {e}")
            return None
        if credentials is not None and not credentials.is_valid(self._clock()):
            logger.info("Stored sync credentials have expired")
            self._forget_credentials()
            return None
        return credentials

    def _forget_credentials(self) -> None:
        if self.credentials_file is not None:
            try:
                self.credentials_file.unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to remove sync credentials: {e}") from e

    def set_credentials(self, access_token: str, expires_in: float) -> None:
        """Store an access token and replay the queue.

        Args:
            access_token: Bearer token
            expires_in: Token lifetime in seconds

        Raises:
            StorageError: If the credentials file cannot be written
        """
        self._credentials = SyncCredentials(access_token, self._clock() + expires_in)
        if self.credentials_file is not None:
            try:
                write_json_atomic(self.credentials_file, self._credentials.to_dict())
            except OSError as e:
                raise StorageError(f"Failed to save sync credentials: {e}") from e
        logger.info("Sync credentials set")

        if len(self.queue):
            self.process_queue()

    def is_authenticated(self) -> bool:
        return self._credentials is not None and self._credentials.is_valid(self._clock())

    def logout(self) -> None:
        self._credentials = None
        self._forget_credentials()
        logger.info("Sync credentials cleared")

    @property
    def credentials(self) -> Optional[SyncCredentials]:
        return self._credentials

    def pending_camps(self) -> List[str]:
        return [item.camp_id for item in self.queue.items()]

    def sync_records(
        self,
        camp_id: str,
        records: List[PatientRecord],
        spreadsheet_id: Optional[str] = None,
    ) -> SyncStatus:
        """Deliver a camp's rows, queueing them when delivery is not possible.

        Never raises for delivery problems: the outcome is the return value.

        Args:
            camp_id: Camp whose rows are delivered
            records: Full list of the camp's records
            spreadsheet_id: Destination sheet (defaults to the camp id)

        Returns:
            SyncStatus of the attempt
        """
        spreadsheet_id = spreadsheet_id or camp_id
        try:
            self._deliver(spreadsheet_id, records)
        except Exception as e:
            return self._handle_failure(camp_id, spreadsheet_id, records, e)

        # A successful delivery supersedes any older queued snapshot
        self.queue.remove(camp_id)
        log_audit_event(
            "SYNC_DELIVERED",
            {
                "status": "success",
                "camp_id": camp_id,
                "record_count": len(records),
                "spreadsheet_id": spreadsheet_id,
            },
        )
        return SyncStatus.DELIVERED

    def _deliver(self, spreadsheet_id: str, records: List[PatientRecord]) -> None:
        credentials = self._credentials
        if credentials is None or not credentials.is_valid(self._clock()):
            raise SyncAuthError("Not authenticated with the spreadsheet service")
        self.sink.write_rows(spreadsheet_id, records, access_token=credentials.access_token)

    def _handle_failure(
        self,
        camp_id: str,
        spreadsheet_id: str,
        records: List[PatientRecord],
        error: Exception,
    ) -> SyncStatus:
        error_info = create_error_info(error, camp_id=camp_id)

        if error_info.category == ErrorCategory.PERMANENT:
            logger.error(
                f"Sync for camp {camp_id} failed permanently: {error_info.message}. "
                f"{error_info.remediation}"
            )
            log_audit_event(
                "SYNC_FAILED",
                {
                    "status": "failure",
                    "camp_id": camp_id,
                    "record_count": len(records),
                    "error_message": error_info.message,
                },
            )
            return SyncStatus.FAILED

        if error_info.category == ErrorCategory.CRITICAL:
            logger.critical(
                f"Sync for camp {camp_id} cannot proceed: {error_info.message}. "
                f"{error_info.remediation}"
            )
        else:
            logger.warning(
                f"Sync for camp {camp_id} deferred: {error_info.message}. "
                f"{error_info.remediation}"
            )

        try:
            self.queue.enqueue(camp_id, spreadsheet_id, records, error=error_info.message)
        except StorageError as e:
            logger.error(f"Failed to queue rows for camp {camp_id}: {e}")
            return SyncStatus.FAILED

        log_audit_event(
            "SYNC_QUEUED",
            {
                "status": "success",
                "camp_id": camp_id,
                "record_count": len(records),
                "error_category": error_info.category.value,
            },
        )
        return SyncStatus.QUEUED

    def process_queue(self) -> QueueReport:
        """Replay every queued delivery.

        Delivered entries are removed. Entries failing for a retryable reason
        stay queued; entries failing permanently are dropped.

        Returns:
            QueueReport describing the run
        """
        report = QueueReport()
        if self._syncing or not self.is_authenticated():
            report.skipped = True
            report.remaining = self.pending_camps()
            return report

        self._syncing = True
        try:
            for item in self.queue.items():
                try:
                    self._deliver(item.spreadsheet_id, item.patient_records())
                except Exception as e:
                    error_info = create_error_info(e, camp_id=item.camp_id)
                    if error_info.category == ErrorCategory.PERMANENT:
                        logger.error(
                            f"Dropping queued rows for camp {item.camp_id}: {error_info.message}"
                        )
                        self.queue.remove(item.camp_id)
                        report.failed.append(item.camp_id)
                    else:
                        logger.warning(
                            f"Queued rows for camp {item.camp_id} still pending: "
                            f"{error_info.message}"
                        )
                        self.queue.record_failure(item.camp_id, error_info.message)
                    continue

                self.queue.remove(item.camp_id)
                report.delivered.append(item.camp_id)
                log_audit_event(
                    "SYNC_DELIVERED",
                    {
                        "status": "success",
                        "camp_id": item.camp_id,
                        "record_count": len(item.records),
                        "source": "queue",
                    },
                )
        finally:
            self._syncing = False

        report.remaining = self.pending_camps()
        logger.info(
            f"Sync queue processed: {len(report.delivered)} delivered, "
            f"{len(report.remaining)} pending, {len(report.failed)} dropped"
        )
        return report


def create_sink(config: SyncConfig) -> SpreadsheetSink:
    """Build the sink selected by the sync configuration."""
    if config.sink == "http":
        if not config.endpoint_url:
            raise ConfigurationError("sync.endpoint_url is required for the http sink")
        return HttpSpreadsheetSink(
            config.endpoint_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
            verify_tls=config.verify_tls,
        )
    return CsvSpreadsheetSink(config.sheets_dir)


def create_sync_service(config: SyncConfig) -> SyncService:
    """Build a SyncService from configuration.

    A token in the EYECAMP_SYNC_TOKEN environment variable is installed as the
    current credentials (lifetime from EYECAMP_SYNC_TOKEN_EXPIRES_IN, default
    one hour).

    Raises:
        StorageError: If the persisted queue cannot be read
    """
    service = SyncService(
        create_sink(config),
        queue=SyncQueue(config.queue_file),
        credentials_file=config.credentials_file,
    )
    token = os.getenv(TOKEN_ENV_VAR)
    if token:
        expires_in = float(os.getenv(TOKEN_EXPIRES_ENV_VAR) or DEFAULT_TOKEN_LIFETIME)
        service.set_credentials(token, expires_in)
    return service
