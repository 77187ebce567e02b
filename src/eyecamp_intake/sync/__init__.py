"""Sync module.

This module provides the spreadsheet row layout, sinks, the persisted
delivery queue and the sync service.
"""

from eyecamp_intake.sync.queue import SyncQueue, SyncQueueItem
from eyecamp_intake.sync.rows import SHEET_COLUMNS, record_to_row, records_to_frame
from eyecamp_intake.sync.service import (
    QueueReport,
    SyncCredentials,
    SyncService,
    SyncStatus,
    create_sink,
    create_sync_service,
)
from eyecamp_intake.sync.sinks import CsvSpreadsheetSink, HttpSpreadsheetSink, SpreadsheetSink

__all__ = [
    "SHEET_COLUMNS",
    "CsvSpreadsheetSink",
    "HttpSpreadsheetSink",
    "QueueReport",
    "SpreadsheetSink",
    "SyncCredentials",
    "SyncQueue",
    "SyncQueueItem",
    "SyncService",
    "SyncStatus",
    "create_sink",
    "create_sync_service",
    "record_to_row",
    "records_to_frame",
]
