"""Unit tests for spreadsheet sync: row layout, queue, sinks and service."""

import json
from unittest.mock import MagicMock

import pandas as pd
import pytest
import requests

from eyecamp_intake.models.patient import PatientRecord
from eyecamp_intake.sync import (
    SHEET_COLUMNS,
    CsvSpreadsheetSink,
    HttpSpreadsheetSink,
    SyncCredentials,
    SyncQueue,
    SyncService,
    SyncStatus,
    record_to_row,
)
from eyecamp_intake.utils.exceptions import SyncError


def _patient(patient_id="patient-1", name="Asha", camp_id="camp-1"):
    record = PatientRecord(
        camp_id=camp_id, id=patient_id, name=name, age="30", sex="female", outcome="glasses",
        distant_vision_right="6/9", near_vision_right="N6",
    )
    record.dry_right.sphere = "1.00"
    record.dry_right.cylinder = "0.50"
    record.dry_right.axis = "180"
    record.acceptance_left.cylinder = "0.25"
    return record


class FakeClock:
    """Settable epoch clock."""

    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestRows:
    """Test the sheet row layout."""

    def test_column_order(self):
        """Test the fixed fifteen column layout."""
        assert len(SHEET_COLUMNS) == 15
        assert SHEET_COLUMNS[0] == "Patient ID"
        assert SHEET_COLUMNS[-2:] == ["Created At", "Updated At"]

    def test_record_to_row(self):
        """Test vision uses distant acuity and refraction uses notation."""
        row = dict(zip(SHEET_COLUMNS, record_to_row(_patient())))

        assert row["Vision Right"] == "6/9"
        assert row["Dry Refraction Right"] == "+1.00DS/-0.50DCx180"
        assert row["Dry Refraction Left"] == ""
        assert row["Acceptance Left"] == "/-0.25DC"
        assert row["Outcome"] == "glasses"


class TestSyncQueue:
    """Test the persisted delivery queue."""

    def test_one_entry_per_camp(self, tmp_path):
        """Test re-queuing a camp replaces its rows."""
        # Arrange
        queue = SyncQueue(tmp_path / "queue.json")

        # Act
        queue.enqueue("camp-1", "sheet-1", [_patient()])
        queue.enqueue("camp-1", "sheet-1", [_patient(), _patient("patient-2", "Ravi")])
        queue.enqueue("camp-2", "sheet-2", [_patient(camp_id="camp-2")])

        # Assert
        assert len(queue) == 2
        assert len(queue.get("camp-1").records) == 2

    def test_persisted_across_instances(self, tmp_path):
        """Test the queue reloads from its file."""
        path = tmp_path / "queue.json"
        SyncQueue(path).enqueue("camp-1", "sheet-1", [_patient()], error="offline")

        reloaded = SyncQueue(path)

        item = reloaded.get("camp-1")
        assert item.last_error == "offline"
        assert item.patient_records()[0].dry_right.axis == "180"
        assert json.loads(path.read_text())[0]["campId"] == "camp-1"

    def test_remove_and_failures(self, tmp_path):
        """Test failure bookkeeping and removal."""
        queue = SyncQueue(tmp_path / "queue.json")
        queue.enqueue("camp-1", "sheet-1", [_patient()])

        queue.record_failure("camp-1", "timeout")
        assert queue.get("camp-1").attempts == 1

        queue.remove("camp-1")
        assert len(SyncQueue(tmp_path / "queue.json")) == 0


class TestCsvSpreadsheetSink:
    """Test the local CSV sink."""

    def test_write_and_upsert(self, tmp_path):
        """Test re-delivered rows replace earlier rows for the same patient."""
        # Arrange
        sink = CsvSpreadsheetSink(tmp_path)
        sink.write_rows("camp-1", [_patient()])

        # Act
        updated = _patient()
        updated.outcome = "referred"
        sink.write_rows("camp-1", [updated, _patient("patient-2", "Ravi")])

        # Assert
        df = pd.read_csv(sink.sheet_path("camp-1"), dtype=str, keep_default_na=False)
        assert list(df.columns) == SHEET_COLUMNS
        assert len(df) == 2
        assert df.set_index("Patient ID").loc["patient-1", "Outcome"] == "referred"

    def test_corrupt_sheet_raises(self, tmp_path):
        """Test a sheet with the wrong columns raises SyncError."""
        sink = CsvSpreadsheetSink(tmp_path)
        sink.sheet_path("camp-1").write_text("a,b\n1,2\n")

        with pytest.raises(SyncError):
            sink.write_rows("camp-1", [_patient()])


class TestHttpSpreadsheetSink:
    """Test the HTTP sink request."""

    def test_posts_rows_with_bearer_token(self):
        """Test the request body, URL and headers."""
        # Arrange
        sink = HttpSpreadsheetSink("https://sheets.example.org/api/", timeout=5)
        sink._session = MagicMock()
        sink._session.post.return_value.raise_for_status.return_value = None

        # Act
        count = sink.write_rows("sheet 1", [_patient()], access_token="tok")

        # Assert
        assert count == 1
        call = sink._session.post.call_args
        assert call.args[0] == "https://sheets.example.org/api/spreadsheets/sheet%201/values"
        assert call.kwargs["headers"]["Authorization"] == "Bearer tok"
        assert call.kwargs["json"]["range"] == "Patient Records!A2:O"
        assert call.kwargs["json"]["values"][0][7] == "+1.00DS/-0.50DCx180"
        assert call.kwargs["timeout"] == 5

    def test_http_error_propagates(self):
        """Test error responses raise HTTPError."""
        sink = HttpSpreadsheetSink("https://sheets.example.org")
        sink._session = MagicMock()
        response = MagicMock(status_code=503)
        sink._session.post.return_value.raise_for_status.side_effect = requests.HTTPError(
            response=response
        )

        with pytest.raises(requests.HTTPError):
            sink.write_rows("sheet-1", [_patient()])

    def test_session_has_retry_adapter(self):
        """Test the session retries server errors."""
        sink = HttpSpreadsheetSink("https://sheets.example.org", max_retries=4)
        adapter = sink.session.get_adapter("https://sheets.example.org")

        assert adapter.max_retries.total == 4
        assert 503 in adapter.max_retries.status_forcelist
        sink.close()


class TestSyncService:
    """Test credentials, queueing and replay."""

    def test_unauthenticated_sync_is_queued(self, tmp_path):
        """Test rows are queued when no credentials are set."""
        # Arrange
        sink = MagicMock()
        service = SyncService(sink, queue=SyncQueue(tmp_path / "q.json"))

        # Act
        status = service.sync_records("camp-1", [_patient()])

        # Assert
        assert status == SyncStatus.QUEUED
        assert service.pending_camps() == ["camp-1"]
        sink.write_rows.assert_not_called()

    def test_set_credentials_replays_queue(self, tmp_path):
        """Test queued rows are delivered once credentials arrive."""
        # Arrange
        sink = CsvSpreadsheetSink(tmp_path / "sheets")
        service = SyncService(sink, queue=SyncQueue(tmp_path / "q.json"))
        service.sync_records("camp-1", [_patient()])
        service.sync_records("camp-1", [_patient(), _patient("patient-2", "Ravi")])

        # Act
        service.set_credentials("tok", expires_in=3600)

        # Assert
        assert service.pending_camps() == []
        assert len(sink.read_sheet("camp-1")) == 2

    def test_replay_is_idempotent(self, tmp_path):
        """Test delivering the same rows twice does not duplicate them."""
        sink = CsvSpreadsheetSink(tmp_path / "sheets")
        service = SyncService(sink)
        service.set_credentials("tok", expires_in=3600)

        service.sync_records("camp-1", [_patient()])
        service.sync_records("camp-1", [_patient()])

        assert len(sink.read_sheet("camp-1")) == 1

    def test_authenticated_delivery(self):
        """Test rows go straight to the sink with the token."""
        sink = MagicMock()
        service = SyncService(sink)
        service.set_credentials("tok", expires_in=60)

        status = service.sync_records("camp-1", [_patient()], spreadsheet_id="sheet-9")

        assert status == SyncStatus.DELIVERED
        sink.write_rows.assert_called_once()
        assert sink.write_rows.call_args.args[0] == "sheet-9"
        assert sink.write_rows.call_args.kwargs["access_token"] == "tok"

    def test_expired_credentials(self):
        """Test credentials stop working after expiry."""
        clock = FakeClock()
        service = SyncService(MagicMock(), clock=clock)
        service.set_credentials("tok", expires_in=60)
        assert service.is_authenticated()

        clock.now += 61

        assert not service.is_authenticated()
        assert service.sync_records("camp-1", [_patient()]) == SyncStatus.QUEUED

    def test_credentials_persisted_and_logout(self, tmp_path):
        """Test credentials survive a restart and logout removes them."""
        clock = FakeClock()
        path = tmp_path / "creds.json"
        SyncService(MagicMock(), credentials_file=path, clock=clock).set_credentials("tok", 60)

        restarted = SyncService(MagicMock(), credentials_file=path, clock=clock)
        assert restarted.is_authenticated()

        restarted.logout()
        assert not path.exists()
        assert not restarted.is_authenticated()

    def test_expired_persisted_credentials_discarded(self, tmp_path):
        """Test expired credentials are dropped on load."""
        clock = FakeClock()
        path = tmp_path / "creds.json"
        SyncService(MagicMock(), credentials_file=path, clock=clock).set_credentials("tok", 60)
        clock.now += 120

        service = SyncService(MagicMock(), credentials_file=path, clock=clock)

        assert not service.is_authenticated()
        assert not path.exists()

    def test_transient_failure_is_queued(self):
        """Test network errors leave rows queued."""
        sink = MagicMock()
        sink.write_rows.side_effect = requests.ConnectionError("no route to host")
        service = SyncService(sink)
        service.set_credentials("tok", 60)

        status = service.sync_records("camp-1", [_patient()])

        assert status == SyncStatus.QUEUED
        assert service.queue.get("camp-1").last_error == "no route to host"

    def test_permanent_failure_is_not_queued(self):
        """Test client errors are reported and not retried."""
        sink = MagicMock()
        sink.write_rows.side_effect = requests.HTTPError(response=MagicMock(status_code=400))
        service = SyncService(sink)
        service.set_credentials("tok", 60)

        assert service.sync_records("camp-1", [_patient()]) == SyncStatus.FAILED
        assert service.pending_camps() == []

    def test_process_queue_unauthenticated_is_skipped(self):
        """Test the queue is left alone without credentials."""
        service = SyncService(MagicMock())
        service.sync_records("camp-1", [_patient()])

        report = service.process_queue()

        assert report.skipped
        assert report.remaining == ["camp-1"]

    def test_process_queue_mixed_results(self):
        """Test delivered, pending and dropped entries are reported separately."""
        # Arrange
        sink = MagicMock()
        service = SyncService(sink)
        for camp in ("camp-ok", "camp-down", "camp-bad"):
            service.sync_records(camp, [_patient(camp_id=camp)])

        def write_rows(spreadsheet_id, records, access_token=None):
            if spreadsheet_id == "camp-down":
                raise requests.Timeout("timed out")
            if spreadsheet_id == "camp-bad":
                raise requests.HTTPError(response=MagicMock(status_code=422))
            return len(records)

        sink.write_rows.side_effect = write_rows

        # Act - credentials installed without the automatic replay of set_credentials
        service._credentials = SyncCredentials("tok", expires_at=float("inf"))
        report = service.process_queue()

        # Assert
        assert report.delivered == ["camp-ok"]
        assert report.failed == ["camp-bad"]
        assert report.remaining == ["camp-down"]
        assert service.queue.get("camp-down").attempts == 1
