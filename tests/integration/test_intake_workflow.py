"""Integration tests for the intake workflow.

These tests run the form engine against the file-backed stores and the sync
service, covering draft recovery across sessions, edits of stored patients
and offline queueing with later replay.
"""

import json

import pytest

from eyecamp_intake.form.engine import IntakeFormEngine
from eyecamp_intake.storage.drafts import draft_key
from eyecamp_intake.sync.queue import SyncQueue
from eyecamp_intake.sync.service import SyncService, SyncStatus
from eyecamp_intake.sync.sinks import CsvSpreadsheetSink, HttpSpreadsheetSink


class TestDraftRecovery:
    """Test drafts survive an interrupted session."""

    def test_wizard_session_resumed_and_submitted(
        self, file_draft_store, file_repository, camp_id, full_patient
    ):
        """Test a wizard session is restored from disk and submitted."""
        # Arrange - first session fills demographics and part of vision
        first = IntakeFormEngine(
            camp_id, draft_store=file_draft_store, repository=file_repository, mode="wizard"
        )
        assert not first.next_section()
        first.update({k: full_patient[k] for k in ("name", "age", "sex")})
        assert first.next_section()
        assert first.go_to("vision")
        first.set_field("distantVisionRight", "6/9")
        assert first.save_draft().ok

        # Act - second session picks up the draft
        second = IntakeFormEngine(
            camp_id, draft_store=file_draft_store, repository=file_repository, mode="wizard"
        )
        resumed = second.resume_draft()

        # Assert
        assert resumed
        assert second.active_section == "vision"
        assert second.get_field("name") == "Rajesh Kumar"
        assert second.get_field("distantVisionRight") == "6/9"
        assert "demographics" in second.completed_sections

        # Act - finish and submit
        second.update(full_patient)
        result = second.submit()

        # Assert - record stored, draft gone, form blank
        assert result.ok
        assert file_draft_store.get(draft_key(camp_id)) is None
        assert second.get_field("name") == ""
        stored = file_repository.get(camp_id, result.record.id)
        assert stored is not None
        assert stored.dry_right.sphere == "1.50"
        assert stored.dry_right.axis == "90"

    def test_drafts_for_two_camps_do_not_collide(self, file_draft_store, camp_id):
        """Test each camp keeps its own new-patient draft."""
        # Arrange
        first = IntakeFormEngine(camp_id, draft_store=file_draft_store)
        other = IntakeFormEngine("camp-1718000099999", draft_store=file_draft_store)
        first.set_field("name", "Asha Devi")
        other.set_field("name", "Ravi Shankar")

        # Act
        first.save_draft()
        other.save_draft()
        restored = IntakeFormEngine(camp_id, draft_store=file_draft_store)
        restored.resume_draft()

        # Assert
        assert restored.get_field("name") == "Asha Devi"
        assert len(file_draft_store.keys()) == 2

    def test_corrupt_draft_file_is_ignored(self, file_draft_store, camp_id):
        """Test a damaged draft file does not block a new session."""
        file_draft_store.set(draft_key(camp_id), "{truncated")

        engine = IntakeFormEngine(camp_id, draft_store=file_draft_store)

        assert engine.resume_draft() is False
        assert engine.get_field("name") == ""


class TestEditStoredPatient:
    """Test re-opening a stored patient."""

    def test_edit_keeps_identity(self, file_draft_store, file_repository, camp_id, full_patient):
        """Test a resubmitted patient keeps its id and creation time."""
        # Arrange
        engine = IntakeFormEngine(
            camp_id, draft_store=file_draft_store, repository=file_repository
        )
        engine.update(full_patient)
        original = engine.submit().record

        # Act
        editor = IntakeFormEngine(
            camp_id,
            draft_store=file_draft_store,
            repository=file_repository,
            record=file_repository.get(camp_id, original.id),
        )
        editor.set_field("outcome", "referred")
        draft = editor.save_draft()
        result = editor.submit()

        # Assert
        assert draft.key == draft_key(camp_id, original.id)
        assert result.ok
        assert result.record.id == original.id
        assert result.record.created_at == original.created_at
        records = file_repository.list_for_camp(camp_id)
        assert len(records) == 1
        assert records[0].outcome == "referred"
        assert file_draft_store.get(draft.key) is None


class TestOfflineSync:
    """Test queueing while offline and replay on login."""

    def test_queue_survives_restart_and_replays(
        self, data_dir, file_draft_store, file_repository, queue_file, camp_id,
        minimal_patient, full_patient,
    ):
        """Test rows queued before a restart reach the sheet after login."""
        # Arrange - unauthenticated service queues both submissions
        sink = CsvSpreadsheetSink(data_dir / "sheets")
        service = SyncService(sink, queue=SyncQueue(queue_file))
        engine = IntakeFormEngine(
            camp_id,
            draft_store=file_draft_store,
            repository=file_repository,
            sync_service=service,
        )
        engine.update(minimal_patient)
        first = engine.submit()
        engine.update({**full_patient, "name": "Asha Devi"})
        second = engine.submit()

        # Assert - one queue entry per camp carrying every stored row
        assert first.sync_status == "queued"
        assert second.sync_status == "queued"
        persisted = json.loads(queue_file.read_text())
        assert len(persisted) == 1
        assert len(persisted[0]["patients"]) == 2
        assert not sink.sheet_path(camp_id).exists()

        # Act - a new process logs in
        restarted = SyncService(sink, queue=SyncQueue(queue_file))
        restarted.set_credentials("tok", expires_in=3600)

        # Assert
        assert restarted.pending_camps() == []
        sheet = sink.read_sheet(camp_id)
        assert sorted(sheet["Name"]) == ["Asha Devi", "Rajesh Kumar"]
        row = sheet[sheet["Name"] == "Asha Devi"].iloc[0]
        assert row["Dry Refraction Right"] == "+1.50DS/-0.50DCx90"
        assert row["Acceptance Left"] == "+1.00DS"

    def test_resync_upserts_rows(
        self, data_dir, file_draft_store, file_repository, camp_id, minimal_patient
    ):
        """Test sending a camp twice does not duplicate rows."""
        # Arrange
        sink = CsvSpreadsheetSink(data_dir / "sheets")
        service = SyncService(sink)
        service.set_credentials("tok", expires_in=3600)
        engine = IntakeFormEngine(
            camp_id,
            draft_store=file_draft_store,
            repository=file_repository,
            sync_service=service,
        )
        engine.update(minimal_patient)

        # Act
        result = engine.submit()
        again = service.sync_records(camp_id, file_repository.list_for_camp(camp_id))

        # Assert
        assert result.sync_status == "delivered"
        assert again == SyncStatus.DELIVERED
        assert len(sink.read_sheet(camp_id)) == 1


class TestHttpSync:
    """Test the HTTP sink against a stub spreadsheet endpoint."""

    @pytest.fixture
    def http_sink(self, sheet_endpoint):
        sink = HttpSpreadsheetSink(sheet_endpoint.base_url, timeout=5, backoff_factor=0)
        yield sink
        sink.close()

    def _engine(self, camp_id, service, file_draft_store, file_repository):
        return IntakeFormEngine(
            camp_id,
            draft_store=file_draft_store,
            repository=file_repository,
            sync_service=service,
            spreadsheet_id="sheet-rampur",
        )

    def test_rows_posted_with_bearer_token(
        self, sheet_endpoint, http_sink, file_draft_store, file_repository, camp_id, full_patient
    ):
        """Test a submit posts the camp rows to the spreadsheet id."""
        # Arrange
        service = SyncService(http_sink)
        service.set_credentials("tok-123", expires_in=3600)
        engine = self._engine(camp_id, service, file_draft_store, file_repository)
        engine.update(full_patient)

        # Act
        result = engine.submit()

        # Assert
        assert result.sync_status == "delivered"
        assert len(sheet_endpoint.requests) == 1
        request = sheet_endpoint.requests[0]
        assert request["path"] == "/spreadsheets/sheet-rampur/values"
        assert request["headers"]["Authorization"] == "Bearer tok-123"
        assert request["body"]["range"] == "Patient Records!A2:O"
        assert request["body"]["values"][0][1] == "Rajesh Kumar"

    def test_server_error_retried(
        self, sheet_endpoint, http_sink, file_draft_store, file_repository, camp_id,
        minimal_patient,
    ):
        """Test a 503 is retried by the session before succeeding."""
        sheet_endpoint.statuses = [503]
        service = SyncService(http_sink)
        service.set_credentials("tok", expires_in=3600)
        engine = self._engine(camp_id, service, file_draft_store, file_repository)
        engine.update(minimal_patient)

        result = engine.submit()

        assert result.sync_status == "delivered"
        assert len(sheet_endpoint.requests) == 2

    def test_unauthorized_is_queued(
        self, sheet_endpoint, http_sink, file_draft_store, file_repository, camp_id,
        minimal_patient,
    ):
        """Test a rejected token leaves the rows queued."""
        sheet_endpoint.statuses = [401]
        service = SyncService(http_sink)
        service.set_credentials("stale", expires_in=3600)
        engine = self._engine(camp_id, service, file_draft_store, file_repository)
        engine.update(minimal_patient)

        result = engine.submit()

        assert result.ok
        assert result.sync_status == "queued"
        assert service.pending_camps() == [camp_id]
        assert service.queue.get(camp_id).spreadsheet_id == "sheet-rampur"

    def test_bad_request_is_dropped(
        self, sheet_endpoint, http_sink, file_draft_store, file_repository, camp_id,
        minimal_patient,
    ):
        """Test a 400 is reported as failed and not queued."""
        sheet_endpoint.statuses = [400]
        service = SyncService(http_sink)
        service.set_credentials("tok", expires_in=3600)
        engine = self._engine(camp_id, service, file_draft_store, file_repository)
        engine.update(minimal_patient)

        result = engine.submit()

        assert result.ok
        assert result.sync_status == "failed"
        assert service.pending_camps() == []
        assert file_repository.list_for_camp(camp_id)[0].name == "Rajesh Kumar"
