"""Integration test fixtures and configuration.

This module provides fixtures for integration tests, including:
- File-backed draft, record and queue stores under tmp_path
- A stub spreadsheet endpoint for the HTTP sink

The stub endpoint is a small Flask app served on a free localhost port in a
background thread; it records every request it receives.
"""

import logging
import socket
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Generator, List

import pytest
import requests
from flask import Flask, jsonify, request
from werkzeug.serving import make_server

from eyecamp_intake.storage.drafts import FileDraftStore
from eyecamp_intake.storage.records import JsonPatientRepository
from eyecamp_intake.sync.queue import SyncQueue

logger = logging.getLogger(__name__)


# =============================================================================
# Utility Functions
# =============================================================================


def find_free_port() -> int:
    """Find an available port on localhost.

    Returns:
        int: An available port number.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


def wait_for_server(url: str, timeout: float = 10.0, interval: float = 0.1) -> bool:
    """Wait for server to become available.

    Args:
        url: URL to check (e.g., health endpoint).
        timeout: Maximum time to wait in seconds.
        interval: Time between checks in seconds.

    Returns:
        bool: True if server became available, False if timeout.
    """
    start_time = time.time()
    while time.time() - start_time < timeout:
        try:
            response = requests.get(url, timeout=1)
            if response.status_code == 200:
                return True
        except requests.exceptions.RequestException:
            pass
        time.sleep(interval)
    return False


# =============================================================================
# Stub Spreadsheet Endpoint
# =============================================================================


@dataclass
class SheetEndpoint:
    """State shared between the test and the stub server.

    Attributes:
        base_url: Endpoint URL to configure the HTTP sink with
        requests: Received POSTs as dicts with path, headers and body
        statuses: Status codes to answer with, consumed in order; 200 when empty
    """

    base_url: str
    requests: List[Dict[str, Any]] = field(default_factory=list)
    statuses: List[int] = field(default_factory=list)

    def next_status(self) -> int:
        return self.statuses.pop(0) if self.statuses else 200


def create_sheet_app(endpoint: SheetEndpoint) -> Flask:
    """Build the stub spreadsheet app.

    Args:
        endpoint: Shared state receiving the recorded requests.

    Returns:
        Flask: App with a health check and the values endpoint.
    """
    app = Flask("stub_sheet_endpoint")

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/spreadsheets/<spreadsheet_id>/values", methods=["POST"])
    def append_values(spreadsheet_id: str):
        body = request.get_json(silent=True) or {}
        endpoint.requests.append(
            {"path": request.path, "headers": dict(request.headers), "body": body}
        )
        status = endpoint.next_status()
        return jsonify({"updatedRows": len(body.get("values", []))}), status

    return app


@pytest.fixture
def sheet_endpoint() -> Generator[SheetEndpoint, None, None]:
    """
    Start a stub spreadsheet endpoint for the duration of a test.

    Yields:
        SheetEndpoint: Endpoint URL plus recorded requests.
    """
    port = find_free_port()
    endpoint = SheetEndpoint(base_url=f"http://127.0.0.1:{port}")
    server = make_server("127.0.0.1", port, create_sheet_app(endpoint), threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    if not wait_for_server(f"{endpoint.base_url}/health"):
        server.shutdown()
        pytest.fail("Stub spreadsheet endpoint did not start")

    yield endpoint

    server.shutdown()
    thread.join(timeout=5)


# =============================================================================
# File-backed Stores
# =============================================================================


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Root of the on-disk stores for one test."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def file_draft_store(data_dir: Path) -> FileDraftStore:
    return FileDraftStore(data_dir / "drafts")


@pytest.fixture
def file_repository(data_dir: Path) -> JsonPatientRepository:
    return JsonPatientRepository(data_dir / "records")


@pytest.fixture
def queue_file(data_dir: Path) -> Path:
    return data_dir / "sync_queue.json"


@pytest.fixture
def sync_queue(queue_file: Path) -> SyncQueue:
    return SyncQueue(queue_file)
