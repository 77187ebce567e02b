"""Spreadsheet sinks that receive patient rows.

Two sinks are provided: a CSV sink writing one sheet file per spreadsheet id
(for camps with no connectivity or for local exports) and an HTTP sink
posting rows to a spreadsheet endpoint with a bearer token.
"""

import io
import logging
from pathlib import Path
from typing import List, Optional, Protocol
from urllib.parse import quote

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from eyecamp_intake.models.patient import PatientRecord
from eyecamp_intake.sync.rows import (
    ID_COLUMN,
    SHEET_COLUMNS,
    SHEET_RANGE,
    record_to_row,
    records_to_frame,
)
from eyecamp_intake.utils.exceptions import SyncError
from eyecamp_intake.utils.files import write_text_atomic

logger = logging.getLogger(__name__)

DEFAULT_RETRY_COUNT = 3
DEFAULT_BACKOFF_FACTOR = 0.5
DEFAULT_TIMEOUT = 30


class SpreadsheetSink(Protocol):
    """Destination for patient rows."""

    def write_rows(
        self,
        spreadsheet_id: str,
        records: List[PatientRecord],
        access_token: Optional[str] = None,
    ) -> int: ...


class CsvSpreadsheetSink:
    """Sink writing each spreadsheet as ``<sheets_dir>/<spreadsheet_id>.csv``.

    Rows are upserted by patient id: a re-delivered record replaces its
    earlier row instead of duplicating it.

    Args:
        sheets_dir: Directory holding the sheet files

    Example:
        >>> sink = CsvSpreadsheetSink(Path("data/sheets"))
        >>> sink.write_rows("camp-1718000000000", records)
        3
    """

    def __init__(self, sheets_dir: Path) -> None:
        self.sheets_dir = Path(sheets_dir)

    def sheet_path(self, spreadsheet_id: str) -> Path:
        return self.sheets_dir / f"{quote(spreadsheet_id, safe='')}.csv"

    def read_sheet(self, spreadsheet_id: str) -> pd.DataFrame:
        """Load a sheet, or an empty frame with the sheet columns.

        Raises:
            SyncError: If the sheet exists but cannot be parsed
        """
        path = self.sheet_path(spreadsheet_id)
        if not path.exists():
            return pd.DataFrame(columns=SHEET_COLUMNS, dtype=str)
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, OSError) as e:
            raise SyncError(f"Failed to read sheet {path}: {e}") from e
        missing = [c for c in SHEET_COLUMNS if c not in df.columns]
        if missing:
            raise SyncError(f"Sheet {path} is missing columns: {', '.join(missing)}")
        return df[SHEET_COLUMNS]

    def write_rows(
        self,
        spreadsheet_id: str,
        records: List[PatientRecord],
        access_token: Optional[str] = None,
    ) -> int:
        """Upsert rows into the sheet file.

        Args:
            spreadsheet_id: Sheet to write
            records: Records to upsert
            access_token: Ignored by the local sink

        Returns:
            Number of rows written

        Raises:
            SyncError: If the sheet cannot be read or written
        """
        existing = self.read_sheet(spreadsheet_id)
        incoming = records_to_frame(records)
        frames = [df for df in (existing, incoming) if not df.empty]
        if frames:
            combined = pd.concat(frames, ignore_index=True)
        else:
            combined = incoming
        combined = combined.drop_duplicates(subset=[ID_COLUMN], keep="last")

        buffer = io.StringIO()
        combined.to_csv(buffer, index=False)
        path = self.sheet_path(spreadsheet_id)
        try:
            write_text_atomic(path, buffer.getvalue())
        except OSError as e:
            raise SyncError(f"Failed to write sheet {path}: {e}") from e

        logger.info(f"Wrote {len(incoming)} rows to {path} ({len(combined)} total)")
        return len(incoming)


class HttpSpreadsheetSink:
    """Sink posting rows to a spreadsheet values endpoint.

    Sends ``POST {endpoint_url}/spreadsheets/{id}/values`` with a JSON body
    ``{"range", "columns", "values"}`` and a bearer token. The session retries
    429 and 5xx responses with exponential backoff.

    Args:
        endpoint_url: Base URL of the spreadsheet service
        timeout: Request timeout in seconds
        max_retries: Retry attempts for failed requests
        backoff_factor: Factor for exponential backoff between retries
        verify_tls: Whether to verify TLS certificates
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_RETRY_COUNT,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        verify_tls: bool = True,
    ) -> None:
        self.endpoint_url = endpoint_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.verify_tls = verify_tls
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> requests.Session:
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST", "PUT"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session = requests.Session()
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        logger.debug(
            "Created spreadsheet session with retry_count=%d, backoff_factor=%s",
            self.max_retries,
            self.backoff_factor,
        )
        return session

    def values_url(self, spreadsheet_id: str) -> str:
        return f"{self.endpoint_url}/spreadsheets/{quote(spreadsheet_id, safe='')}/values"

    def write_rows(
        self,
        spreadsheet_id: str,
        records: List[PatientRecord],
        access_token: Optional[str] = None,
    ) -> int:
        """Post rows to the spreadsheet endpoint.

        Returns:
            Number of rows sent

        Raises:
            requests.HTTPError: If the endpoint answers with an error status
            requests.ConnectionError: If the endpoint cannot be reached
            requests.Timeout: If the request times out
        """
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        payload = {
            "range": SHEET_RANGE,
            "valueInputOption": "RAW",
            "columns": SHEET_COLUMNS,
            "values": [record_to_row(record) for record in records],
        }
        url = self.values_url(spreadsheet_id)
        logger.debug(f"POST {url} with {len(records)} rows")
        response = self.session.post(
            url, json=payload, headers=headers, timeout=self.timeout, verify=self.verify_tls
        )
        response.raise_for_status()
        logger.info(f"Sent {len(records)} rows to spreadsheet {spreadsheet_id}")
        return len(records)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
