"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the alternative backend for users
who want to see and export their data directly in a spreadsheet.
It mirrors the `tabungan_master` table: one transaction per row.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No server-side filtering (we filter and sort in Python)
- Ids are sequential integers assigned here (max existing id + 1)

Only the connection handshake is retried; data operations fail fast
with StorageError.
"""

import datetime as dt
import json
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, stop_after_attempt, wait_exponential

from tabungan.config import get_settings
from tabungan.models.transaction import (
    Category,
    NewTransaction,
    TransactionRecord,
    TransactionUpdate,
)
from tabungan.models.audit import AuditEvent, AuditEventType, AuditSeverity
from tabungan.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)

# Column mappings for the transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "jenis",
    "nominal",
    "keterangan",
    "date",
    "is_active",
    "created_at",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_COLUMN_INDEX = {name: idx + 1 for idx, name in enumerate(TRANSACTION_COLUMNS)}
_UPDATE_COLUMNS = {"amount": "nominal", "note": "keterangan", "date": "date"}


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and lazily creates the worksheets.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, 1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000
        )


def row_to_record(row: list) -> TransactionRecord:
    """Convert a spreadsheet row to a TransactionRecord."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default

    return TransactionRecord(
        id=safe_get(0),
        category=Category(safe_get(1)),
        amount=int(safe_get(2)),
        note=safe_get(3) or None,
        date=dt.date.fromisoformat(safe_get(4)),
        active=safe_get(5, "TRUE").upper() == "TRUE",
    )


def transaction_to_row(record_id: str, transaction: NewTransaction, now: dt.datetime) -> list:
    """Convert a new transaction to a spreadsheet row."""
    return [
        record_id,
        transaction.category.value,
        str(transaction.amount),
        transaction.note or "",
        transaction.date.isoformat(),
        "TRUE",
        now.isoformat(),
        now.isoformat(),
    ]


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    Rows are written RAW so amounts, dates and notes are never
    reinterpreted by the spreadsheet (no formulas, no locale parsing).
    An update or soft delete rewrites its row in a single call.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _all_rows(self) -> list[list]:
        sheet = self._client.get_transactions_sheet()
        return sheet.get_all_values()[1:]  # Skip header

    def _find_row(self, sheet: gspread.Worksheet, record_id: str) -> tuple[int, list]:
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # Row 1 is header
            if row and row[0] == str(record_id):
                return idx, row
        raise NotFoundError(f"Transaction not found: {record_id}")

    async def _fetch(self, category: Optional[Category]) -> list[TransactionRecord]:
        try:
            rows = self._all_rows()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to fetch transactions: {e}")

        records = []
        for row in rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                record = row_to_record(row)
            except (TypeError, ValueError) as e:
                logger.warning("skipping_malformed_row", row_id=row[0], error=str(e))
                continue

            if not record.active:
                continue
            if category is not None and record.category != category:
                continue
            records.append(record)

        # Sort by date descending (newest first)
        records.sort(key=lambda r: r.date, reverse=True)
        return records

    async def fetch_by_category(self, category: Category) -> list[TransactionRecord]:
        return await self._fetch(category)

    async def fetch_all(self) -> list[TransactionRecord]:
        return await self._fetch(None)

    async def get_by_id(self, record_id: str) -> Optional[TransactionRecord]:
        try:
            for row in self._all_rows():
                if row and row[0] == str(record_id):
                    return row_to_record(row)
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

    async def insert(self, transaction: NewTransaction) -> str:
        try:
            sheet = self._client.get_transactions_sheet()
            existing = [
                int(row[0]) for row in sheet.get_all_values()[1:]
                if row and row[0].isdigit()
            ]
            record_id = str(max(existing, default=0) + 1)
            row = transaction_to_row(record_id, transaction, dt.datetime.utcnow())
            sheet.append_row(row, value_input_option="RAW")
            return record_id
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    def _write_row(self, record_id: str, values: dict[str, str], action: str) -> None:
        """Rewrite the whole row in one RAW call so a failure leaves it untouched."""
        try:
            sheet = self._client.get_transactions_sheet()
            row_idx, row = self._find_row(sheet, record_id)
            row = (list(row) + [""] * len(TRANSACTION_COLUMNS))[:len(TRANSACTION_COLUMNS)]
            values = dict(values, updated_at=dt.datetime.utcnow().isoformat())
            for column, value in values.items():
                row[_COLUMN_INDEX[column] - 1] = value
            sheet.update(
                range_name=f"A{row_idx}:{rowcol_to_a1(row_idx, len(TRANSACTION_COLUMNS))}",
                values=[row],
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to {action} transaction: {e}")

    async def update(self, record_id: str, changes: TransactionUpdate) -> None:
        values = {}
        for field, value in changes.changed_fields().items():
            if isinstance(value, dt.date):
                value = value.isoformat()
            values[_UPDATE_COLUMNS[field]] = "" if value is None else str(value)
        self._write_row(record_id, values, "update")

    async def soft_delete(self, record_id: str) -> None:
        self._write_row(record_id, {"is_active": "FALSE"}, "delete")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=dt.datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are logged, never raised."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            logger.warning(
                "audit_sheet_write_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events, newest first."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (TypeError, ValueError) as e:
                    logger.warning("skipping_malformed_audit_row", row_id=row[0], error=str(e))

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
