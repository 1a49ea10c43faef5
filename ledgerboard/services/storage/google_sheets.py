"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Owners can look at (and export) their books directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Layout: one worksheet per collection ("sales_log", "expenses_log"), one
row per transaction, with the owning user id in its own column. Every
read filters on that column, so a user only ever sees their own rows.

TRADEOFFS:
- Sheets cannot push changes, so subscribers get a new snapshot after
  every write made through this storage and whenever refresh() is called
- Cells come back as strings; the normalizer parses them on the way out
- Not suitable for high-volume data (fine for a small business ledger)
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from ledgerboard.config import get_settings
from ledgerboard.config.settings import GoogleSheetsSettings
from ledgerboard.models.audit import AuditEvent, AuditEventType, AuditSeverity
from ledgerboard.models.transaction import (
    StoredDocument,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
    utc_now,
)
from ledgerboard.services.storage.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    ErrorListener,
    NotFoundError,
    SnapshotListener,
    StorageError,
    Subscription,
    TransactionStorageInterface,
)
from ledgerboard.services.storage.subscriptions import SubscriptionRegistry


logger = structlog.get_logger(__name__)

# Column mappings for the sales_log / expenses_log sheets
TRANSACTION_COLUMNS = [
    "id",
    "userId",
    "type",
    "amount",
    "date",
    "category",
    "timestamp",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_ID_COL = TRANSACTION_COLUMNS.index("id")
_USER_COL = TRANSACTION_COLUMNS.index("userId")


def _last_column_letter(columns: list[str]) -> str:
    return chr(ord("A") + len(columns) - 1)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

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
                raise BackendConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackendConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def disconnect(self) -> None:
        self._client = None
        self._spreadsheet = None

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise BackendConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self, transaction_type: TransactionType) -> gspread.Worksheet:
        """Get or create the worksheet for sales or expenses."""
        if transaction_type is TransactionType.SALE:
            title = self._settings.sales_sheet_name
        else:
            title = self._settings.expenses_sheet_name
        return self._get_or_create_sheet(title, TRANSACTION_COLUMNS, rows=1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    Documents are stored as rows; the row's cells map back to the same
    field names the other backends use ("amount", "date", "userId", ...).
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._subscriptions = SubscriptionRegistry()

    def open(self) -> None:
        self._client.connect()

    def close(self) -> None:
        self._subscriptions.clear()
        self._client.disconnect()

    def _row_to_document(self, row: list) -> StoredDocument:
        """Convert a spreadsheet row to a raw document."""
        # Handle missing columns gracefully
        def safe_get(index: int) -> Optional[str]:
            try:
                return row[index] if row[index] != "" else None
            except IndexError:
                return None

        data = {
            column: safe_get(index)
            for index, column in enumerate(TRANSACTION_COLUMNS)
            if column != "id"
        }
        return StoredDocument(
            id=row[_ID_COL],
            data={key: value for key, value in data.items() if value is not None},
        )

    def _document_row(
        self,
        document_id: str,
        fields: dict,
    ) -> list:
        """Convert document fields to a spreadsheet row."""
        row = []
        for column in TRANSACTION_COLUMNS:
            if column == "id":
                row.append(document_id)
                continue
            value = fields.get(column, "")
            if isinstance(value, datetime):
                value = value.isoformat()
            row.append(str(value))
        return row

    def _read_documents(
        self,
        user_id: str,
        transaction_type: TransactionType,
    ) -> list[StoredDocument]:
        try:
            sheet = self._client.get_transactions_sheet(transaction_type)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {transaction_type.collection_name}: {e}")

        return [
            self._row_to_document(row)
            for row in all_rows
            if len(row) > _USER_COL and row[_ID_COL] and row[_USER_COL] == user_id
        ]

    def _find_row_index(
        self,
        sheet: gspread.Worksheet,
        user_id: str,
        transaction_id: str,
    ) -> tuple[Optional[int], Optional[list]]:
        all_rows = sheet.get_all_values()
        # Start from 2 (row 1 is header)
        for idx, row in enumerate(all_rows[1:], start=2):
            if (
                len(row) > _USER_COL
                and row[_ID_COL] == transaction_id
                and row[_USER_COL] == user_id
            ):
                return idx, row
        return None, None

    def _publish(self, user_id: str, transaction_type: TransactionType) -> None:
        if not self._subscriptions.has_listeners(user_id, transaction_type):
            return
        try:
            documents = self._read_documents(user_id, transaction_type)
        except StorageError as e:
            logger.error(
                "snapshot_read_failed",
                user_id=user_id,
                collection=transaction_type.collection_name,
                error=str(e),
            )
            self._subscriptions.publish_error(user_id, transaction_type, e)
            return
        self._subscriptions.publish(user_id, transaction_type, documents)

    def refresh(
        self,
        user_id: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> None:
        """
        Re-read the sheet and push a snapshot to current subscribers.

        Picks up edits made outside this process (another session or a
        person editing the spreadsheet by hand).
        """
        types = [transaction_type] if transaction_type else list(TransactionType)
        for each in types:
            self._publish(user_id, each)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append(self, transaction_type: TransactionType, row: list) -> None:
        try:
            sheet = self._client.get_transactions_sheet(transaction_type)
            sheet.append_row(row, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save {transaction_type.label}: {e}")

    async def add_transaction(
        self,
        user_id: str,
        draft: TransactionDraft,
    ) -> str:
        """Save a new transaction as a row."""
        document_id = uuid4().hex
        fields = draft.to_document_fields(user_id)
        fields["timestamp"] = utc_now()

        await self._append(draft.transaction_type, self._document_row(document_id, fields))
        self._publish(user_id, draft.transaction_type)
        return document_id

    async def update_transaction(
        self,
        user_id: str,
        transaction_type: TransactionType,
        transaction_id: str,
        update: TransactionUpdate,
    ) -> bool:
        """Update an existing row in place."""
        try:
            sheet = self._client.get_transactions_sheet(transaction_type)
            idx, row = self._find_row_index(sheet, user_id, transaction_id)
            if idx is None:
                raise NotFoundError(
                    f"{transaction_type.label.capitalize()} not found: {transaction_id}"
                )

            fields = self._row_to_document(row).data
            fields.update(update.to_document_fields())
            fields["timestamp"] = utc_now()
            new_row = self._document_row(transaction_id, fields)

            last = _last_column_letter(TRANSACTION_COLUMNS)
            sheet.update(range_name=f"A{idx}:{last}{idx}", values=[new_row])
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {transaction_type.label}: {e}")

        self._publish(user_id, transaction_type)
        return True

    async def delete_transaction(
        self,
        user_id: str,
        transaction_type: TransactionType,
        transaction_id: str,
    ) -> bool:
        """Delete a row by transaction ID."""
        try:
            sheet = self._client.get_transactions_sheet(transaction_type)
            idx, _ = self._find_row_index(sheet, user_id, transaction_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
        except Exception as e:
            raise StorageError(f"Failed to delete {transaction_type.label}: {e}")

        self._publish(user_id, transaction_type)
        return True

    async def list_transactions(
        self,
        user_id: str,
        transaction_type: TransactionType,
    ) -> list[StoredDocument]:
        return self._read_documents(user_id, transaction_type)

    def subscribe(
        self,
        user_id: str,
        transaction_type: TransactionType,
        on_snapshot: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        subscription = self._subscriptions.add(
            user_id, transaction_type, on_snapshot, on_error
        )
        try:
            documents = self._read_documents(user_id, transaction_type)
        except StorageError as e:
            logger.error(
                "snapshot_read_failed",
                user_id=user_id,
                collection=transaction_type.collection_name,
                error=str(e),
            )
            subscription.fail(e)
        else:
            subscription.deliver(documents)
        return subscription


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
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            if user_id is not None and (len(row) <= 4 or row[4] != user_id):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError) as e:
                logger.warning("audit_row_unreadable", event_id=row[0], error=str(e))

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
