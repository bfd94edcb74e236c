"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the initial storage backend because:
1. Group members can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for a household)
- No transactions: a failed split insert is undone by deleting the
  expense row (see ExpenseSubmissionFlow.submit)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing business logic.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from splitledger.config import get_settings
from splitledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from splitledger.models.expense import (
    Expense,
    ExpenseStatus,
    Member,
    Split,
    SplitStatus,
)
from splitledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseStoreInterface,
    MemberDirectoryInterface,
    StorageError,
)


EXPENSE_COLUMNS = [
    "id",
    "description",
    "total_amount",
    "payer_id",
    "status",
    "created_at",
]

SPLIT_COLUMNS = [
    "expense_id",
    "consumer_id",
    "responsible_id",
    "amount",
    "status",
]

PROFILE_COLUMNS = [
    "id",
    "display_name",
    "is_admin",
    "is_proxy",
    "guardian_id",
]

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
    "actor_id",
]


def _safe_getter(row: list):
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
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

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS
        )

    def get_splits_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.splits_sheet_name, SPLIT_COLUMNS, rows=5000
        )

    def get_profiles_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.profiles_sheet_name, PROFILE_COLUMNS, rows=200
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsMemberDirectory(MemberDirectoryInterface):
    """
    Reads the member directory from the Profiles worksheet.

    The sheet is maintained by group admins; we never write to it.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_member(self, row: list) -> Member:
        safe_get = _safe_getter(row)
        return Member(
            id=safe_get(0),
            display_name=safe_get(1),
            is_admin=_parse_bool(safe_get(2)),
            is_proxy=_parse_bool(safe_get(3)),
            guardian_id=safe_get(4) or None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _read_profile_rows(self) -> list[list]:
        try:
            sheet = self._client.get_profiles_sheet()
            return sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to read member directory: {e}")

    async def list_members(self) -> list[Member]:
        all_rows = await self._read_profile_rows()

        # A malformed profile row fails loudly rather than vanishing from the group
        return [self._row_to_member(row) for row in all_rows if row and row[0]]


class GoogleSheetsExpenseStore(ExpenseStoreInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row in Expenses, one split per row in Splits.
    Inserts are NOT retried: a retry after an unreported success would
    write the same rows twice.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, expense: Expense) -> list:
        return [
            str(expense.id),
            expense.description,
            str(expense.total_amount),
            expense.payer_id,
            expense.status.value,
            expense.created_at.isoformat(),
        ]

    def _row_to_expense(self, row: list) -> Expense:
        safe_get = _safe_getter(row)
        return Expense(
            id=UUID(safe_get(0)),
            description=safe_get(1),
            total_amount=Decimal(safe_get(2)),
            payer_id=safe_get(3),
            status=ExpenseStatus(safe_get(4)),
            created_at=datetime.fromisoformat(safe_get(5)),
        )

    def _split_to_row(self, split: Split) -> list:
        return [
            str(split.expense_id),
            split.consumer_id,
            split.responsible_id,
            str(split.amount),
            split.status.value,
        ]

    def _row_to_split(self, row: list) -> Split:
        safe_get = _safe_getter(row)
        return Split(
            expense_id=UUID(safe_get(0)),
            consumer_id=safe_get(1),
            responsible_id=safe_get(2),
            amount=Decimal(safe_get(3, "0")),
            status=SplitStatus(safe_get(4)),
        )

    async def insert_expense(self, expense: Expense) -> UUID:
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.append_row(self._expense_to_row(expense), value_input_option="RAW")
            return expense.id
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def insert_splits(self, splits: list[Split]) -> None:
        try:
            sheet = self._client.get_splits_sheet()
            # Single append call so the rows land together
            sheet.append_rows(
                [self._split_to_row(split) for split in splits],
                value_input_option="RAW",
            )
        except Exception as e:
            raise StorageError(f"Failed to save splits: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def delete_expense(self, expense_id: UUID) -> bool:
        """Delete an expense row and cascade to its split rows."""
        key = str(expense_id)
        try:
            splits_sheet = self._client.get_splits_sheet()
            split_rows = splits_sheet.get_all_values()
            # Bottom-up so earlier row numbers stay valid
            for idx in range(len(split_rows), 1, -1):
                row = split_rows[idx - 1]
                if row and row[0] == key:
                    splits_sheet.delete_rows(idx)

            expenses_sheet = self._client.get_expenses_sheet()
            for idx, row in enumerate(expenses_sheet.get_all_values()[1:], start=2):
                if row and row[0] == key:
                    expenses_sheet.delete_rows(idx)
                    return True

            return False
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]

            for row in all_rows:
                if row and row[0] == str(expense_id):
                    return self._row_to_expense(row)

            return None
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def list_splits(self, expense_id: UUID) -> list[Split]:
        try:
            sheet = self._client.get_splits_sheet()
            all_rows = sheet.get_all_values()[1:]
            return [
                self._row_to_split(row)
                for row in all_rows
                if row and row[0] == str(expense_id)
            ]
        except Exception as e:
            raise StorageError(f"Failed to list splits: {e}")

    async def list_expenses(self, limit: int = 100) -> list[Expense]:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header

            expenses = []
            for row in all_rows:
                if not row or not row[0]:  # Skip empty rows
                    continue
                try:
                    expenses.append(self._row_to_expense(row))
                except ValueError:
                    continue  # Skip malformed rows

            # Newest first
            expenses.sort(key=lambda e: e.created_at, reverse=True)
            return expenses[:limit]
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            actor_id=safe_get(10) or None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and len(row) > 6 and row[6] == str(correlation_id):
                    try:
                        events.append(self._row_to_event(row))
                    except ValueError:
                        continue

            # Sort chronologically
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
