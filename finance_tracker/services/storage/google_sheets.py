"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets is used as the durable backend because:
1. Users can view and export their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No push notifications (we poll a content fingerprint instead)
- No transactions (one row per record, written in a single call)
- Limited query capabilities (we filter by user_id in Python)

Every Sheets call is retried with exponential backoff. When retries are
exhausted the failure surfaces as RemoteUnavailableError; the core itself
never retries.
"""

import asyncio
import hashlib
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.errors import (
    FinanceError,
    NotFoundError,
    RemoteUnavailableError,
)
from finance_tracker.models.finance import (
    AnnualGoals,
    FinanceSnapshot,
    Transaction,
    TransactionDraft,
    validate_draft,
    validate_goals,
    validate_transaction,
    validate_update,
)
from finance_tracker.services.storage.interface import (
    ChangeCallback,
    RemoteStore,
    Subscription,
)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "date",
    "type",
    "amount",
    "description",
    "category",
    "created_at",
    "updated_at",
]

# Column mappings for Goals sheet
GOAL_COLUMNS = [
    "user_id",
    "year",
    "expected_profit",
    "monthly_budget",
    "emergency_reserve",
    "planned_investments",
    "updated_at",
]

_retry_sheets_call = retry(
    retry=retry_if_exception_type(RemoteUnavailableError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _column_letter(count: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA"""
    letters = ""
    while count:
        count, remainder = divmod(count - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @_retry_sheets_call
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
                raise FinanceError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise RemoteUnavailableError(f"Failed to connect to Google Sheets: {e}")

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
                raise FinanceError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
        )

    def get_goals_sheet(self) -> gspread.Worksheet:
        """Get or create the Goals worksheet."""
        return self._get_or_create_sheet(
            self._settings.goals_sheet_name,
            GOAL_COLUMNS,
        )


class GoogleSheetsRemoteStore(RemoteStore):
    """
    Google Sheets implementation of the remote store.

    One transaction per row, one goal set per (user_id, year) row.
    Amounts are written as decimal strings so nothing is rounded.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _transaction_to_row(
        self,
        user_id: str,
        transaction: Transaction,
        created_at: Optional[str] = None,
    ) -> list:
        """Convert a Transaction to a spreadsheet row."""
        now = _now()
        return [
            transaction.id,
            user_id,
            transaction.date.isoformat(),
            transaction.type.value,
            str(transaction.amount),
            transaction.description,
            transaction.category or "",
            created_at or now,
            now,
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return validate_transaction({
            "id": safe_get(0),
            "date": safe_get(2),
            "type": safe_get(3),
            "amount": Decimal(safe_get(4, "0")),
            "description": safe_get(5),
            "category": safe_get(6) or None,
        })

    def _goals_to_row(self, user_id: str, goals: AnnualGoals) -> list:
        """Convert AnnualGoals to a spreadsheet row."""
        return [
            user_id,
            str(goals.year),
            str(goals.expected_profit),
            str(goals.monthly_budget),
            str(goals.emergency_reserve),
            str(goals.planned_investments),
            _now(),
        ]

    def _row_to_goals(self, row: list) -> AnnualGoals:
        """Convert a spreadsheet row to AnnualGoals."""
        return validate_goals({
            "year": int(row[1]),
            "expected_profit": Decimal(row[2] or "0"),
            "monthly_budget": Decimal(row[3] or "0"),
            "emergency_reserve": Decimal(row[4] or "0"),
            "planned_investments": Decimal(row[5] or "0"),
        })

    # -------------------------------------------------------------------------
    # Sheet access
    # -------------------------------------------------------------------------

    def _read_rows(self, sheet: gspread.Worksheet) -> list[list]:
        try:
            return sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to read sheet {sheet.title}: {e}")

    def _write_row(self, sheet: gspread.Worksheet, row_number: int, values: list) -> None:
        last_column = _column_letter(len(values))
        try:
            sheet.update(
                range_name=f"A{row_number}:{last_column}{row_number}",
                values=[values],
                value_input_option="RAW",
            )
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to write sheet {sheet.title}: {e}")

    def _append_row(self, sheet: gspread.Worksheet, values: list) -> None:
        try:
            sheet.append_row(values, value_input_option="RAW")
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to append to sheet {sheet.title}: {e}")

    def _find_transaction_row(
        self,
        sheet: gspread.Worksheet,
        user_id: str,
        transaction_id: str,
    ) -> tuple[int, list]:
        for idx, row in enumerate(self._read_rows(sheet), start=2):
            if len(row) > 1 and row[0] == transaction_id and row[1] == user_id:
                return idx, row
        raise NotFoundError("transaction", transaction_id)

    def _has_transaction_row(
        self,
        sheet: gspread.Worksheet,
        user_id: str,
        transaction_id: str,
    ) -> bool:
        return any(
            len(row) > 1 and row[0] == transaction_id and row[1] == user_id
            for row in self._read_rows(sheet)
        )

    def _sheets(self) -> tuple[gspread.Worksheet, gspread.Worksheet]:
        try:
            return self._client.get_transactions_sheet(), self._client.get_goals_sheet()
        except RemoteUnavailableError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Google Sheets not reachable: {e}")

    # -------------------------------------------------------------------------
    # RemoteStore implementation
    # -------------------------------------------------------------------------

    @_retry_sheets_call
    async def load_all(self, user_id: str) -> FinanceSnapshot:
        """Load every transaction and goal row belonging to user_id."""
        transactions_sheet, goals_sheet = self._sheets()

        transactions = []
        skipped = 0
        for row in self._read_rows(transactions_sheet):
            if len(row) < 2 or row[1] != user_id:
                continue
            try:
                transactions.append(self._row_to_transaction(row))
            except (FinanceError, ArithmeticError, ValueError) as e:
                skipped += 1
                self._logger.warning(
                    "sheets_row_skipped",
                    sheet=transactions_sheet.title,
                    row_id=row[0] if row else None,
                    error=str(e),
                )

        goals: dict[int, AnnualGoals] = {}
        for row in self._read_rows(goals_sheet):
            if len(row) < 2 or row[0] != user_id:
                continue
            try:
                parsed = self._row_to_goals(row)
            except (FinanceError, ArithmeticError, ValueError, IndexError) as e:
                skipped += 1
                self._logger.warning(
                    "sheets_row_skipped",
                    sheet=goals_sheet.title,
                    error=str(e),
                )
                continue
            goals[parsed.year] = parsed

        if skipped:
            self._logger.warning("sheets_load_incomplete", user_id=user_id, skipped=skipped)

        return FinanceSnapshot(
            transactions=transactions,
            goals=sorted(goals.values(), key=lambda g: g.year, reverse=True),
        )

    async def insert_transaction(
        self,
        user_id: str,
        draft: TransactionDraft,
    ) -> Transaction:
        """Append a new transaction row with a freshly assigned id."""
        validated = validate_draft(draft)
        transaction = validate_transaction({**validated.model_dump(), "id": str(uuid4())})

        await self._append_transaction(user_id, transaction)
        return transaction

    @_retry_sheets_call
    async def _append_transaction(self, user_id: str, transaction: Transaction) -> None:
        # A retried append may follow one that reached the sheet before failing
        sheet, _ = self._sheets()
        if self._has_transaction_row(sheet, user_id, transaction.id):
            return
        self._append_row(sheet, self._transaction_to_row(user_id, transaction))

    @_retry_sheets_call
    async def update_transaction(
        self,
        user_id: str,
        transaction_id: str,
        fields: Mapping[str, Any],
    ) -> Transaction:
        """Merge fields into the stored row and rewrite it."""
        changes = validate_update(fields).changes()

        sheet, _ = self._sheets()
        row_number, row = self._find_transaction_row(sheet, user_id, transaction_id)
        current = self._row_to_transaction(row)
        updated = validate_transaction({**current.model_dump(), **changes})

        created_at = row[7] if len(row) > 7 and row[7] else None
        self._write_row(sheet, row_number, self._transaction_to_row(user_id, updated, created_at))
        return updated

    @_retry_sheets_call
    async def delete_transaction(self, user_id: str, transaction_id: str) -> None:
        """Delete the row holding this transaction."""
        sheet, _ = self._sheets()
        row_number, _ = self._find_transaction_row(sheet, user_id, transaction_id)
        try:
            sheet.delete_rows(row_number)
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to delete transaction {transaction_id}: {e}")

    @_retry_sheets_call
    async def upsert_goals(self, user_id: str, goals: AnnualGoals) -> AnnualGoals:
        """Rewrite the (user_id, year) row, or append one if none exists."""
        validated = validate_goals(goals)
        _, sheet = self._sheets()
        new_row = self._goals_to_row(user_id, validated)

        for idx, row in enumerate(self._read_rows(sheet), start=2):
            if len(row) > 1 and row[0] == user_id and row[1] == str(validated.year):
                self._write_row(sheet, idx, new_row)
                return validated

        self._append_row(sheet, new_row)
        return validated

    # -------------------------------------------------------------------------
    # Change notifications
    # -------------------------------------------------------------------------

    async def fingerprint(self, user_id: str) -> str:
        """Hash of everything stored for a user; changes whenever their data does."""
        snapshot = await self.load_all(user_id)
        payload = json.dumps(
            json.loads(snapshot.to_json()),
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    async def subscribe(self, user_id: str, on_change: ChangeCallback) -> Subscription:
        """
        Poll the user's rows and call on_change when their fingerprint moves.

        Sheets has no push channel. A failed poll or a failing on_change is
        logged and polling carries on at the next tick.
        """
        interval = self._client.settings.poll_interval_seconds
        last_seen = await self.fingerprint(user_id)

        async def poll() -> None:
            nonlocal last_seen
            while True:
                await asyncio.sleep(interval)
                try:
                    current = await self.fingerprint(user_id)
                    if current == last_seen:
                        continue
                    last_seen = current
                    await on_change()
                except FinanceError as e:
                    self._logger.warning(
                        "sheets_poll_failed",
                        user_id=user_id,
                        error_type=type(e).__name__,
                        error=str(e),
                    )

        def on_done(task: asyncio.Task) -> None:
            if not task.cancelled() and task.exception() is not None:
                self._logger.error(
                    "sheets_poll_stopped",
                    user_id=user_id,
                    error=str(task.exception()),
                )

        task = asyncio.get_running_loop().create_task(poll())
        task.add_done_callback(on_done)
        return Subscription(task.cancel)
