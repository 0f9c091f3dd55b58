"""
Google Sheets Primary Store

DESIGN DECISION: the ledger lives in a spreadsheet both partners can open:
1. Entries can be read and corrected by hand in Sheets
2. No database to run or back up

TRADEOFFS:
- No transactions, so a full write overwrites the rows from A1 and then
  blanks what is left below (idempotent; a failed write keeps the old rows)
- Quotas and outages happen, so every API call is retried with backoff
  and a final failure degrades to the local fallback store
- No queries; filtering and totals are computed in Python

Layout: one header row, then one row per transaction in LEDGER_COLUMNS order.
"""

import asyncio
from typing import Any, Callable, Optional

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import (
    Retrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from partnership_ledger.config import GoogleSheetsSettings, get_settings
from partnership_ledger.log import get_logger
from partnership_ledger.models.transaction import (
    LedgerDocument,
    MalformedRecordError,
    Transaction,
    ledger_now,
    parse_transaction,
)
from partnership_ledger.services.storage.interface import (
    BackendUnavailableError,
    PrimaryLedgerStore,
)


SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Header row of the transactions worksheet; names match the JSON keys
LEDGER_COLUMNS = [
    "id",
    "date",
    "type",
    "partner",
    "description",
    "amount",
    "deleted",
    "createdAt",
    "createdTimestamp",
    "updatedAt",
    "updatedTimestamp",
    "deletedAt",
    "deletedTimestamp",
]


def sheets_retrying(attempts: int, give_up_on: type[BaseException]) -> Retrying:
    """Exponential backoff for Sheets calls; give_up_on errors are not retried."""
    return Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(give_up_on),
        reraise=True,
    )


class GoogleSheetsClient:
    """
    Service-account access to the ledger spreadsheet.

    The gspread client and spreadsheet handle are opened lazily and kept
    for the lifetime of the object. Every failure to get there is raised
    as BackendUnavailableError.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._settings = settings or get_settings().google_sheets
        self._gc: Optional[gspread.Client] = None
        self._book: Optional[gspread.Spreadsheet] = None

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    @property
    def spreadsheet_id(self) -> Optional[str]:
        return self._settings.spreadsheet_id

    @property
    def sheet_name(self) -> str:
        return self._settings.transactions_sheet_name

    def _authorize(self) -> gspread.Client:
        credentials = Credentials.from_service_account_file(
            self._settings.credentials_path,
            scopes=SHEETS_SCOPES,
        )
        return gspread.authorize(credentials)

    def connect(self) -> gspread.Client:
        """Authorized gspread client."""
        if self._gc is not None:
            return self._gc

        path = self._settings.credentials_path
        if not path:
            raise BackendUnavailableError("GOOGLE_SHEETS_CREDENTIALS_PATH is not set")
        try:
            self._gc = sheets_retrying(
                self._settings.retry_attempts,
                FileNotFoundError,
            )(self._authorize)
        except FileNotFoundError as e:
            raise BackendUnavailableError(f"Credentials file missing: {path}") from e
        except Exception as e:
            raise BackendUnavailableError(f"Google Sheets authorization failed: {e}") from e
        return self._gc

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Open the spreadsheet named by GOOGLE_SHEETS_SPREADSHEET_ID."""
        if not self.is_configured:
            raise BackendUnavailableError("No spreadsheet ID configured")
        if self._book is None:
            try:
                self._book = self.connect().open_by_key(self.spreadsheet_id)
            except gspread.SpreadsheetNotFound as e:
                raise BackendUnavailableError(
                    f"No spreadsheet with ID {self.spreadsheet_id} is shared with the service account"
                ) from e
        return self._book

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """
        The transactions worksheet.

        A missing worksheet is added, with the header row, on first use.
        """
        book = self.get_spreadsheet()
        try:
            return book.worksheet(self.sheet_name)
        except gspread.WorksheetNotFound:
            pass

        worksheet = book.add_worksheet(
            title=self.sheet_name,
            rows=1000,
            cols=len(LEDGER_COLUMNS),
        )
        worksheet.append_row(LEDGER_COLUMNS)
        return worksheet


class GoogleSheetsLedgerStore(PrimaryLedgerStore):
    """
    Google Sheets implementation of the primary ledger store.

    Reads raise BackendUnavailableError; writes return False on failure.
    gspread is blocking, so every call (retries and backoff included)
    runs in a worker thread.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        retry_attempts: Optional[int] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._attempts = retry_attempts or get_settings().google_sheets.retry_attempts
        self._logger = get_logger(__name__)

    @property
    def is_configured(self) -> bool:
        return self._client.is_configured

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        retrying = sheets_retrying(self._attempts, BackendUnavailableError)
        return await asyncio.to_thread(retrying, fn, *args)

    def _transaction_to_row(self, transaction: Transaction) -> list[str]:
        """Convert a Transaction to a spreadsheet row."""
        record = transaction.to_record()
        record["deleted"] = "TRUE" if transaction.deleted else "FALSE"
        record["amount"] = str(transaction.amount)
        return [
            "" if record.get(column) is None else str(record[column])
            for column in LEDGER_COLUMNS
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        # The API trims trailing empty cells, so rows can be short
        cells = list(row) + [""] * (len(LEDGER_COLUMNS) - len(row))
        raw = {
            column: cell if cell != "" else None
            for column, cell in zip(LEDGER_COLUMNS, cells)
        }
        return parse_transaction(raw)

    def _read_rows(self) -> list[list[str]]:
        return self._client.get_transactions_sheet().get_all_values()

    def _replace_rows(self, values: list[list[str]]) -> None:
        """
        Overwrite from A1, then blank whatever is left below.

        The sheet is never cleared first: if the write fails, the old
        rows are still there.
        """
        sheet = self._client.get_transactions_sheet()
        if sheet.row_count < len(values):
            sheet.add_rows(len(values) - sheet.row_count)
        sheet.update(values=values, range_name="A1", value_input_option="RAW")
        if sheet.row_count > len(values):
            first = rowcol_to_a1(len(values) + 1, 1)
            last = rowcol_to_a1(sheet.row_count, len(LEDGER_COLUMNS))
            sheet.batch_clear([f"{first}:{last}"])

    def _append_row(self, row: list[str]) -> None:
        sheet = self._client.get_transactions_sheet()
        sheet.append_row(row, value_input_option="RAW")

    async def fetch_all(self) -> LedgerDocument:
        """
        Read the whole ledger from the worksheet.

        Rows without a usable id are left out and logged. They stay in
        the sheet until the next full replace.
        """
        if not self.is_configured:
            raise BackendUnavailableError("No spreadsheet ID configured")

        try:
            all_rows = await self._call(self._read_rows)
        except BackendUnavailableError:
            raise
        except Exception as e:
            raise BackendUnavailableError(f"Failed to read transactions: {e}") from e

        transactions = []
        for line_number, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if not row or not any(str(cell).strip() for cell in row):
                continue
            try:
                transactions.append(self._row_to_transaction(row))
            except MalformedRecordError as e:
                self._logger.warning(
                    "sheet_row_skipped",
                    sheet=self._client.sheet_name,
                    row=line_number,
                    error=str(e),
                )

        # Sheets keeps no document metadata; derive it from the rows
        stamps = [
            moment
            for t in transactions
            for moment in (t.created_at, t.updated_at, t.deleted_at)
            if moment is not None
        ]
        return LedgerDocument(
            transactions=transactions,
            next_id=max((t.id for t in transactions), default=0) + 1,
            last_updated=max(stamps) if stamps else ledger_now(),
        )

    async def persist_all(self, document: LedgerDocument) -> bool:
        """Replace every row so the sheet matches the document exactly."""
        if not self.is_configured:
            return False

        values = [list(LEDGER_COLUMNS)]
        values.extend(self._transaction_to_row(t) for t in document.transactions)
        try:
            await self._call(self._replace_rows, values)
            return True
        except Exception as e:
            self._logger.error(
                "sheets_persist_failed",
                error=str(e),
                row_count=len(values) - 1,
            )
            return False

    async def append_one(self, transaction: Transaction) -> bool:
        """Append a single transaction row."""
        if not self.is_configured:
            return False

        try:
            await self._call(self._append_row, self._transaction_to_row(transaction))
            return True
        except Exception as e:
            self._logger.error(
                "sheets_append_failed",
                error=str(e),
                transaction_id=transaction.id,
            )
            return False

    async def describe(self) -> dict[str, Any]:
        """Connection and layout diagnostics for the transactions worksheet."""
        info: dict[str, Any] = {
            "configured": self.is_configured,
            "spreadsheet_id": self._client.spreadsheet_id,
            "sheet_name": self._client.sheet_name,
        }
        if not self.is_configured:
            info["error"] = "No spreadsheet ID configured"
            return info

        def snapshot():
            sheet = self._client.get_transactions_sheet()
            return sheet, sheet.get_all_values()

        try:
            sheet, all_rows = await asyncio.to_thread(snapshot)
        except Exception as e:
            info["error"] = str(e)
            return info

        header = all_rows[0] if all_rows else []
        info.update(
            worksheet_title=sheet.title,
            header=header,
            header_matches=header[:len(LEDGER_COLUMNS)] == LEDGER_COLUMNS,
            row_count=sum(
                1 for row in all_rows[1:] if any(str(cell).strip() for cell in row)
            ),
        )
        return info
