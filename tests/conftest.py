"""
Shared fixtures.

No real Google API calls in tests: the primary store is either an
in-memory implementation of the interface or the real Google Sheets
store driving a fake worksheet.
"""

import pytest

from partnership_ledger.config import get_settings
from partnership_ledger.models import LedgerDocument, Transaction
from partnership_ledger.repository import LedgerRepository
from partnership_ledger.services.storage import (
    BackendUnavailableError,
    GoogleSheetsLedgerStore,
    LocalFileLedgerStore,
    PrimaryLedgerStore,
)


PARTNERS = ("A", "B")


class InMemoryPrimaryStore(PrimaryLedgerStore):
    """Primary store kept in memory, with switches for outages."""

    def __init__(self, document=None, configured=True):
        self.document = document
        self.configured = configured
        self.available = True
        self.accept_writes = True
        self.persist_calls = 0
        self.append_calls = 0
        self.raise_when_unconfigured = True

    @property
    def is_configured(self):
        return self.configured

    def _writable(self):
        return self.configured and self.available and self.accept_writes

    async def fetch_all(self):
        if not self.configured and self.raise_when_unconfigured:
            raise BackendUnavailableError("not configured")
        if not self.available:
            raise BackendUnavailableError("unreachable")
        document = self.document or LedgerDocument.empty()
        # Hand out a copy, the way a remote store would
        return LedgerDocument.model_validate(document.to_record())

    async def persist_all(self, document):
        self.persist_calls += 1
        if not self._writable():
            return False
        self.document = LedgerDocument.model_validate(document.to_record())
        return True

    async def append_one(self, transaction):
        self.append_calls += 1
        if not self._writable():
            return False
        document = self.document or LedgerDocument.empty()
        document.transactions.append(Transaction.model_validate(transaction.to_record()))
        document.next_id = document.max_id() + 1
        self.document = document
        return True

    async def describe(self):
        return {"configured": self.configured}


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the ledger store."""

    def __init__(self, rows=None, title="Transactions"):
        self.rows = [list(r) for r in (rows or [])]
        self.title = title
        self.row_count = 1000
        self.fail_with = None
        self.fail_only = None
        self.calls = []

    def _check(self, name):
        self.calls.append(name)
        if self.fail_with is not None and self.fail_only in (None, name):
            raise self.fail_with

    def get_all_values(self):
        self._check("get_all_values")
        return [list(r) for r in self.rows]

    def update(self, values=None, range_name=None, value_input_option=None):
        self._check("update")
        assert range_name == "A1"
        self.rows = [list(r) for r in values] + self.rows[len(values):]

    def batch_clear(self, ranges):
        self._check("batch_clear")
        for cell_range in ranges:
            first_row = int(cell_range.split(":")[0].lstrip("ABCDEFGHIJKLMNOPQRSTUVWXYZ"))
            self.rows = self.rows[:first_row - 1]

    def append_row(self, values, value_input_option=None):
        self._check("append_row")
        self.rows.append(list(values))

    def add_rows(self, rows):
        self._check("add_rows")
        self.row_count += rows


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient."""

    def __init__(self, worksheet, configured=True):
        self.worksheet = worksheet
        self.configured = configured
        self.spreadsheet_id = "sheet-123" if configured else None
        self.sheet_name = worksheet.title

    @property
    def is_configured(self):
        return self.configured

    def get_transactions_sheet(self):
        if not self.configured:
            raise BackendUnavailableError("No spreadsheet ID configured")
        return self.worksheet


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep developer env vars and .env files out of the tests."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "GOOGLE_SHEETS_TRANSACTIONS_SHEET_NAME",
        "GOOGLE_SHEETS_RETRY_ATTEMPTS",
        "LEDGER_DATA_FILE",
        "PARTNER_A_NAME",
        "PARTNER_B_NAME",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "data" / "partnership-ledger-data.json"


@pytest.fixture
def fallback_store(ledger_path):
    return LocalFileLedgerStore(ledger_path)


@pytest.fixture
def primary_store():
    return InMemoryPrimaryStore()


@pytest.fixture
def unconfigured_primary():
    return InMemoryPrimaryStore(configured=False)


@pytest.fixture
def silent_unconfigured_primary():
    """Unconfigured, but answers reads with an empty ledger instead of raising."""
    store = InMemoryPrimaryStore(configured=False)
    store.raise_when_unconfigured = False
    return store


@pytest.fixture
def repository(primary_store, fallback_store):
    return LedgerRepository(primary_store, fallback_store, partners=PARTNERS)


@pytest.fixture
def broken_fallback(tmp_path):
    """A fallback store whose directory can never be created."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    return LocalFileLedgerStore(blocker / "ledger.json")


@pytest.fixture
def worksheet():
    return FakeWorksheet()


@pytest.fixture
def sheets_client(worksheet):
    return FakeSheetsClient(worksheet)


@pytest.fixture
def sheets_store(sheets_client):
    return GoogleSheetsLedgerStore(client=sheets_client, retry_attempts=1)


@pytest.fixture
def unconfigured_sheets_store(worksheet):
    return GoogleSheetsLedgerStore(
        client=FakeSheetsClient(worksheet, configured=False),
        retry_attempts=1,
    )
