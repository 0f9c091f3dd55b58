"""
Ledger Repository

This is the only entry point callers use to read or change the ledger.
It decides which store to read, assigns ids, stamps audit timestamps and
decides where each write lands.

DESIGN DECISION: Backend selection is an explicit two-stage pipeline.
1. _try_primary() returns a BackendRead that either holds a document or
   says why it could not get one
2. _try_fallback() runs only when the primary read says it failed
No exception is used for control flow, so every fallback decision can
be tested on its own and is logged.

Writes go to the primary store first and to the fallback store only if
the primary refuses. A document that was itself read from the fallback
never overwrites a configured primary; it goes to the fallback only.
If both refuse, PersistenceFailedError is raised and the mutation must
be treated as not having happened.

KNOWN LIMITATION: every call does load-modify-persist with no token or
lock shared between processes. Two processes appending at the same time
can both read the same nextId and hand out the same id. Within one
process, mutating calls are serialized by an asyncio.Lock.
"""

import asyncio
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from partnership_ledger.config import get_settings
from partnership_ledger.log import get_logger
from partnership_ledger.models.transaction import (
    LedgerDocument,
    Transaction,
    TransactionInput,
    TransactionPatch,
    epoch_millis,
    ledger_now,
    validate_partner,
)
from partnership_ledger.services.storage import (
    BackendUnavailableError,
    FallbackLedgerStore,
    GoogleSheetsLedgerStore,
    LocalFileLedgerStore,
    NotFoundError,
    PersistenceFailedError,
    PrimaryLedgerStore,
)


class LedgerSource(str, Enum):
    """Which store a document was read from or written to."""
    PRIMARY = "primary"
    FALLBACK = "fallback"


class BackendRead(BaseModel):
    """Outcome of reading one store: a document, or the reason there is none."""

    source: LedgerSource
    document: Optional[LedgerDocument] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.document is not None


class LedgerRepository:
    """
    Orchestrates the primary and fallback stores.

    Nothing is cached between calls: every operation re-reads the ledger.
    """

    def __init__(
        self,
        primary: PrimaryLedgerStore,
        fallback: FallbackLedgerStore,
        partners: Optional[tuple[str, str]] = None,
    ):
        self._primary = primary
        self._fallback = fallback
        self._partners = tuple(partners) if partners else get_settings().app.partners
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @property
    def partners(self) -> tuple[str, ...]:
        return self._partners

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def _try_primary(self) -> BackendRead:
        try:
            document = await self._primary.fetch_all()
        except BackendUnavailableError as e:
            return BackendRead(source=LedgerSource.PRIMARY, error=str(e))

        if not document.transactions and not self._primary.is_configured:
            return BackendRead(
                source=LedgerSource.PRIMARY,
                error="Primary store is not configured and returned no rows",
            )
        return BackendRead(source=LedgerSource.PRIMARY, document=document)

    async def _try_fallback(self) -> BackendRead:
        document = await self._fallback.read()
        return BackendRead(source=LedgerSource.FALLBACK, document=document)

    async def _load(self) -> BackendRead:
        read = await self._try_primary()
        if read.ok:
            return read

        self._logger.warning("primary_read_failed_using_fallback", error=read.error)
        return await self._try_fallback()

    async def load(self) -> LedgerDocument:
        """
        Load the ledger from exactly one store.

        Primary first; the fallback document is returned when the primary
        is unavailable, or empty while not configured.
        """
        read = await self._load()
        return read.document

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def _persist(
        self,
        document: LedgerDocument,
        loaded_from: Optional[LedgerSource] = None,
        appended: Optional[Transaction] = None,
    ) -> LedgerSource:
        """
        Store the document: primary first, fallback second.

        A single appended row is sent with append_one only when the
        document was read from the primary store; otherwise the primary
        gets a full replace. A document read from the fallback while the
        primary is configured goes to the fallback only: it may be missing
        rows the primary still holds.

        Raises:
            PersistenceFailedError: If neither store accepted the write
        """
        document.last_updated = ledger_now()

        if loaded_from == LedgerSource.FALLBACK and self._primary.is_configured:
            self._logger.warning("primary_unread_writing_fallback_only")
            stored = False
        elif appended is not None and loaded_from == LedgerSource.PRIMARY:
            stored = await self._primary.append_one(appended)
        else:
            stored = await self._primary.persist_all(document)
        if stored:
            return LedgerSource.PRIMARY

        if self._primary.is_configured and loaded_from != LedgerSource.FALLBACK:
            self._logger.warning("primary_write_failed_using_fallback")

        if await self._fallback.write(document):
            return LedgerSource.FALLBACK

        self._logger.error(
            "persistence_failed",
            transaction_count=len(document.transactions),
        )
        raise PersistenceFailedError("Neither the primary nor the fallback store accepted the write")

    def _find(self, document: LedgerDocument, transaction_id: int) -> Transaction:
        transaction = document.find(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        return transaction

    async def append(self, data: TransactionInput) -> Transaction:
        """
        Create a transaction with the next id and fresh timestamps.

        Raises:
            InvalidTransactionError: If the partner is not configured
            PersistenceFailedError: If neither store accepted the write
        """
        partner = validate_partner(data.partner, self._partners)

        async with self._lock:
            read = await self._load()
            document = read.document

            now = ledger_now()
            millis = epoch_millis(now)
            fields = data.to_fields()
            fields["partner"] = partner

            transaction = Transaction(
                id=document.next_id,
                **fields,
                deleted=False,
                created_at=now,
                created_timestamp=millis,
                updated_at=now,
                updated_timestamp=millis,
            )
            document.next_id += 1
            document.transactions.append(transaction)

            stored_in = await self._persist(document, read.source, appended=transaction)

        self._logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            transaction_type=transaction.type,
            partner=transaction.partner,
            stored_in=stored_in.value,
        )
        return transaction

    async def update(self, transaction_id: int, patch: TransactionPatch) -> Transaction:
        """
        Apply the sent fields of patch to one transaction.

        Raises:
            NotFoundError: If no transaction has this id
            InvalidTransactionError: If the patch names an unknown partner
            PersistenceFailedError: If neither store accepted the write
        """
        changes = patch.changes()
        if "partner" in changes:
            changes["partner"] = validate_partner(changes["partner"], self._partners)

        async with self._lock:
            read = await self._load()
            document = read.document
            transaction = self._find(document, transaction_id)

            now = ledger_now()
            for field, value in changes.items():
                setattr(transaction, field, value)
            transaction.updated_at = now
            transaction.updated_timestamp = epoch_millis(now)

            stored_in = await self._persist(document, read.source)

        self._logger.info(
            "transaction_updated",
            transaction_id=transaction_id,
            fields=sorted(changes),
            stored_in=stored_in.value,
        )
        return transaction

    async def soft_delete(self, transaction_id: int) -> Transaction:
        """
        Mark a transaction deleted; it stays in the ledger.

        Deleting an already-deleted transaction re-stamps it and succeeds.

        Raises:
            NotFoundError: If no transaction has this id
            PersistenceFailedError: If neither store accepted the write
        """
        async with self._lock:
            read = await self._load()
            document = read.document
            transaction = self._find(document, transaction_id)

            now = ledger_now()
            millis = epoch_millis(now)
            transaction.deleted = True
            transaction.deleted_at = now
            transaction.deleted_timestamp = millis
            transaction.updated_at = now
            transaction.updated_timestamp = millis

            stored_in = await self._persist(document, read.source)

        self._logger.info(
            "transaction_deleted",
            transaction_id=transaction_id,
            stored_in=stored_in.value,
        )
        return transaction

    async def save(self, document: LedgerDocument) -> LedgerDocument:
        """
        Replace the whole ledger with document.

        Raises:
            PersistenceFailedError: If neither store accepted the write
        """
        async with self._lock:
            stored_in = await self._persist(document)

        self._logger.info(
            "ledger_replaced",
            transaction_count=len(document.transactions),
            stored_in=stored_in.value,
        )
        return document

    async def describe_backends(self) -> dict[str, Any]:
        """Diagnostics for both stores."""
        return {
            "primary": await self._primary.describe(),
            "fallback": await self._fallback.describe(),
        }


def create_repository() -> LedgerRepository:
    """
    Factory function building the repository from settings.

    Google Sheets is wired in even when unconfigured; an unconfigured
    primary store simply hands every read and write to the local file.
    """
    return LedgerRepository(
        primary=GoogleSheetsLedgerStore(),
        fallback=LocalFileLedgerStore(),
    )
