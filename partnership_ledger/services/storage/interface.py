"""
Abstract Storage Interfaces

DESIGN DECISION: The ledger has two stores with different contracts.
1. The primary store is remote and may be down, slow or unconfigured.
   Reads raise BackendUnavailableError, writes return False.
2. The fallback store is a local file. Reads never fail (a missing file
   is an empty ledger), writes return False.

Keeping both behind interfaces lets the repository be tested with
in-memory stores and lets either backend be swapped later.
"""

from abc import ABC, abstractmethod
from typing import Any

from partnership_ledger.models.transaction import (
    LedgerDocument,
    MalformedRecordError,
    Transaction,
)


class PrimaryLedgerStore(ABC):
    """
    Remote store holding one row per transaction.

    Every call must be independently retryable. Write failures are
    reported as False so the caller can fall back without crashing.
    """

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether a destination has been configured at all."""
        pass

    @abstractmethod
    async def fetch_all(self) -> LedgerDocument:
        """
        Read every transaction and rebuild the ledger document.

        next_id is reconstructed as 1 + max(id), or 1 when empty.

        Raises:
            BackendUnavailableError: If unconfigured, unreachable, or a row
                cannot be read
        """
        pass

    @abstractmethod
    async def persist_all(self, document: LedgerDocument) -> bool:
        """
        Replace the stored rows with document.transactions, exactly.

        Returns:
            True on success, False on any failure
        """
        pass

    @abstractmethod
    async def append_one(self, transaction: Transaction) -> bool:
        """
        Append a single transaction row.

        Returns:
            True on success, False on any failure
        """
        pass

    @abstractmethod
    async def describe(self) -> dict[str, Any]:
        """Diagnostic snapshot of the store. Never raises."""
        pass


class FallbackLedgerStore(ABC):
    """Local store holding the whole ledger as one document."""

    @property
    @abstractmethod
    def exists(self) -> bool:
        """Whether a stored document is present."""
        pass

    @abstractmethod
    async def read(self) -> LedgerDocument:
        """
        Read the stored document.

        Returns a fresh empty ledger if nothing usable is stored.
        """
        pass

    @abstractmethod
    async def write(self, document: LedgerDocument) -> bool:
        """
        Store the whole document atomically.

        Returns:
            True on success, False on I/O failure
        """
        pass

    @abstractmethod
    async def describe(self) -> dict[str, Any]:
        """Diagnostic snapshot of the store. Never raises."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class BackendUnavailableError(StorageError):
    """The primary store could not be reached, is unconfigured, or returned bad rows."""
    pass


class NotFoundError(StorageError):
    """Referenced transaction id is not in the ledger."""
    pass


class PersistenceFailedError(StorageError):
    """Neither store accepted a mutation; it is not durable."""
    pass
