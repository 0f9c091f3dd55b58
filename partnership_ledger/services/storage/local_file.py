"""
Local JSON Fallback Store

The whole ledger lives in one JSON document on local disk. It is used
when Google Sheets is unconfigured or unreachable.

Atomicity: writes target a temp file in the same directory first and are
then moved into place with ``os.replace``, so a crash mid-write leaves
either the old document or the new one, never a truncated file.
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from partnership_ledger.config import get_settings
from partnership_ledger.log import get_logger
from partnership_ledger.models.transaction import (
    LedgerDocument,
    MalformedRecordError,
    parse_document,
)
from partnership_ledger.services.storage.interface import FallbackLedgerStore


class LocalFileLedgerStore(FallbackLedgerStore):
    """File-backed implementation of the fallback ledger store."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path else get_settings().local_store.data_path
        self._logger = get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def exists(self) -> bool:
        return self._path.is_file()

    async def read(self) -> LedgerDocument:
        """Read the ledger; a missing or unreadable file is an empty ledger."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return LedgerDocument.empty()
        except (OSError, ValueError) as e:
            self._logger.warning(
                "local_ledger_unreadable",
                path=str(self._path),
                error=str(e),
            )
            return LedgerDocument.empty()

        try:
            document, skipped = parse_document(raw)
        except MalformedRecordError as e:
            self._logger.warning(
                "local_ledger_malformed",
                path=str(self._path),
                error=str(e),
            )
            return LedgerDocument.empty()

        for error in skipped:
            self._logger.warning(
                "local_record_skipped",
                path=str(self._path),
                error=str(error),
            )
        return document

    async def write(self, document: LedgerDocument) -> bool:
        """Write the ledger atomically."""
        directory = self._path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                dir=str(directory),
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document.to_record(), f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
            return True
        except OSError as e:
            self._logger.error(
                "local_ledger_write_failed",
                path=str(self._path),
                error=str(e),
            )
            if tmp_path:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_path)
            return False

    async def describe(self) -> dict[str, Any]:
        return {"path": str(self._path), "exists": self.exists}
