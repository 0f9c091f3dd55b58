"""
Core Data Models for Partnership Ledger

These models define the shapes of everything the ledger persists:
1. TransactionInput / TransactionPatch - strict, what callers may send
2. Transaction - lenient, what we read back from storage
3. LedgerDocument - the single root document holding every transaction

DESIGN DECISION: Input is validated strictly, stored data is parsed
leniently. A spreadsheet cell someone typed "n/a" into must not make the
whole ledger unreadable, so malformed amounts become 0 and malformed
timestamps become absent. Only a record without a usable id is rejected.

Field names are snake_case in Python and camelCase on disk and on the wire.
"""

import datetime as dt
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


LEDGER_VERSION = "1.0"
BOTH_PARTNERS = "Both"

# Decimal in Python, plain number in JSON
Amount = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


class MalformedRecordError(ValueError):
    """A stored record could not be parsed into the Transaction shape."""
    pass


class InvalidTransactionError(ValueError):
    """Caller-supplied transaction data is not acceptable."""
    pass


def ledger_now() -> dt.datetime:
    """Current instant in UTC."""
    return dt.datetime.now(dt.timezone.utc)


def epoch_millis(moment: dt.datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(moment.timestamp() * 1000)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """The four kinds of ledger movement."""
    INVESTMENT = "Investment"
    EXPENSE = "Expense"
    PROFIT = "Profit"
    WITHDRAWAL = "Withdrawal"


# =============================================================================
# LENIENT PARSING HELPERS
# =============================================================================

def _lenient_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not parsed.is_finite():
        return Decimal("0")
    return parsed


def _lenient_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _lenient_datetime(value: Any) -> Optional[dt.datetime]:
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = dt.datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _lenient_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y", "t"}
    return bool(value)


# =============================================================================
# MODELS
# =============================================================================

class LedgerModel(BaseModel):
    """Shared config: camelCase aliases, snake_case attributes."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class TransactionInput(LedgerModel):
    """
    Payload for creating a transaction.

    All fields are required. The partner name is checked against the
    configured partners by the repository, not here.
    """

    date: dt.date = Field(
        ...,
        description="Calendar date of the movement"
    )
    type: TransactionType = Field(
        ...,
        description="Kind of movement"
    )
    partner: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Partner name or 'Both'"
    )
    description: str = Field(
        ...,
        max_length=500,
        description="Free-text label"
    )
    amount: Amount = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Non-negative amount"
    )

    def to_fields(self) -> dict[str, Any]:
        """Values in the form a stored Transaction holds them."""
        return {
            "date": self.date.isoformat(),
            "type": self.type.value,
            "partner": self.partner,
            "description": self.description,
            "amount": self.amount,
        }


class TransactionPatch(LedgerModel):
    """
    Partial update of a transaction.

    Only the fields the caller actually sent (and did not send as null)
    are applied; everything else stays as it is.
    """

    date: Optional[dt.date] = None
    type: Optional[TransactionType] = None
    partner: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    amount: Optional[Amount] = Field(default=None, ge=0, allow_inf_nan=False)

    def changes(self) -> dict[str, Any]:
        """Sent fields converted to stored Transaction values."""
        sent = self.model_dump(exclude_unset=True, exclude_none=True)
        if "date" in sent:
            sent["date"] = sent["date"].isoformat()
        if "type" in sent:
            sent["type"] = TransactionType(sent["type"]).value
        return sent


class Transaction(LedgerModel):
    """
    A persisted ledger entry.

    Created only by LedgerRepository.append. Never physically removed;
    deletion sets `deleted` and the deletion timestamps.
    """

    id: int = Field(
        ...,
        description="Unique, immutable identifier"
    )
    date: str = ""
    type: str = ""
    partner: str = ""
    description: str = ""
    amount: Amount = Decimal("0")
    deleted: bool = False

    # Audit timestamps (ISO + epoch millis)
    created_at: Optional[dt.datetime] = None
    created_timestamp: Optional[int] = None
    updated_at: Optional[dt.datetime] = None
    updated_timestamp: Optional[int] = None
    deleted_at: Optional[dt.datetime] = None
    deleted_timestamp: Optional[int] = None

    @field_validator("date", "type", "partner", "description", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, dt.date):
            return v.isoformat()
        if isinstance(v, Enum):
            return str(v.value)
        return str(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> Decimal:
        return _lenient_decimal(v)

    @field_validator("deleted", mode="before")
    @classmethod
    def _coerce_deleted(cls, v: Any) -> bool:
        return _lenient_bool(v)

    @field_validator("created_at", "updated_at", "deleted_at", mode="before")
    @classmethod
    def _coerce_moment(cls, v: Any) -> Optional[dt.datetime]:
        return _lenient_datetime(v)

    @field_validator(
        "created_timestamp", "updated_timestamp", "deleted_timestamp", mode="before"
    )
    @classmethod
    def _coerce_millis(cls, v: Any) -> Optional[int]:
        return _lenient_int(v)

    def to_record(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys; absent timestamps omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LedgerDocument(LedgerModel):
    """
    The whole ledger: every transaction plus metadata.

    Invariant: next_id is strictly greater than every id in transactions.
    """

    transactions: list[Transaction] = Field(default_factory=list)
    next_id: int = Field(default=1, ge=1)
    last_updated: dt.datetime = Field(default_factory=ledger_now)
    version: str = LEDGER_VERSION

    @model_validator(mode="after")
    def _keep_next_id_ahead(self) -> "LedgerDocument":
        highest = self.max_id()
        if self.next_id <= highest:
            self.next_id = highest + 1
        return self

    @classmethod
    def empty(cls) -> "LedgerDocument":
        """The legitimate empty ledger."""
        return cls()

    def max_id(self) -> int:
        return max((t.id for t in self.transactions), default=0)

    def find(self, transaction_id: int) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def to_record(self) -> dict[str, Any]:
        """JSON-ready dict in the on-disk/wire shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# PARSE-WITH-DEFAULTS
# =============================================================================

def parse_transaction(raw: Any) -> Transaction:
    """
    Parse one stored record.

    Raises:
        MalformedRecordError: If the record is not a mapping or has no usable id
    """
    if not isinstance(raw, dict):
        raise MalformedRecordError(f"Transaction record is not an object: {raw!r}")
    try:
        return Transaction.model_validate(raw)
    except ValidationError as e:
        raise MalformedRecordError(
            f"Unreadable transaction record (id={raw.get('id')!r}): {e.error_count()} error(s)"
        ) from e


def parse_document(raw: Any) -> tuple[LedgerDocument, list[MalformedRecordError]]:
    """
    Parse a stored ledger document, excluding records that cannot be read.

    Returns:
        (document, skipped) where skipped lists one error per excluded record

    Raises:
        MalformedRecordError: If the document itself is not a mapping
    """
    if not isinstance(raw, dict):
        raise MalformedRecordError("Ledger document is not an object")

    raw_transactions = raw.get("transactions")
    if not isinstance(raw_transactions, list):
        raw_transactions = []

    transactions = []
    skipped = []
    for item in raw_transactions:
        try:
            transactions.append(parse_transaction(item))
        except MalformedRecordError as e:
            skipped.append(e)

    next_id = _lenient_int(raw.get("nextId", raw.get("next_id")))
    last_updated = _lenient_datetime(raw.get("lastUpdated", raw.get("last_updated")))
    version = raw.get("version")

    document = LedgerDocument(
        transactions=transactions,
        next_id=next_id if next_id and next_id > 0 else 1,
        last_updated=last_updated or ledger_now(),
        version=str(version) if version else LEDGER_VERSION,
    )
    return document, skipped


def validate_partner(partner: str, partners: tuple[str, ...]) -> str:
    """
    Check a partner name against the configured partners.

    Raises:
        InvalidTransactionError: If the name is neither a partner nor 'Both'
    """
    name = (partner or "").strip()
    allowed = (*partners, BOTH_PARTNERS)
    if name not in allowed:
        raise InvalidTransactionError(
            f"Unknown partner {partner!r}; expected one of {', '.join(allowed)}"
        )
    return name
