"""
Tests for Partnership Ledger models

Test strategy:
1. Strict validation of caller input
2. Lenient parsing of stored records
3. Document-level invariants
"""

import datetime as dt
from decimal import Decimal

import pytest

from partnership_ledger.models import (
    LEDGER_VERSION,
    InvalidTransactionError,
    LedgerDocument,
    MalformedRecordError,
    Transaction,
    TransactionInput,
    TransactionPatch,
    TransactionType,
    parse_document,
    parse_transaction,
    validate_partner,
)


class TestTransactionInput:
    """Tests for the create payload."""

    def test_input_creation(self):
        """Test TransactionInput from a wire payload."""
        data = TransactionInput.model_validate({
            "date": "2024-01-01",
            "type": "Investment",
            "partner": "A",
            "description": "Seed money",
            "amount": "1000",
        })
        assert data.date == dt.date(2024, 1, 1)
        assert data.type == TransactionType.INVESTMENT
        assert data.amount == Decimal("1000")

    def test_input_to_fields(self):
        """Test conversion to stored values."""
        data = TransactionInput(
            date=dt.date(2024, 3, 5),
            type=TransactionType.EXPENSE,
            partner="B",
            description="Rent",
            amount=Decimal("250.50"),
        )
        fields = data.to_fields()
        assert fields["date"] == "2024-03-05"
        assert fields["type"] == "Expense"
        assert fields["amount"] == Decimal("250.50")

    def test_input_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            TransactionInput(
                date="2024-01-01",
                type="Expense",
                partner="A",
                description="Refund?",
                amount=Decimal("-5"),
            )

    def test_input_rejects_unknown_type(self):
        """Test that the type enumeration is closed."""
        with pytest.raises(ValueError):
            TransactionInput(
                date="2024-01-01",
                type="Donation",
                partner="A",
                description="",
                amount=1,
            )

    def test_input_requires_every_field(self):
        """Test that description is required even if empty is allowed."""
        with pytest.raises(ValueError):
            TransactionInput.model_validate({
                "date": "2024-01-01",
                "type": "Profit",
                "partner": "A",
                "amount": 10,
            })

    def test_input_rejects_non_numeric_amount(self):
        """Test that malformed amounts are rejected on input."""
        with pytest.raises(ValueError):
            TransactionInput.model_validate({
                "date": "2024-01-01",
                "type": "Profit",
                "partner": "A",
                "description": "",
                "amount": "lots",
            })


class TestTransactionPatch:
    """Tests for partial updates."""

    def test_patch_only_sent_fields(self):
        """Test that unsent fields are not part of the changes."""
        patch = TransactionPatch.model_validate({"amount": "75"})
        assert patch.changes() == {"amount": Decimal("75")}

    def test_patch_ignores_nulls(self):
        """Test that explicit nulls leave fields unchanged."""
        patch = TransactionPatch.model_validate({"description": None, "type": "Withdrawal"})
        assert patch.changes() == {"type": "Withdrawal"}

    def test_patch_converts_date(self):
        """Test that dates are stored as ISO strings."""
        patch = TransactionPatch.model_validate({"date": "2024-02-29"})
        assert patch.changes() == {"date": "2024-02-29"}

    def test_patch_cannot_touch_id(self):
        """Test that ids are not patchable."""
        patch = TransactionPatch.model_validate({"id": 99, "deleted": True})
        assert patch.changes() == {}


class TestTransactionParsing:
    """Tests for lenient parsing of stored records."""

    def test_parse_full_record(self):
        """Test a well-formed stored record."""
        transaction = parse_transaction({
            "id": 3,
            "date": "2024-01-01",
            "type": "Profit",
            "partner": "Both",
            "description": "Q1",
            "amount": 400,
            "deleted": False,
            "createdAt": "2024-01-01T10:00:00.000Z",
            "createdTimestamp": 1704103200000,
        })
        assert transaction.id == 3
        assert transaction.amount == Decimal("400")
        assert transaction.created_at == dt.datetime(2024, 1, 1, 10, tzinfo=dt.timezone.utc)
        assert transaction.created_timestamp == 1704103200000

    def test_malformed_amount_becomes_zero(self):
        """Test that a bad amount does not break the record."""
        for bad in ("n/a", None, "", "NaN", "Infinity"):
            transaction = parse_transaction({"id": 1, "amount": bad})
            assert transaction.amount == Decimal("0")

    def test_spreadsheet_values(self):
        """Test the string forms a spreadsheet returns."""
        transaction = parse_transaction({
            "id": "7",
            "amount": "12.50",
            "deleted": "TRUE",
            "updatedTimestamp": "1704103200000",
        })
        assert transaction.id == 7
        assert transaction.amount == Decimal("12.50")
        assert transaction.deleted is True
        assert transaction.updated_timestamp == 1704103200000

    def test_malformed_timestamps_become_absent(self):
        """Test that unreadable timestamps are dropped."""
        transaction = parse_transaction({
            "id": 1,
            "createdAt": "yesterday",
            "createdTimestamp": "soon",
        })
        assert transaction.created_at is None
        assert transaction.created_timestamp is None

    def test_missing_id_is_malformed(self):
        """Test that a record without an id is rejected."""
        with pytest.raises(MalformedRecordError):
            parse_transaction({"date": "2024-01-01", "amount": 5})

    def test_non_object_is_malformed(self):
        """Test that a record must be a mapping."""
        with pytest.raises(MalformedRecordError):
            parse_transaction(["1", "2024-01-01"])

    def test_record_uses_camel_case_and_omits_absent_fields(self):
        """Test the stored shape."""
        transaction = Transaction(id=1, date="2024-01-01", amount=Decimal("10"))
        record = transaction.to_record()
        assert record["amount"] == 10.0
        assert record["deleted"] is False
        assert "deletedAt" not in record
        assert "deletedTimestamp" not in record
        assert "created_at" not in record


class TestLedgerDocument:
    """Tests for the root document."""

    def test_empty_document(self):
        """Test the default empty ledger."""
        document = LedgerDocument.empty()
        assert document.transactions == []
        assert document.next_id == 1
        assert document.version == LEDGER_VERSION
        assert document.last_updated is not None

    def test_next_id_kept_ahead_of_ids(self):
        """Test that a stale counter is raised above the highest id."""
        document = LedgerDocument(
            transactions=[Transaction(id=1), Transaction(id=5)],
            next_id=2,
        )
        assert document.next_id == 6

    def test_next_id_never_lowered(self):
        """Test that ids freed by nothing are still not reused."""
        document = LedgerDocument(transactions=[Transaction(id=1)], next_id=10)
        assert document.next_id == 10

    def test_find(self):
        """Test lookup by id."""
        document = LedgerDocument(transactions=[Transaction(id=1), Transaction(id=2)])
        assert document.find(2).id == 2
        assert document.find(3) is None

    def test_parse_document_skips_malformed_records(self):
        """Test that one bad record does not hide the others."""
        document, skipped = parse_document({
            "transactions": [
                {"id": 1, "amount": 10},
                {"amount": 20},
                "garbage",
                {"id": 2, "amount": "bad"},
            ],
            "nextId": 3,
            "lastUpdated": "2024-01-01T00:00:00Z",
            "version": "1.0",
        })
        assert [t.id for t in document.transactions] == [1, 2]
        assert len(skipped) == 2
        assert document.next_id == 3
        assert document.last_updated == dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)

    def test_parse_document_defaults_metadata(self):
        """Test that missing metadata is defaulted."""
        document, skipped = parse_document({"transactions": "oops", "nextId": "x"})
        assert document.transactions == []
        assert document.next_id == 1
        assert document.version == LEDGER_VERSION
        assert skipped == []

    def test_parse_document_requires_object(self):
        """Test that a non-object document is malformed."""
        with pytest.raises(MalformedRecordError):
            parse_document([1, 2, 3])


class TestPartnerValidation:
    """Tests for partner names."""

    def test_known_partners(self):
        assert validate_partner("A", ("A", "B")) == "A"
        assert validate_partner(" Both ", ("A", "B")) == "Both"

    def test_unknown_partner(self):
        with pytest.raises(InvalidTransactionError, match="Unknown partner"):
            validate_partner("C", ("A", "B"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
