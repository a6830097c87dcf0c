"""Tests for command-boundary validation."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from ledger.models.transaction import TransactionDraft, TransactionKind, utc_now
from ledger.validation import (
    TransactionValidator,
    ValidationFailedError,
    parse_business_date,
    validate_date_range,
    validate_paging,
)


def _payload(**overrides) -> dict:
    payload = {
        "description": "Groceries",
        "amount": "82.40",
        "kind": "debit",
        "transaction_date": "2024-03-15T18:20:00",
        "category": "food",
    }
    payload.update(overrides)
    return payload


class TestParseBusinessDate:
    """Tests for parse_business_date."""

    def test_accepts_date(self):
        assert parse_business_date(date(2024, 3, 15)) == date(2024, 3, 15)

    def test_datetime_time_is_discarded(self):
        assert parse_business_date(datetime(2024, 3, 15, 23, 59, 59)) == date(2024, 3, 15)

    def test_accepts_iso_strings(self):
        assert parse_business_date("2024-03-15") == date(2024, 3, 15)
        assert parse_business_date(" 2024-03-15T08:00:00 ") == date(2024, 3, 15)

    @pytest.mark.parametrize("value", [None, "", "15/03/2024", "yesterday", 42, 3.5])
    def test_rejects_unusable_values(self, value):
        with pytest.raises(ValidationFailedError) as exc_info:
            parse_business_date(value)
        assert exc_info.value.issues[0].field == "date"

    def test_rejects_unset_sentinel(self):
        with pytest.raises(ValidationFailedError, match="must be set"):
            parse_business_date(date.min)

    def test_date_range(self):
        assert validate_date_range("2024-03-01", "2024-03-31") == (
            date(2024, 3, 1),
            date(2024, 3, 31),
        )
        with pytest.raises(ValidationFailedError):
            validate_date_range("2024-03-31", "2024-03-01")

    def test_paging(self):
        validate_paging(1, 10, max_page_size=100)
        with pytest.raises(ValidationFailedError) as exc_info:
            validate_paging(0, 500, max_page_size=100)
        assert {i.field for i in exc_info.value.issues} == {"page", "page_size"}


class TestTransactionValidator:
    """Tests for the two-stage transaction validator."""

    def test_valid_payload(self):
        result = TransactionValidator().validate(_payload())
        assert result.is_valid
        assert result.issues == []
        assert result.draft.amount == Decimal("82.40")
        assert result.draft.kind == TransactionKind.DEBIT

    def test_accepts_draft_instance(self):
        draft = TransactionDraft(**_payload())
        assert TransactionValidator().ensure_valid(draft).description == "Groceries"

    def test_schema_errors_name_the_field(self):
        result = TransactionValidator().validate(_payload(amount="-5", description=""))
        assert not result.schema_valid
        assert not result.semantic_valid
        assert {issue.field for issue in result.issues} == {"amount", "description"}

    def test_missing_kind(self):
        payload = _payload()
        del payload["kind"]
        result = TransactionValidator().validate(payload)
        assert [issue.field for issue in result.issues] == ["kind"]
        assert result.issues[0].issue_type == "missing"

    def test_semantic_stage_skipped_when_schema_fails(self):
        far_future = (utc_now() + timedelta(days=30)).isoformat()
        result = TransactionValidator().validate(
            _payload(amount="0", transaction_date=far_future)
        )
        assert [issue.field for issue in result.issues] == ["amount"]

    def test_rejects_far_future_date(self):
        far_future = (utc_now() + timedelta(days=3)).isoformat()
        result = TransactionValidator().validate(_payload(transaction_date=far_future))
        assert result.schema_valid
        assert not result.semantic_valid
        assert result.issues[0].issue_type == "future_date"

    def test_allows_date_within_tolerance(self):
        tomorrow = (utc_now() + timedelta(hours=12)).isoformat()
        assert TransactionValidator().validate(_payload(transaction_date=tomorrow)).is_valid

    def test_rejects_unset_transaction_date(self):
        result = TransactionValidator().validate(_payload(transaction_date=datetime.min))
        assert result.issues[0].field == "transaction_date"
        assert result.issues[0].issue_type == "missing"

    def test_configured_amount_limit(self):
        validator = TransactionValidator(max_amount=500)
        result = validator.validate(_payload(amount="600.00"))
        assert result.issues[0].issue_type == "out_of_range"

    def test_ensure_valid_raises_with_issues(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            TransactionValidator().ensure_valid(_payload(kind="transfer"))
        assert exc_info.value.issues[0].field == "kind"
