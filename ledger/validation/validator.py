"""
Command-Boundary Validation

Everything a caller hands the ledger is checked here, before any store
access.

Transactions go through two stages:

STAGE 1 - SCHEMA VALIDATION:
- Types, required fields, lengths
- Amount strictly positive and below the hard limit
- Kind is credit or debit

STAGE 2 - SEMANTIC VALIDATION:
- Transaction date is set and not too far in the future
- Amount below the configured limit

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes input. It reports what is
wrong and the caller decides.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError

from ledger.config import get_settings
from ledger.models.transaction import TransactionDraft, utc_now
from ledger.models.validation import ValidationIssue, ValidationResult


class ValidationFailedError(ValueError):
    """Input rejected at the command boundary."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        summary = "; ".join(f"{i.field}: {i.message}" for i in issues)
        super().__init__(f"Validation failed: {summary}")


def _reject(field: str, issue_type: str, message: str) -> ValidationFailedError:
    return ValidationFailedError([
        ValidationIssue(field=field, issue_type=issue_type, message=message)
    ])


def parse_business_date(value: Any, field: str = "date") -> date:
    """
    Turn caller input into a calendar day.

    Accepts a date, a datetime (time of day discarded) or an ISO-8601
    string. Raises ValidationFailedError for anything else, including
    the unset sentinel date.min.
    """
    if value is None:
        raise _reject(field, "missing", "A date is required")

    if isinstance(value, datetime):
        day = value.date()
    elif isinstance(value, date):
        day = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            day = date.fromisoformat(text)
        except ValueError:
            try:
                day = datetime.fromisoformat(text).date()
            except ValueError:
                raise _reject(
                    field, "invalid_format", f"'{value}' is not an ISO-8601 date"
                )
    else:
        raise _reject(
            field, "invalid_type", f"Expected a date, got {type(value).__name__}"
        )

    if day == date.min:
        raise _reject(field, "invalid_value", "Date must be set")

    return day


def validate_date_range(start: Any, end: Any) -> tuple[date, date]:
    """Parse both bounds and require start <= end."""
    start_day = parse_business_date(start, field="start_date")
    end_day = parse_business_date(end, field="end_date")
    if start_day > end_day:
        raise _reject(
            "date_range",
            "inconsistent",
            f"Start date {start_day} is after end date {end_day}",
        )
    return start_day, end_day


def validate_paging(page: int, page_size: int, max_page_size: int) -> None:
    issues = []
    if page < 1:
        issues.append(ValidationIssue(
            field="page",
            issue_type="invalid_value",
            message="Page must be 1 or greater",
        ))
    if page_size < 1 or page_size > max_page_size:
        issues.append(ValidationIssue(
            field="page_size",
            issue_type="invalid_value",
            message=f"Page size must be between 1 and {max_page_size}",
        ))
    if issues:
        raise ValidationFailedError(issues)


class TransactionValidator:
    """
    Validates transaction payloads through a two-stage pipeline.
    """

    def __init__(
        self,
        max_amount: Optional[int] = None,
        future_date_tolerance_days: Optional[int] = None,
    ):
        settings = get_settings().ledger
        self._max_amount = Decimal(str(
            max_amount if max_amount is not None else settings.max_transaction_amount
        ))
        self._future_days = (
            future_date_tolerance_days
            if future_date_tolerance_days is not None
            else settings.future_date_tolerance_days
        )

    def _validate_schema(
        self,
        payload: Union[dict, TransactionDraft],
    ) -> tuple[Optional[TransactionDraft], list[ValidationIssue]]:
        """
        Stage 1: build a TransactionDraft, collecting pydantic errors.

        Returns: (draft or None, list_of_issues)
        """
        if isinstance(payload, TransactionDraft):
            payload = payload.model_dump()

        try:
            return TransactionDraft.model_validate(payload), []
        except ValidationError as e:
            issues = []
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "payload"
                issues.append(ValidationIssue(
                    field=field,
                    issue_type=error["type"],
                    message=error["msg"],
                ))
            return None, issues

    def _validate_semantic(
        self,
        draft: TransactionDraft,
    ) -> list[ValidationIssue]:
        """
        Stage 2: business rules on a structurally valid draft.
        """
        issues = []

        tx_date = draft.transaction_date
        if tx_date.tzinfo is None:
            tx_date = tx_date.replace(tzinfo=timezone.utc)

        if tx_date.date() == date.min:
            issues.append(ValidationIssue(
                field="transaction_date",
                issue_type="missing",
                message="Transaction date must be set",
            ))
        elif tx_date > utc_now() + timedelta(days=self._future_days):
            issues.append(ValidationIssue(
                field="transaction_date",
                issue_type="future_date",
                message=(
                    f"Transaction date ({tx_date.date()}) is more than "
                    f"{self._future_days} day(s) in the future"
                ),
            ))

        if draft.amount >= self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="out_of_range",
                message=f"Amount must be less than {self._max_amount:,}",
            ))

        return issues

    def validate(self, payload: Union[dict, TransactionDraft]) -> ValidationResult:
        """
        Run the full two-stage pipeline.

        Returns:
            ValidationResult with all issues found (never raises)
        """
        draft, issues = self._validate_schema(payload)
        schema_valid = draft is not None

        semantic_valid = False
        if schema_valid:
            semantic_issues = self._validate_semantic(draft)
            issues.extend(semantic_issues)
            semantic_valid = not any(i.severity == "error" for i in semantic_issues)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
            draft=draft,
        )

    def ensure_valid(self, payload: Union[dict, TransactionDraft]) -> TransactionDraft:
        """
        Validate and return the draft.

        Raises:
            ValidationFailedError: If either stage reported an error
        """
        result = self.validate(payload)
        if not result.is_valid:
            raise ValidationFailedError(result.issues)
        return result.draft
