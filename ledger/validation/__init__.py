"""Command-boundary validation."""

from ledger.validation.validator import (
    TransactionValidator,
    ValidationFailedError,
    parse_business_date,
    validate_date_range,
    validate_paging,
)

__all__ = [
    "TransactionValidator",
    "ValidationFailedError",
    "parse_business_date",
    "validate_date_range",
    "validate_paging",
]
