"""
Validation Models

Issues found at the command boundary, reported before any store is
touched.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ledger.models.transaction import TransactionDraft, utc_now


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )

    def to_log_dict(self) -> dict:
        return {
            "field": self.field,
            "type": self.issue_type,
            "message": self.message,
        }


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (types, required fields, lengths, ranges)
    Stage 2: Semantic validation (business rules)
    """

    validated_at: datetime = Field(
        default_factory=utc_now
    )

    # Stage results
    schema_valid: bool
    semantic_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    # The parsed payload, present when stage 1 passed
    draft: Optional[TransactionDraft] = None

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
