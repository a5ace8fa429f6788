"""
Validation Result Models

Results produced by the cross-entity validator. Entities validate their
own fields; these models describe the checks that need storage lookups
(ownership, uniqueness, references still in use).
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class IssueType:
    """Issue type codes used by the cross-entity validator."""
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    OWNERSHIP = "ownership"
    IN_USE = "in_use"


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'not_found', 'duplicate', 'ownership')"
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


class ValidationResult(BaseModel):
    """Outcome of one cross-entity check."""

    operation: str = Field(
        ...,
        description="What was being validated (e.g. 'record_expense')"
    )
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def first_error(self) -> Optional[ValidationIssue]:
        return next((i for i in self.issues if i.severity == "error"), None)
