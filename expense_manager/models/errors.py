"""
Domain Errors

All business-rule violations raised by the domain model derive from
DomainError. They are ValueError subclasses so callers that only care
about "bad input" can catch ValueError.

Validation is fail-fast: the first violated rule raises, and the entity
is left untouched.
"""

from typing import Optional


class DomainError(ValueError):
    """Base exception for domain rule violations."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class InvalidArgumentError(DomainError):
    """A field value breaks a validation rule (empty, length, range...)."""
    pass


class MissingRequiredValueError(DomainError):
    """A mandatory value (email, password, amount) was not provided."""

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"{field} cannot be null", field=field)


class InvalidOperationError(DomainError):
    """The operation is not allowed for these operands or in this state."""
    pass
