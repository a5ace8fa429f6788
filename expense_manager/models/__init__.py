"""
Domain Models Package

Value objects, entities and errors of the expense manager, plus the
audit and validation result models used around them.
"""

from expense_manager.models.errors import (
    DomainError,
    InvalidArgumentError,
    InvalidOperationError,
    MissingRequiredValueError,
)
from expense_manager.models.value_objects import (
    DEFAULT_CURRENCY,
    Email,
    HashedPassword,
    Money,
)
from expense_manager.models.entities import (
    Category,
    Entity,
    Expense,
    ExpenseType,
    PaymentMethod,
    User,
    utc_now,
)
from expense_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from expense_manager.models.validation import (
    IssueType,
    ValidationIssue,
    ValidationResult,
)
from expense_manager.models.summary import BalanceSummary

__all__ = [
    # Errors
    "DomainError",
    "InvalidArgumentError",
    "InvalidOperationError",
    "MissingRequiredValueError",
    # Value objects
    "DEFAULT_CURRENCY",
    "Email",
    "HashedPassword",
    "Money",
    # Entities
    "Category",
    "Entity",
    "Expense",
    "ExpenseType",
    "PaymentMethod",
    "User",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "IssueType",
    "ValidationIssue",
    "ValidationResult",
    # Read models
    "BalanceSummary",
]
