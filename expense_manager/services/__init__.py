"""
Services Package

Collaborators the domain model relies on but does not implement:
storage and password hashing.
"""

from expense_manager.services.security import (
    BcryptPasswordHasher,
    PasswordHasher,
)
from expense_manager.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)

__all__ = [
    # Security
    "BcryptPasswordHasher",
    "PasswordHasher",
    # Storage
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryCategoryStorage",
    "InMemoryExpenseStorage",
    "InMemoryUserStorage",
    "NotFoundError",
    "StorageError",
    "UserStorageInterface",
]
