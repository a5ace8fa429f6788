"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Plug in a real database without touching the domain model
2. Use in-memory storage for testing
3. Keep uniqueness and existence checks out of the entities

The interface is intentionally simple - we're not building a full ORM.
Operations are keyed by identifier: create, fetch by id, fetch by owner,
update, delete, existence check, uniqueness check.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from expense_manager.models.audit import AuditEvent
from expense_manager.models.entities import Category, Expense, User


class UserStorageInterface(ABC):
    """Abstract interface for user storage operations."""

    @abstractmethod
    async def save_user(self, user: User) -> User:
        """
        Store a new user.

        Raises:
            DuplicateError: If a user with the same id already exists
        """
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Return the user, or None if it does not exist."""
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Return the user owning this e-mail address, or None.

        The address is compared in its normalized (lower-cased) form.
        """
        pass

    @abstractmethod
    async def list_users(self) -> list[User]:
        """List all users, oldest first."""
        pass

    @abstractmethod
    async def update_user(self, user: User) -> None:
        """
        Persist the current state of an existing user.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        pass

    @abstractmethod
    async def delete_user(self, user_id: UUID) -> None:
        """
        Delete a user by id.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        pass

    @abstractmethod
    async def user_exists(self, user_id: UUID) -> bool:
        pass

    @abstractmethod
    async def email_exists(self, email: str) -> bool:
        pass


class CategoryStorageInterface(ABC):
    """Abstract interface for category storage operations."""

    @abstractmethod
    async def save_category(self, category: Category) -> Category:
        """
        Store a new category.

        Raises:
            DuplicateError: If a category with the same id already exists
        """
        pass

    @abstractmethod
    async def get_category_by_id(self, category_id: UUID) -> Optional[Category]:
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def list_categories_by_user(self, user_id: UUID) -> list[Category]:
        pass

    @abstractmethod
    async def update_category(self, category: Category) -> None:
        """
        Raises:
            NotFoundError: If the category doesn't exist
        """
        pass

    @abstractmethod
    async def delete_category(self, category_id: UUID) -> None:
        """
        Raises:
            NotFoundError: If the category doesn't exist
        """
        pass

    @abstractmethod
    async def category_exists(self, category_id: UUID) -> bool:
        pass

    @abstractmethod
    async def name_exists_for_user(
        self,
        user_id: UUID,
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        """
        Check whether the user already has a category with this name.

        Args:
            user_id: Owner of the categories to search
            name: Category name (compared trimmed, case-insensitively)
            exclude_id: Category to ignore, used when renaming

        Returns:
            True if another category of the user has this name
        """
        pass


class ExpenseStorageInterface(ABC):
    """Abstract interface for transaction storage operations."""

    @abstractmethod
    async def save_expense(self, expense: Expense) -> Expense:
        """
        Raises:
            DuplicateError: If an expense with the same id already exists
        """
        pass

    @abstractmethod
    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        pass

    @abstractmethod
    async def list_expenses(self) -> list[Expense]:
        """List all transactions, most recent date first."""
        pass

    @abstractmethod
    async def list_expenses_by_user(self, user_id: UUID) -> list[Expense]:
        pass

    @abstractmethod
    async def list_expenses_by_category(self, category_id: UUID) -> list[Expense]:
        pass

    @abstractmethod
    async def list_expenses_by_user_and_date_range(
        self,
        user_id: UUID,
        date_from: datetime,
        date_to: datetime,
    ) -> list[Expense]:
        """
        List a user's transactions dated within [date_from, date_to].

        Both bounds are inclusive.
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> None:
        """
        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> None:
        """
        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def expense_exists(self, expense_id: UUID) -> bool:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events of one caller action, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Events about one entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
