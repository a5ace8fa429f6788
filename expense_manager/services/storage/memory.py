"""
In-Memory Storage Implementation

Implements the storage interfaces with plain dictionaries held by each
storage instance (never module-level), so two stores never share data.

Entities are stored as rows produced by Entity.to_row() and rebuilt with
Entity.rehydrate() on the way out. Callers therefore never hold a
reference into the store: changing a returned entity has no effect until
update_*() is called.

TRADEOFFS:
- Nothing survives the process (fine for tests and demos)
- Filtering is done in Python over every row
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from expense_manager.models.audit import AuditEvent
from expense_manager.models.entities import Category, Entity, Expense, User
from expense_manager.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    UserStorageInterface,
)


EntityT = TypeVar("EntityT", bound=Entity)


class _RowTable(Generic[EntityT]):
    """Rows of one entity type, keyed by id."""

    def __init__(self, entity_cls: type[EntityT], label: str):
        self._entity_cls = entity_cls
        self._label = label
        self._rows: dict[UUID, dict[str, Any]] = {}

    def insert(self, entity: EntityT) -> EntityT:
        if entity.id in self._rows:
            raise DuplicateError(f"{self._label} already exists: {entity.id}")
        self._rows[entity.id] = entity.to_row()
        return self.get(entity.id)

    def get(self, entity_id: UUID) -> Optional[EntityT]:
        row = self._rows.get(entity_id)
        if row is None:
            return None
        return self._entity_cls.rehydrate(row)

    def replace(self, entity: EntityT) -> None:
        if entity.id not in self._rows:
            raise NotFoundError(f"{self._label} not found: {entity.id}")
        self._rows[entity.id] = entity.to_row()

    def remove(self, entity_id: UUID) -> None:
        if self._rows.pop(entity_id, None) is None:
            raise NotFoundError(f"{self._label} not found: {entity_id}")

    def contains(self, entity_id: UUID) -> bool:
        return entity_id in self._rows

    def select(self, **criteria: Any) -> list[EntityT]:
        """Rehydrate every row whose fields equal the given criteria."""
        return [
            self._entity_cls.rehydrate(row)
            for row in self._rows.values()
            if all(row.get(key) == value for key, value in criteria.items())
        ]


class InMemoryUserStorage(UserStorageInterface):
    """Users kept in a per-instance dictionary."""

    def __init__(self):
        self._table: _RowTable[User] = _RowTable(User, "User")

    async def save_user(self, user: User) -> User:
        return self._table.insert(user)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return self._table.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        normalized = email.strip().lower()
        matches = self._table.select(email={"value": normalized})
        return matches[0] if matches else None

    async def list_users(self) -> list[User]:
        return sorted(self._table.select(), key=lambda u: u.created_at)

    async def update_user(self, user: User) -> None:
        self._table.replace(user)

    async def delete_user(self, user_id: UUID) -> None:
        self._table.remove(user_id)

    async def user_exists(self, user_id: UUID) -> bool:
        return self._table.contains(user_id)

    async def email_exists(self, email: str) -> bool:
        return await self.get_user_by_email(email) is not None


class InMemoryCategoryStorage(CategoryStorageInterface):
    """Categories kept in a per-instance dictionary."""

    def __init__(self):
        self._table: _RowTable[Category] = _RowTable(Category, "Category")

    async def save_category(self, category: Category) -> Category:
        return self._table.insert(category)

    async def get_category_by_id(self, category_id: UUID) -> Optional[Category]:
        return self._table.get(category_id)

    async def list_categories(self) -> list[Category]:
        return sorted(self._table.select(), key=lambda c: c.created_at)

    async def list_categories_by_user(self, user_id: UUID) -> list[Category]:
        return sorted(self._table.select(user_id=user_id), key=lambda c: c.created_at)

    async def update_category(self, category: Category) -> None:
        self._table.replace(category)

    async def delete_category(self, category_id: UUID) -> None:
        self._table.remove(category_id)

    async def category_exists(self, category_id: UUID) -> bool:
        return self._table.contains(category_id)

    async def name_exists_for_user(
        self,
        user_id: UUID,
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        wanted = name.strip().casefold()
        return any(
            category.name.casefold() == wanted and category.id != exclude_id
            for category in self._table.select(user_id=user_id)
        )


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Transactions kept in a per-instance dictionary."""

    def __init__(self):
        self._table: _RowTable[Expense] = _RowTable(Expense, "Expense")

    @staticmethod
    def _newest_first(expenses: list[Expense]) -> list[Expense]:
        return sorted(expenses, key=lambda e: (e.date, e.created_at), reverse=True)

    async def save_expense(self, expense: Expense) -> Expense:
        return self._table.insert(expense)

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        return self._table.get(expense_id)

    async def list_expenses(self) -> list[Expense]:
        return self._newest_first(self._table.select())

    async def list_expenses_by_user(self, user_id: UUID) -> list[Expense]:
        return self._newest_first(self._table.select(user_id=user_id))

    async def list_expenses_by_category(self, category_id: UUID) -> list[Expense]:
        return self._newest_first(self._table.select(category_id=category_id))

    async def list_expenses_by_user_and_date_range(
        self,
        user_id: UUID,
        date_from: datetime,
        date_to: datetime,
    ) -> list[Expense]:
        return self._newest_first([
            expense
            for expense in self._table.select(user_id=user_id)
            if date_from <= expense.date <= date_to
        ])

    async def update_expense(self, expense: Expense) -> None:
        self._table.replace(expense)

    async def delete_expense(self, expense_id: UUID) -> None:
        self._table.remove(expense_id)

    async def expense_exists(self, expense_id: UUID) -> bool:
        return self._table.contains(expense_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
