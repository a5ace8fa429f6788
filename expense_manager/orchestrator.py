"""
Main Orchestrator for Expense Manager

This module ties together all the components and defines the
end-to-end flows for:
1. Users (register → update → activate/deactivate → delete)
2. Categories (create → rename → delete while unused)
3. Transactions (record → update → list → summarize)

DESIGN DECISION: The orchestrator enforces the boundaries the entities
cannot see on their own:
- Cross-entity rules are checked BEFORE anything is saved
- Entities are always loaded from storage, changed, then written back
- Every change and every refusal is audited

Entities raise DomainError for their own rules; the orchestrator turns
validator issues into the matching exception.
"""

from datetime import date as date_type
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Optional, Union
from uuid import UUID

from expense_manager.audit import (
    AuditLogger,
    configure_logging,
    create_correlation_id,
)
from expense_manager.config import Settings, get_settings
from expense_manager.models import (
    AuditEventType,
    BalanceSummary,
    Category,
    Email,
    Expense,
    ExpenseType,
    InvalidArgumentError,
    InvalidOperationError,
    IssueType,
    Money,
    PaymentMethod,
    User,
    ValidationResult,
)
from expense_manager.services.security import BcryptPasswordHasher, PasswordHasher
from expense_manager.services.storage import (
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
    NotFoundError,
    UserStorageInterface,
)
from expense_manager.validation import CrossEntityValidator


DateBound = Union[datetime, date_type, None]


class _Flow:
    """Shared plumbing: audit refusals, then raise the first error."""

    def __init__(
        self,
        validator: CrossEntityValidator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._validator = validator
        self._audit_logger = audit_logger

    async def _ensure_valid(
        self,
        result: ValidationResult,
        entity_type: str,
        entity_id: Optional[UUID],
        correlation_id: UUID,
    ) -> None:
        if result.is_valid:
            return

        if self._audit_logger:
            issues = [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
            ]
            await self._audit_logger.log_validation_failed(
                operation=result.operation,
                issues=issues,
                entity_type=entity_type,
                entity_id=entity_id,
                correlation_id=correlation_id,
            )

        issue = result.first_error
        if issue.issue_type == IssueType.NOT_FOUND:
            raise NotFoundError(issue.message)
        if issue.issue_type == IssueType.DUPLICATE:
            raise DuplicateError(issue.message)
        if issue.issue_type == IssueType.IN_USE:
            raise InvalidOperationError(issue.message, field=issue.field)
        raise InvalidArgumentError(issue.message, field=issue.field)


class UserFlow(_Flow):
    """
    Orchestrates account management.

    Passwords arrive in plain text and leave this class only as a
    HashedPassword; nothing else ever sees them.
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        validator: CrossEntityValidator,
        password_hasher: PasswordHasher,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(validator, audit_logger)
        self._users = user_storage
        self._hasher = password_hasher

    async def _audit(
        self,
        event_type: AuditEventType,
        user: User,
        correlation_id: UUID,
        changes: Optional[dict[str, Any]] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_user_changed(
                event_type=event_type,
                user_id=user.id,
                changes=changes,
                correlation_id=correlation_id,
            )

    async def register_user(
        self,
        name: str,
        email: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """
        Create and save a new user.

        Order of checks:
        1. E-mail format (Email)
        2. E-mail not taken (validator)
        3. Password hashing, then every User rule

        Returns:
            The saved User
        """
        correlation_id = correlation_id or create_correlation_id()

        address = Email(email)
        await self._ensure_valid(
            await self._validator.validate_new_user(address.value),
            "user", None, correlation_id,
        )

        user = User(name, address, self._hasher.hash_password(password))
        saved = await self._users.save_user(user)

        if self._audit_logger:
            await self._audit_logger.log_user_registered(
                user_id=saved.id,
                email=saved.email.value,
                correlation_id=correlation_id,
            )

        return saved

    async def get_user(self, user_id: UUID) -> User:
        user = await self._users.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    async def list_users(self) -> list[User]:
        return await self._users.list_users()

    async def update_name(
        self,
        user_id: UUID,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        correlation_id = correlation_id or create_correlation_id()

        user = await self.get_user(user_id)
        user.update_name(new_name)
        await self._users.update_user(user)

        await self._audit(
            AuditEventType.USER_UPDATED, user, correlation_id, {"name": user.name}
        )
        return user

    async def update_email(
        self,
        user_id: UUID,
        new_email: str,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        correlation_id = correlation_id or create_correlation_id()

        address = Email(new_email)
        await self._ensure_valid(
            await self._validator.validate_email_change(user_id, address.value),
            "user", user_id, correlation_id,
        )

        user = await self.get_user(user_id)
        user.update_email(address)
        await self._users.update_user(user)

        await self._audit(
            AuditEventType.USER_UPDATED, user, correlation_id, {"email": address.value}
        )
        return user

    async def change_password(
        self,
        user_id: UUID,
        new_password: str,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        correlation_id = correlation_id or create_correlation_id()

        user = await self.get_user(user_id)
        user.change_password(self._hasher.hash_password(new_password))
        await self._users.update_user(user)

        # Never put the password (or its hash) in the audit trail
        await self._audit(
            AuditEventType.USER_UPDATED, user, correlation_id, {"password": "changed"}
        )
        return user

    async def activate(
        self,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        correlation_id = correlation_id or create_correlation_id()

        user = await self.get_user(user_id)
        user.activate()
        await self._users.update_user(user)

        await self._audit(AuditEventType.USER_ACTIVATED, user, correlation_id)
        return user

    async def deactivate(
        self,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        correlation_id = correlation_id or create_correlation_id()

        user = await self.get_user(user_id)
        user.deactivate()
        await self._users.update_user(user)

        await self._audit(AuditEventType.USER_DEACTIVATED, user, correlation_id)
        return user

    async def record_login(
        self,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """Stamp last_login_at. Credentials are not checked here."""
        correlation_id = correlation_id or create_correlation_id()

        user = await self.get_user(user_id)
        user.record_login()
        await self._users.update_user(user)

        await self._audit(AuditEventType.USER_LOGGED_IN, user, correlation_id)
        return user

    async def delete_user(
        self,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()

        user = await self.get_user(user_id)
        await self._users.delete_user(user.id)

        await self._audit(AuditEventType.USER_DELETED, user, correlation_id)


class CategoryFlow(_Flow):
    """Orchestrates the categories a user files transactions under."""

    def __init__(
        self,
        category_storage: CategoryStorageInterface,
        validator: CrossEntityValidator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(validator, audit_logger)
        self._categories = category_storage

    async def _audit(
        self,
        event_type: AuditEventType,
        category: Category,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_category_changed(
                event_type=event_type,
                category_id=category.id,
                user_id=category.user_id,
                name=category.name,
                correlation_id=correlation_id,
            )

    async def create_category(
        self,
        user_id: UUID,
        name: str,
        description: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        """
        Create and save a category.

        The entity is built first so that the uniqueness check runs on
        the trimmed name that will actually be stored.
        """
        correlation_id = correlation_id or create_correlation_id()

        category = Category(name, user_id, description)
        await self._ensure_valid(
            await self._validator.validate_new_category(category.user_id, category.name),
            "category", None, correlation_id,
        )

        saved = await self._categories.save_category(category)
        await self._audit(AuditEventType.CATEGORY_CREATED, saved, correlation_id)
        return saved

    async def get_category(self, category_id: UUID) -> Category:
        category = await self._categories.get_category_by_id(category_id)
        if category is None:
            raise NotFoundError(f"Category not found: {category_id}")
        return category

    async def list_categories(self, user_id: Optional[UUID] = None) -> list[Category]:
        if user_id is None:
            return await self._categories.list_categories()
        return await self._categories.list_categories_by_user(user_id)

    async def rename_category(
        self,
        category_id: UUID,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        correlation_id = correlation_id or create_correlation_id()

        category = await self.get_category(category_id)
        category.update_name(new_name)
        await self._ensure_valid(
            await self._validator.validate_category_rename(category, category.name),
            "category", category.id, correlation_id,
        )

        await self._categories.update_category(category)
        await self._audit(AuditEventType.CATEGORY_UPDATED, category, correlation_id)
        return category

    async def update_description(
        self,
        category_id: UUID,
        new_description: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        correlation_id = correlation_id or create_correlation_id()

        category = await self.get_category(category_id)
        category.update_description(new_description)

        await self._categories.update_category(category)
        await self._audit(AuditEventType.CATEGORY_UPDATED, category, correlation_id)
        return category

    async def delete_category(
        self,
        category_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Delete a category. Refused while any transaction still uses it."""
        correlation_id = correlation_id or create_correlation_id()

        category = await self.get_category(category_id)
        await self._ensure_valid(
            await self._validator.validate_category_deletion(category.id),
            "category", category.id, correlation_id,
        )

        await self._categories.delete_category(category.id)
        await self._audit(AuditEventType.CATEGORY_DELETED, category, correlation_id)


class ExpenseFlow(_Flow):
    """
    Orchestrates transactions (expenses and income).

    A transaction may only reference an existing category owned by the
    same user. That is checked on record and on every category change.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        validator: CrossEntityValidator,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: str = "BRL",
    ):
        super().__init__(validator, audit_logger)
        self._expenses = expense_storage
        self._default_currency = default_currency

    def _to_money(
        self,
        amount: Union[Money, Decimal, int, float, str],
        currency: Optional[str],
    ) -> Money:
        if isinstance(amount, Money) or amount is None:
            return amount
        return Money(amount, currency or self._default_currency)

    async def _audit(
        self,
        event_type: AuditEventType,
        expense: Expense,
        correlation_id: UUID,
        changes: Optional[dict[str, Any]] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_expense_changed(
                event_type=event_type,
                expense_id=expense.id,
                user_id=expense.user_id,
                changes=changes,
                correlation_id=correlation_id,
            )

    async def record_expense(
        self,
        user_id: UUID,
        category_id: UUID,
        description: str,
        amount: Union[Money, Decimal, int, float, str],
        date: Union[datetime, date_type],
        currency: Optional[str] = None,
        type: ExpenseType = ExpenseType.EXPENSE,
        payment_method: Optional[PaymentMethod] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record a transaction.

        Args:
            amount: Money, or a plain number in `currency`
                    (the configured default currency when omitted)

        Returns:
            The saved Expense
        """
        correlation_id = correlation_id or create_correlation_id()

        expense = Expense(
            description=description,
            amount=self._to_money(amount, currency),
            date=date,
            user_id=user_id,
            category_id=category_id,
            type=type,
            payment_method=payment_method,
            notes=notes,
        )
        await self._ensure_valid(
            await self._validator.validate_expense_references(
                expense.user_id, expense.category_id
            ),
            "expense", None, correlation_id,
        )

        saved = await self._expenses.save_expense(expense)

        if self._audit_logger:
            await self._audit_logger.log_expense_recorded(
                expense_id=saved.id,
                user_id=saved.user_id,
                category_id=saved.category_id,
                amount=str(saved.amount),
                expense_type=saved.type.value,
                correlation_id=correlation_id,
            )

        return saved

    async def get_expense(self, expense_id: UUID) -> Expense:
        expense = await self._expenses.get_expense_by_id(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        return expense

    async def list_expenses(
        self,
        user_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
        date_from: DateBound = None,
        date_to: DateBound = None,
    ) -> list[Expense]:
        """
        List transactions, newest first.

        Date bounds are inclusive. A plain date as `date_to` covers that
        whole day.
        """
        lower = _lower_bound(date_from)
        upper = _upper_bound(date_to)

        if user_id is not None and (lower or upper):
            expenses = await self._expenses.list_expenses_by_user_and_date_range(
                user_id,
                lower or datetime.min.replace(tzinfo=timezone.utc),
                upper or datetime.max.replace(tzinfo=timezone.utc),
            )
        elif user_id is not None:
            expenses = await self._expenses.list_expenses_by_user(user_id)
        elif category_id is not None:
            expenses = await self._expenses.list_expenses_by_category(category_id)
        else:
            expenses = await self._expenses.list_expenses()

        return [
            e for e in expenses
            if (category_id is None or e.category_id == category_id)
            and (lower is None or e.date >= lower)
            and (upper is None or e.date <= upper)
        ]

    async def _apply(
        self,
        expense_id: UUID,
        mutate: Callable[[Expense], None],
        changes: dict[str, Any],
        correlation_id: Optional[UUID],
    ) -> Expense:
        correlation_id = correlation_id or create_correlation_id()

        expense = await self.get_expense(expense_id)
        mutate(expense)
        await self._expenses.update_expense(expense)

        await self._audit(
            AuditEventType.EXPENSE_UPDATED, expense, correlation_id, changes
        )
        return expense

    async def update_description(
        self,
        expense_id: UUID,
        new_description: str,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        return await self._apply(
            expense_id,
            lambda e: e.update_description(new_description),
            {"description": new_description},
            correlation_id,
        )

    async def update_amount(
        self,
        expense_id: UUID,
        new_amount: Union[Money, Decimal, int, float, str],
        currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """Change the amount. A plain number keeps the current currency."""
        expense = await self.get_expense(expense_id)
        money = self._to_money(new_amount, currency or expense.amount.currency)

        return await self._apply(
            expense_id,
            lambda e: e.update_amount(money),
            {"amount": str(money)},
            correlation_id,
        )

    async def update_date(
        self,
        expense_id: UUID,
        new_date: Union[datetime, date_type],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        return await self._apply(
            expense_id,
            lambda e: e.update_date(new_date),
            {"date": str(new_date)},
            correlation_id,
        )

    async def change_category(
        self,
        expense_id: UUID,
        new_category_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """Move a transaction to another category of the same user."""
        correlation_id = correlation_id or create_correlation_id()

        expense = await self.get_expense(expense_id)
        expense.change_category(new_category_id)
        await self._ensure_valid(
            await self._validator.validate_expense_references(
                expense.user_id, expense.category_id, operation="change_category"
            ),
            "expense", expense.id, correlation_id,
        )

        await self._expenses.update_expense(expense)
        await self._audit(
            AuditEventType.EXPENSE_UPDATED,
            expense,
            correlation_id,
            {"category_id": str(expense.category_id)},
        )
        return expense

    async def update_payment_method(
        self,
        expense_id: UUID,
        new_payment_method: Optional[PaymentMethod],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        return await self._apply(
            expense_id,
            lambda e: e.update_payment_method(new_payment_method),
            {"payment_method": getattr(new_payment_method, "value", new_payment_method)},
            correlation_id,
        )

    async def update_notes(
        self,
        expense_id: UUID,
        new_notes: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        return await self._apply(
            expense_id,
            lambda e: e.update_notes(new_notes),
            {"notes": new_notes},
            correlation_id,
        )

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()

        expense = await self.get_expense(expense_id)
        await self._expenses.delete_expense(expense.id)

        await self._audit(AuditEventType.EXPENSE_DELETED, expense, correlation_id)

    async def summarize(
        self,
        user_id: UUID,
        date_from: DateBound = None,
        date_to: DateBound = None,
    ) -> list[BalanceSummary]:
        """
        Total income and expenses for a user, one summary per currency.

        Returns:
            Summaries sorted by currency code; empty when nothing matches
        """
        await self._ensure_valid(
            await self._validator.validate_user_exists(user_id, "summarize"),
            "user", user_id, create_correlation_id(),
        )

        summaries: dict[str, BalanceSummary] = {}
        for expense in await self.list_expenses(
            user_id=user_id, date_from=date_from, date_to=date_to
        ):
            currency = expense.amount.currency
            current = summaries.get(currency) or BalanceSummary.empty(currency)
            summaries[currency] = current.add(expense)

        return [summaries[c] for c in sorted(summaries)]


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _lower_bound(value: DateBound) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _upper_bound(value: DateBound) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[UserFlow, CategoryFlow, ExpenseFlow]:
    """
    Create all application components with proper wiring.

    Storage is in-memory: everything is lost when the process exits.

    Returns:
        (user_flow, category_flow, expense_flow)
    """
    settings = settings or get_settings()
    app = settings.app

    configure_logging(level=app.log_level, json_logs=app.log_json)

    users = InMemoryUserStorage()
    categories = InMemoryCategoryStorage()
    expenses = InMemoryExpenseStorage()

    audit_logger = AuditLogger(InMemoryAuditStorage())
    validator = CrossEntityValidator(users, categories, expenses)
    hasher = BcryptPasswordHasher(rounds=settings.security.bcrypt_rounds)

    user_flow = UserFlow(users, validator, hasher, audit_logger)
    category_flow = CategoryFlow(categories, validator, audit_logger)
    expense_flow = ExpenseFlow(
        expenses,
        validator,
        audit_logger,
        default_currency=app.default_currency,
    )

    return user_flow, category_flow, expense_flow
