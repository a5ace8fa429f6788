"""
Tests for the orchestration flows.

Flows run over in-memory storage with a real (low-cost) bcrypt hasher
and an audit logger backed by in-memory audit storage, so every test can
also check what was audited.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from expense_manager.audit import AuditLogger
from expense_manager.config import get_settings
from expense_manager.models import (
    AuditEventType,
    ExpenseType,
    InvalidArgumentError,
    InvalidOperationError,
    Money,
    PaymentMethod,
    utc_now,
)
from expense_manager.models.entities import NIL_UUID
from expense_manager.orchestrator import (
    CategoryFlow,
    ExpenseFlow,
    UserFlow,
    create_app_components,
)
from expense_manager.services.security import BcryptPasswordHasher
from expense_manager.services.storage import DuplicateError, NotFoundError
from expense_manager.validation import CrossEntityValidator


class App:
    """The three flows wired over shared in-memory storage."""

    def __init__(self, user_storage, category_storage, expense_storage, audit_storage):
        self.audit_storage = audit_storage
        self.hasher = BcryptPasswordHasher(rounds=4)
        validator = CrossEntityValidator(user_storage, category_storage, expense_storage)
        audit_logger = AuditLogger(audit_storage)

        self.users = UserFlow(user_storage, validator, self.hasher, audit_logger)
        self.categories = CategoryFlow(category_storage, validator, audit_logger)
        self.expenses = ExpenseFlow(
            expense_storage, validator, audit_logger, default_currency="BRL"
        )

    async def events(self, entity_type, entity_id):
        events = await self.audit_storage.get_events_by_entity(entity_type, entity_id)
        return [e.event_type for e in events]


@pytest.fixture
def app(user_storage, category_storage, expense_storage, audit_storage):
    return App(user_storage, category_storage, expense_storage, audit_storage)


async def register(app, email="maria@example.com"):
    return await app.users.register_user("Maria Silva", email, "s3cret-pass")


async def user_with_category(app, email="maria@example.com", name="Groceries"):
    user = await register(app, email)
    category = await app.categories.create_category(user.id, name)
    return user, category


YESTERDAY = utc_now() - timedelta(days=1)


class TestUserFlow:
    """Tests for UserFlow."""

    def test_register_user(self, app):
        """Test registration normalizes the e-mail and hashes the password."""
        async def scenario():
            user = await app.users.register_user(
                "  Maria Silva ", " Maria@Example.com ", "s3cret-pass"
            )
            return user, await app.events("user", user.id)

        user, events = asyncio.run(scenario())
        assert user.name == "Maria Silva"
        assert user.email.value == "maria@example.com"
        assert user.is_active is True
        assert app.hasher.verify("s3cret-pass", user.password)
        assert events == [AuditEventType.USER_REGISTERED]

    def test_register_duplicate_email(self, app):
        """Test an e-mail can only be registered once, in any case."""
        async def scenario():
            await register(app)
            await app.users.register_user("Other Person", "MARIA@example.com", "pass1234")

        with pytest.raises(DuplicateError):
            asyncio.run(scenario())

    def test_refusal_is_audited(self, app, audit_storage):
        """Test a refused registration leaves a warning in the audit trail."""
        async def scenario():
            await register(app)
            try:
                await register(app)
            except DuplicateError:
                pass
            return await audit_storage.get_recent_events(limit=1)

        [latest] = asyncio.run(scenario())
        assert latest.event_type == AuditEventType.VALIDATION_FAILED
        assert latest.details["operation"] == "register_user"

    def test_register_invalid_input(self, app):
        """Test entity rules surface as domain errors."""
        with pytest.raises(InvalidArgumentError):
            asyncio.run(app.users.register_user("Maria", "not-an-email", "pass1234"))
        with pytest.raises(InvalidArgumentError):
            asyncio.run(app.users.register_user("Mo", "mo@example.com", "pass1234"))
        with pytest.raises(InvalidArgumentError):
            asyncio.run(app.users.register_user("Maria", "m@example.com", "   "))

    def test_long_password_is_a_domain_error(self, app):
        """Test passwords over bcrypt's 72-byte limit are refused cleanly."""
        with pytest.raises(InvalidArgumentError, match="72 bytes"):
            asyncio.run(app.users.register_user("Maria", "m@example.com", "x" * 80))

        async def scenario():
            user = await register(app)
            await app.users.change_password(user.id, "x" * 80)

        with pytest.raises(InvalidArgumentError, match="72 bytes"):
            asyncio.run(scenario())

    def test_get_unknown_user(self, app):
        """Test reading a missing user."""
        with pytest.raises(NotFoundError):
            asyncio.run(app.users.get_user(uuid4()))

    def test_profile_updates(self, app):
        """Test name, e-mail and password changes are stored."""
        async def scenario():
            user = await register(app)
            await app.users.update_name(user.id, "Maria S. Santos")
            await app.users.update_email(user.id, "maria.santos@example.com")
            await app.users.change_password(user.id, "n3w-pass")
            return await app.users.get_user(user.id)

        user = asyncio.run(scenario())
        assert user.name == "Maria S. Santos"
        assert user.email.value == "maria.santos@example.com"
        assert app.hasher.verify("n3w-pass", user.password)
        assert user.updated_at is not None

    def test_update_email_to_taken_address(self, app):
        """Test an e-mail owned by another user is refused."""
        async def scenario():
            await register(app, "first@example.com")
            second = await register(app, "second@example.com")
            await app.users.update_email(second.id, "FIRST@example.com")

        with pytest.raises(DuplicateError):
            asyncio.run(scenario())

    def test_activation_and_login(self, app):
        """Test deactivate, activate and record_login."""
        async def scenario():
            user = await register(app)
            deactivated = await app.users.deactivate(user.id)
            activated = await app.users.activate(user.id)
            logged_in = await app.users.record_login(user.id)
            return deactivated, activated, logged_in, await app.events("user", user.id)

        deactivated, activated, logged_in, events = asyncio.run(scenario())
        assert deactivated.is_active is False
        assert activated.is_active is True
        assert logged_in.last_login_at is not None
        assert logged_in.updated_at == activated.updated_at
        assert events == [
            AuditEventType.USER_REGISTERED,
            AuditEventType.USER_DEACTIVATED,
            AuditEventType.USER_ACTIVATED,
            AuditEventType.USER_LOGGED_IN,
        ]

    def test_delete_user(self, app):
        """Test a deleted user is gone from listings."""
        async def scenario():
            user = await register(app)
            await app.users.delete_user(user.id)
            return await app.users.list_users()

        assert asyncio.run(scenario()) == []


class TestCategoryFlow:
    """Tests for CategoryFlow."""

    def test_create_category(self, app):
        """Test a category is created for an existing user."""
        async def scenario():
            user, category = await user_with_category(app, name="  Groceries  ")
            return user, category, await app.categories.list_categories(user.id)

        user, category, listed = asyncio.run(scenario())
        assert category.name == "Groceries"
        assert category.user_id == user.id
        assert listed == [category]

    def test_create_category_for_unknown_user(self, app):
        """Test the owner must exist."""
        with pytest.raises(NotFoundError):
            asyncio.run(app.categories.create_category(uuid4(), "Groceries"))

    def test_duplicate_name_for_same_user(self, app):
        """Test names are unique per user after trimming, ignoring case."""
        async def scenario():
            user, _ = await user_with_category(app)
            await app.categories.create_category(user.id, "  GROCERIES ")

        with pytest.raises(DuplicateError):
            asyncio.run(scenario())

    def test_same_name_for_different_users(self, app):
        """Test two users may both have a 'Groceries' category."""
        async def scenario():
            await user_with_category(app, "first@example.com")
            await user_with_category(app, "second@example.com")
            return await app.categories.list_categories()

        assert len(asyncio.run(scenario())) == 2

    def test_rename_category(self, app):
        """Test renaming, including to a different case of its own name."""
        async def scenario():
            _, category = await user_with_category(app)
            await app.categories.rename_category(category.id, "GROCERIES")
            return await app.categories.get_category(category.id)

        assert asyncio.run(scenario()).name == "GROCERIES"

    def test_rename_to_taken_name(self, app):
        """Test a rename cannot collide with a sibling, and nothing is stored."""
        async def scenario():
            user, _ = await user_with_category(app)
            travel = await app.categories.create_category(user.id, "Travel")
            try:
                await app.categories.rename_category(travel.id, "groceries")
            except DuplicateError:
                pass
            return await app.categories.get_category(travel.id)

        assert asyncio.run(scenario()).name == "Travel"

    def test_update_description(self, app):
        """Test setting and clearing the description."""
        async def scenario():
            _, category = await user_with_category(app)
            described = await app.categories.update_description(category.id, "Food")
            cleared = await app.categories.update_description(category.id, None)
            return described, cleared

        described, cleared = asyncio.run(scenario())
        assert described.description == "Food"
        assert cleared.description is None

    def test_delete_unused_category(self, app):
        """Test an unused category can be deleted."""
        async def scenario():
            _, category = await user_with_category(app)
            await app.categories.delete_category(category.id)
            return await app.events("category", category.id)

        assert asyncio.run(scenario()) == [
            AuditEventType.CATEGORY_CREATED,
            AuditEventType.CATEGORY_DELETED,
        ]

    def test_delete_category_in_use(self, app):
        """Test a category with transactions cannot be deleted."""
        async def scenario():
            user, category = await user_with_category(app)
            await app.expenses.record_expense(
                user.id, category.id, "Weekly groceries", Decimal("80"), YESTERDAY
            )
            await app.categories.delete_category(category.id)

        with pytest.raises(InvalidOperationError, match="still used"):
            asyncio.run(scenario())


class TestExpenseFlow:
    """Tests for ExpenseFlow."""

    def test_record_expense_with_number(self, app):
        """Test a plain number is recorded in the default currency."""
        async def scenario():
            user, category = await user_with_category(app)
            expense = await app.expenses.record_expense(
                user.id, category.id, "Weekly groceries", "150.00", YESTERDAY,
                payment_method=PaymentMethod.PIX,
            )
            return expense, await app.events("expense", expense.id)

        expense, events = asyncio.run(scenario())
        assert expense.amount == Money(Decimal("150.00"), "BRL")
        assert expense.payment_method == PaymentMethod.PIX
        assert events == [AuditEventType.EXPENSE_RECORDED]

    def test_record_expense_with_money(self, app):
        """Test a Money amount keeps its own currency."""
        async def scenario():
            user, category = await user_with_category(app)
            return await app.expenses.record_expense(
                user.id, category.id, "Conference ticket",
                Money(Decimal("300"), "usd"), YESTERDAY,
            )

        assert asyncio.run(scenario()).amount.currency == "USD"

    def test_record_expense_rejects_zero(self, app):
        """Test entity rules apply before any lookup."""
        async def scenario():
            user, category = await user_with_category(app)
            await app.expenses.record_expense(
                user.id, category.id, "Nothing at all", 0, YESTERDAY
            )

        with pytest.raises(InvalidArgumentError, match="greater than zero"):
            asyncio.run(scenario())

    def test_record_expense_in_foreign_category(self, app):
        """Test a transaction cannot use another user's category."""
        async def scenario():
            _, foreign = await user_with_category(app, "first@example.com")
            user = await register(app, "second@example.com")
            await app.expenses.record_expense(
                user.id, foreign.id, "Weekly groceries", 10, YESTERDAY
            )

        with pytest.raises(InvalidArgumentError, match="does not belong to user"):
            asyncio.run(scenario())

    def test_record_expense_unknown_category(self, app):
        """Test the category must exist."""
        async def scenario():
            user = await register(app)
            await app.expenses.record_expense(
                user.id, uuid4(), "Weekly groceries", 10, YESTERDAY
            )

        with pytest.raises(NotFoundError):
            asyncio.run(scenario())

    def test_updates(self, app):
        """Test every update path stores the change."""
        async def scenario():
            user, category = await user_with_category(app)
            travel = await app.categories.create_category(user.id, "Travel")
            expense = await app.expenses.record_expense(
                user.id, category.id, "Weekly groceries", 100, YESTERDAY
            )
            await app.expenses.update_description(expense.id, "Bus tickets")
            await app.expenses.update_amount(expense.id, Decimal("42.50"))
            await app.expenses.update_date(expense.id, date(2024, 2, 29))
            await app.expenses.change_category(expense.id, travel.id)
            await app.expenses.update_payment_method(expense.id, PaymentMethod.CASH)
            await app.expenses.update_notes(expense.id, "Round trip")
            return travel, await app.expenses.get_expense(expense.id)

        travel, expense = asyncio.run(scenario())
        assert expense.description == "Bus tickets"
        assert expense.amount == Money(Decimal("42.50"), "BRL")
        assert expense.date == datetime(2024, 2, 29, tzinfo=timezone.utc)
        assert expense.category_id == travel.id
        assert expense.payment_method == PaymentMethod.CASH
        assert expense.notes == "Round trip"

    def test_update_amount_keeps_currency(self, app):
        """Test a plain number keeps the transaction's currency."""
        async def scenario():
            user, category = await user_with_category(app)
            expense = await app.expenses.record_expense(
                user.id, category.id, "Hotel night", 100, YESTERDAY, currency="EUR"
            )
            return await app.expenses.update_amount(expense.id, 120)

        assert asyncio.run(scenario()).amount == Money(120, "EUR")

    def test_change_to_foreign_category(self, app):
        """Test ownership is checked when moving a transaction."""
        async def scenario():
            _, foreign = await user_with_category(app, "first@example.com")
            user, category = await user_with_category(app, "second@example.com")
            expense = await app.expenses.record_expense(
                user.id, category.id, "Weekly groceries", 10, YESTERDAY
            )
            await app.expenses.change_category(expense.id, foreign.id)

        with pytest.raises(InvalidArgumentError):
            asyncio.run(scenario())

    def test_change_to_empty_category_id(self, app):
        """Test the entity rule runs before any category lookup."""
        async def scenario():
            user, category = await user_with_category(app)
            expense = await app.expenses.record_expense(
                user.id, category.id, "Weekly groceries", 10, YESTERDAY
            )
            try:
                await app.expenses.change_category(expense.id, NIL_UUID)
            finally:
                stored = await app.expenses.get_expense(expense.id)
                assert stored.category_id == category.id

        with pytest.raises(InvalidArgumentError, match="CategoryId cannot be empty"):
            asyncio.run(scenario())

    def test_delete_expense(self, app):
        """Test a deleted transaction can no longer be read."""
        async def scenario():
            user, category = await user_with_category(app)
            expense = await app.expenses.record_expense(
                user.id, category.id, "Weekly groceries", 10, YESTERDAY
            )
            await app.expenses.delete_expense(expense.id)
            await app.expenses.get_expense(expense.id)

        with pytest.raises(NotFoundError):
            asyncio.run(scenario())

    def test_list_expenses_filters(self, app):
        """Test user, category and inclusive date filters."""
        async def scenario():
            user, groceries = await user_with_category(app)
            travel = await app.categories.create_category(user.id, "Travel")
            for description, category, when in [
                ("March groceries", groceries, datetime(2024, 3, 31, 23, 0)),
                ("April groceries", groceries, datetime(2024, 4, 1, 9, 0)),
                ("March trip", travel, datetime(2024, 3, 15, 12, 0)),
            ]:
                await app.expenses.record_expense(
                    user.id, category.id, description, 10, when
                )
            march = await app.expenses.list_expenses(
                user_id=user.id, date_from=date(2024, 3, 1), date_to=date(2024, 3, 31)
            )
            in_groceries = await app.expenses.list_expenses(category_id=groceries.id)
            everything = await app.expenses.list_expenses()
            return march, in_groceries, everything

        march, in_groceries, everything = asyncio.run(scenario())
        assert [e.description for e in march] == ["March groceries", "March trip"]
        assert [e.description for e in in_groceries] == [
            "April groceries", "March groceries",
        ]
        assert len(everything) == 3

    def test_summarize(self, app):
        """Test per-currency totals of income and expenses."""
        async def scenario():
            user, category = await user_with_category(app)
            record = app.expenses.record_expense
            await record(user.id, category.id, "Salary", 5000, YESTERDAY,
                         type=ExpenseType.INCOME)
            await record(user.id, category.id, "Groceries", Decimal("350.40"), YESTERDAY)
            await record(user.id, category.id, "Rent", 1800, YESTERDAY)
            await record(user.id, category.id, "Online course", 50, YESTERDAY,
                         currency="USD")
            return await app.expenses.summarize(user.id)

        brl, usd = asyncio.run(scenario())
        assert brl.currency == "BRL"
        assert brl.total_income == Money(5000)
        assert brl.total_expenses == Money(Decimal("2150.40"))
        assert brl.net == Decimal("2849.60")
        assert brl.transaction_count == 3
        assert usd.currency == "USD"
        assert usd.net == Decimal("-50")

    def test_summarize_unknown_user(self, app):
        """Test summaries need an existing user."""
        with pytest.raises(NotFoundError):
            asyncio.run(app.expenses.summarize(uuid4()))


class TestCreateAppComponents:
    """Tests for application wiring."""

    def test_components_share_storage(self, monkeypatch):
        """Test the flows are wired to the same stores and settings."""
        monkeypatch.setenv("PASSWORD_BCRYPT_ROUNDS", "4")
        monkeypatch.setenv("DEFAULT_CURRENCY", "usd")
        monkeypatch.setenv("LOG_JSON", "false")
        get_settings.cache_clear()

        users, categories, expenses = create_app_components()

        async def scenario():
            user = await users.register_user("Maria Silva", "maria@example.com", "pass1234")
            category = await categories.create_category(user.id, "Groceries")
            return await expenses.record_expense(
                user.id, category.id, "Weekly groceries", 25, YESTERDAY
            )

        try:
            assert asyncio.run(scenario()).amount == Money(25, "USD")
        finally:
            get_settings.cache_clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
