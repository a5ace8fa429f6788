"""Shared fixtures: fresh in-memory storage and sample entities."""

from datetime import timedelta
from decimal import Decimal

import pytest

from expense_manager.models import (
    Category,
    Email,
    Expense,
    HashedPassword,
    Money,
    User,
    utc_now,
)
from expense_manager.services.storage import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryUserStorage,
)


@pytest.fixture
def user_storage():
    return InMemoryUserStorage()


@pytest.fixture
def category_storage():
    return InMemoryCategoryStorage()


@pytest.fixture
def expense_storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def user():
    return User(
        "Maria Silva",
        Email("maria@example.com"),
        HashedPassword(hash="$2b$04$hash", salt="$2b$04$salt"),
    )


@pytest.fixture
def category(user):
    return Category("Groceries", user.id, "Supermarket and street market")


@pytest.fixture
def expense(user, category):
    return Expense(
        description="Weekly groceries",
        amount=Money(Decimal("150.00")),
        date=utc_now() - timedelta(days=1),
        user_id=user.id,
        category_id=category.id,
    )
