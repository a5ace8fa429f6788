"""
Value Objects for Expense Manager

Money, Email and HashedPassword have no identity of their own: two
instances with the same field values are the same value. They are frozen
Pydantic models, so they hash, compare by value, and cannot be changed
after construction.

Every constructor normalizes its input and raises a DomainError subclass
on the first broken rule.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_manager.models.errors import (
    InvalidArgumentError,
    InvalidOperationError,
)


DEFAULT_CURRENCY = "BRL"

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", re.IGNORECASE)


# =============================================================================
# MONEY
# =============================================================================

def _to_decimal(amount: Any) -> Decimal:
    if isinstance(amount, bool) or amount is None:
        raise InvalidArgumentError("Amount must be a number", field="amount")

    if isinstance(amount, Decimal):
        value = amount
    else:
        try:
            # str() keeps floats like 0.1 from turning into binary noise
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise InvalidArgumentError("Amount must be a number", field="amount")

    if not value.is_finite():
        raise InvalidArgumentError("Amount must be a finite number", field="amount")

    if value < 0:
        raise InvalidArgumentError("Amount cannot be negative", field="amount")

    return value


def _normalize_currency(currency: Optional[str]) -> str:
    if not isinstance(currency, str) or not currency.strip():
        raise InvalidArgumentError("Currency cannot be empty", field="currency")
    return currency.strip().upper()


class Money(BaseModel):
    """
    A non-negative amount tagged with a currency code.

    DESIGN DECISION: No exchange rates. Two amounts only combine when their
    currency codes match after upper-casing.

    Subtracting a larger amount from a smaller one fails with
    InvalidArgumentError raised while building the (negative) result.
    """
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount, never negative"
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        min_length=1,
        description="Currency code, upper-cased"
    )

    def __init__(self, amount: Any, currency: str = DEFAULT_CURRENCY):
        super().__init__(
            amount=_to_decimal(amount),
            currency=_normalize_currency(currency),
        )

    def _ensure_same_currency(self, other: "Money", operation: str) -> None:
        if self.currency != other.currency:
            raise InvalidOperationError(
                f"Cannot {operation} money with different currencies "
                f"({self.currency} and {other.currency})"
            )

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        self._ensure_same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        self._ensure_same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(Decimal("0"), currency)

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:.2f}"


# =============================================================================
# EMAIL
# =============================================================================

class Email(BaseModel):
    """
    A normalized e-mail address.

    The stored value is always trimmed and lower-cased, so
    Email("JOHN@EXAMPLE.COM") == Email("john@example.com").
    """
    model_config = ConfigDict(frozen=True)

    value: str = Field(
        ...,
        min_length=3,
        description="Trimmed, lower-cased address"
    )

    def __init__(self, value: Optional[str]):
        if not isinstance(value, str) or not value.strip():
            raise InvalidArgumentError("Email cannot be empty", field="email")

        normalized = value.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise InvalidArgumentError("Invalid email format", field="email")

        super().__init__(value=normalized)

    def __str__(self) -> str:
        return self.value


# =============================================================================
# HASHED PASSWORD
# =============================================================================

class HashedPassword(BaseModel):
    """
    Carrier for a password hash and its salt.

    This type never hashes anything; see
    expense_manager.services.security.passwords for the hasher.
    """
    model_config = ConfigDict(frozen=True)

    hash: str = Field(..., repr=False)
    salt: str = Field(..., repr=False)

    def __init__(self, hash: Optional[str], salt: Optional[str]):
        if not isinstance(hash, str) or not hash.strip():
            raise InvalidArgumentError("Hash cannot be empty", field="hash")

        if not isinstance(salt, str) or not salt.strip():
            raise InvalidArgumentError("Salt cannot be empty", field="salt")

        super().__init__(hash=hash, salt=salt)
