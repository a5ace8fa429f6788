"""
Domain Entities for Expense Manager

Users own Categories; Expenses reference one User and one Category by
identifier. Each entity validates itself:

1. Constructors run every field rule, in a fixed order, before any state
   exists
2. Mutators validate only their own field, then assign and touch updated_at
3. A failed rule raises immediately and leaves the entity unchanged

DESIGN DECISION: Checks that need another entity (does the category
belong to this user? is the e-mail taken?) are NOT done here. They belong
to expense_manager.validation, which can look things up in storage.

Stored rows come back through Entity.rehydrate(), which skips business
validation. The validating constructors never accept id or timestamps.
"""

from datetime import date as date_type
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from expense_manager.models.errors import (
    InvalidArgumentError,
    MissingRequiredValueError,
)
from expense_manager.models.value_objects import Email, HashedPassword, Money


NIL_UUID = UUID(int=0)

CATEGORY_NAME_MIN_LENGTH = 3
CATEGORY_NAME_MAX_LENGTH = 100
CATEGORY_DESCRIPTION_MAX_LENGTH = 250
USER_NAME_MIN_LENGTH = 3
EXPENSE_DESCRIPTION_MIN_LENGTH = 3
EXPENSE_DESCRIPTION_MAX_LENGTH = 200

MIN_TRANSACTION_DATE = datetime(2000, 1, 1, tzinfo=timezone.utc)
FUTURE_DATE_TOLERANCE = timedelta(days=1)


def utc_now() -> datetime:
    """Clock used for every timestamp in the domain."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class ExpenseType(str, Enum):
    """Direction of a transaction."""
    EXPENSE = "expense"  # Money going out
    INCOME = "income"    # Money coming in


class PaymentMethod(str, Enum):
    """How a transaction was paid."""
    CASH = "cash"
    DEBIT_CARD = "debit_card"
    CREDIT_CARD = "credit_card"
    PIX = "pix"                      # Brazilian instant payment
    BANK_TRANSFER = "bank_transfer"
    OTHER = "other"


# =============================================================================
# FIELD RULES
# =============================================================================

def _clean_text(
    value: Any,
    field: str,
    label: str,
    min_length: int,
    max_length: Optional[int] = None,
) -> str:
    """
    Trim and check a required text field.

    Length limits apply to the trimmed text, so what is checked is exactly
    what gets stored.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{label} cannot be empty", field=field)

    cleaned = value.strip()
    if len(cleaned) < min_length:
        raise InvalidArgumentError(
            f"{label} must have at least {min_length} characters", field=field
        )
    if max_length is not None and len(cleaned) > max_length:
        raise InvalidArgumentError(
            f"{label} cannot exceed {max_length} characters", field=field
        )
    return cleaned


def _clean_optional_text(
    value: Any,
    field: str,
    label: str,
    max_length: Optional[int] = None,
) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{label} must be text", field=field)

    cleaned = value.strip()
    if max_length is not None and len(cleaned) > max_length:
        raise InvalidArgumentError(
            f"{label} cannot exceed {max_length} characters", field=field
        )
    return cleaned


def _require_identifier(value: Any, field: str, label: str) -> UUID:
    if isinstance(value, str):
        if not value.strip():
            raise InvalidArgumentError(f"{label} cannot be empty", field=field)
        try:
            value = UUID(value.strip())
        except ValueError:
            raise InvalidArgumentError(f"{label} is not a valid identifier", field=field)

    if not isinstance(value, UUID) or value == NIL_UUID:
        raise InvalidArgumentError(f"{label} cannot be empty", field=field)
    return value


def _validate_transaction_amount(amount: Any) -> Money:
    # Stricter than Money itself: a transaction of zero makes no sense
    if amount is None:
        raise MissingRequiredValueError("amount", "Amount cannot be null")
    if not isinstance(amount, Money):
        raise InvalidArgumentError("Amount must be a Money value", field="amount")
    if amount.amount <= 0:
        raise InvalidArgumentError("Amount must be greater than zero", field="amount")
    return amount


def _validate_transaction_date(value: Any) -> datetime:
    """
    Normalize a transaction date to an aware UTC datetime and bound it.

    Aware datetimes are converted to UTC. Naive datetimes are read as UTC
    and plain dates mean midnight UTC.
    """
    if isinstance(value, datetime):
        moment = (
            value.astimezone(timezone.utc)
            if value.tzinfo
            else value.replace(tzinfo=timezone.utc)
        )
    elif isinstance(value, date_type):
        moment = datetime.combine(value, time.min, tzinfo=timezone.utc)
    else:
        raise InvalidArgumentError("Date must be a date or datetime", field="date")

    if moment > utc_now() + FUTURE_DATE_TOLERANCE:
        raise InvalidArgumentError(
            "Date cannot be more than 1 day in the future", field="date"
        )
    if moment < MIN_TRANSACTION_DATE:
        raise InvalidArgumentError("Date cannot be before year 2000", field="date")
    return moment


def _coerce_enum(enum_cls: type[Enum], value: Any, field: str, label: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidArgumentError(f"Invalid {label}: {value!r}", field=field)


# =============================================================================
# ENTITY BASE
# =============================================================================

class Entity(BaseModel):
    """
    Identity and timestamps shared by every entity.

    Two entities are equal when they are the same kind and share an id,
    whatever their other fields say.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: UUID = Field(
        default_factory=uuid4,
        frozen=True,
        description="Unique identifier, assigned once"
    )
    created_at: datetime = Field(
        default_factory=lambda: utc_now(),
        frozen=True,
        description="When the entity was created (UTC)"
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        description="Last business mutation (UTC), None until the first one"
    )

    def _touch(self) -> None:
        """Set updated_at to now, never moving it backwards."""
        now = utc_now()
        floor = self.updated_at or self.created_at
        self.updated_at = now if now >= floor else floor

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))

    def to_row(self) -> dict[str, Any]:
        """Plain-dict snapshot used by storage backends."""
        return self.model_dump()

    @classmethod
    def rehydrate(cls, row: dict[str, Any]) -> "Entity":
        """
        Rebuild a stored entity WITHOUT running business validation.

        Only storage backends should call this. Rows are trusted because
        they were produced by to_row() from a valid entity.
        """
        return cls.model_construct(**cls._restore_values(dict(row)))

    @classmethod
    def _restore_values(cls, values: dict[str, Any]) -> dict[str, Any]:
        return values


# =============================================================================
# CATEGORY
# =============================================================================

class Category(Entity):
    """
    A user-owned grouping for transactions (e.g. "Groceries").

    Uniqueness of the name per user is checked by the cross-entity
    validator, not here.
    """

    name: str
    description: Optional[str] = None
    user_id: UUID

    def __init__(
        self,
        name: str,
        user_id: UUID,
        description: Optional[str] = None,
    ):
        super().__init__(
            name=self._validate_name(name),
            user_id=_require_identifier(user_id, "user_id", "UserId"),
            description=self._validate_description(description),
        )

    @staticmethod
    def _validate_name(name: Any) -> str:
        return _clean_text(
            name,
            "name",
            "Name",
            CATEGORY_NAME_MIN_LENGTH,
            CATEGORY_NAME_MAX_LENGTH,
        )

    @staticmethod
    def _validate_description(description: Any) -> Optional[str]:
        return _clean_optional_text(
            description,
            "description",
            "Description",
            CATEGORY_DESCRIPTION_MAX_LENGTH,
        )

    def update_name(self, new_name: str) -> None:
        self.name = self._validate_name(new_name)
        self._touch()

    def update_description(self, new_description: Optional[str]) -> None:
        self.description = self._validate_description(new_description)
        self._touch()


# =============================================================================
# USER
# =============================================================================

class User(Entity):
    """
    An account holder.

    Users start active. Logging in is tracked separately from profile
    changes: record_login() sets last_login_at but leaves updated_at alone.
    """

    name: str
    email: Email
    password: HashedPassword
    is_active: bool = True
    last_login_at: Optional[datetime] = None

    def __init__(self, name: str, email: Email, password: HashedPassword):
        super().__init__(
            name=self._validate_name(name),
            email=self._require_email(email),
            password=self._require_password(password),
            is_active=True,
        )

    @staticmethod
    def _validate_name(name: Any) -> str:
        return _clean_text(name, "name", "Name", USER_NAME_MIN_LENGTH)

    @staticmethod
    def _require_email(email: Any) -> Email:
        if email is None:
            raise MissingRequiredValueError("email", "Email cannot be null")
        if not isinstance(email, Email):
            raise InvalidArgumentError("Email must be an Email value", field="email")
        return email

    @staticmethod
    def _require_password(password: Any) -> HashedPassword:
        if password is None:
            raise MissingRequiredValueError("password", "Password cannot be null")
        if not isinstance(password, HashedPassword):
            raise InvalidArgumentError(
                "Password must be a HashedPassword value", field="password"
            )
        return password

    def update_name(self, new_name: str) -> None:
        self.name = self._validate_name(new_name)
        self._touch()

    def update_email(self, new_email: Email) -> None:
        self.email = self._require_email(new_email)
        self._touch()

    def change_password(self, new_password: HashedPassword) -> None:
        self.password = self._require_password(new_password)
        self._touch()

    def activate(self) -> None:
        self.is_active = True
        self._touch()

    def deactivate(self) -> None:
        self.is_active = False
        self._touch()

    def record_login(self) -> None:
        # Login activity, not a profile change: updated_at stays as it is
        self.last_login_at = utc_now()

    @classmethod
    def _restore_values(cls, values: dict[str, Any]) -> dict[str, Any]:
        if isinstance(values.get("email"), dict):
            values["email"] = Email.model_construct(**values["email"])
        if isinstance(values.get("password"), dict):
            values["password"] = HashedPassword.model_construct(**values["password"])
        return values


# =============================================================================
# EXPENSE
# =============================================================================

class Expense(Entity):
    """
    A dated transaction (expense or income).

    Validation order on construction is fixed:
    description -> amount -> date -> user_id -> category_id.

    Payment method and notes are free: any value (or None) is accepted.
    There is no status and no state machine; every mutator can be called
    at any time.
    """

    description: str
    amount: Money
    date: datetime
    user_id: UUID
    category_id: UUID
    type: ExpenseType = ExpenseType.EXPENSE
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None

    def __init__(
        self,
        description: str,
        amount: Money,
        date: datetime,
        user_id: UUID,
        category_id: UUID,
        type: ExpenseType = ExpenseType.EXPENSE,
        payment_method: Optional[PaymentMethod] = None,
        notes: Optional[str] = None,
    ):
        super().__init__(
            description=self._validate_description(description),
            amount=_validate_transaction_amount(amount),
            date=_validate_transaction_date(date),
            user_id=_require_identifier(user_id, "user_id", "UserId"),
            category_id=_require_identifier(category_id, "category_id", "CategoryId"),
            type=_coerce_enum(ExpenseType, type, "type", "transaction type"),
            payment_method=self._coerce_payment_method(payment_method),
            notes=_clean_optional_text(notes, "notes", "Notes"),
        )

    @staticmethod
    def _validate_description(description: Any) -> str:
        return _clean_text(
            description,
            "description",
            "Description",
            EXPENSE_DESCRIPTION_MIN_LENGTH,
            EXPENSE_DESCRIPTION_MAX_LENGTH,
        )

    @staticmethod
    def _coerce_payment_method(value: Any) -> Optional[PaymentMethod]:
        if value is None:
            return None
        return _coerce_enum(PaymentMethod, value, "payment_method", "payment method")

    @property
    def is_income(self) -> bool:
        return self.type == ExpenseType.INCOME

    def update_description(self, new_description: str) -> None:
        self.description = self._validate_description(new_description)
        self._touch()

    def update_amount(self, new_amount: Money) -> None:
        self.amount = _validate_transaction_amount(new_amount)
        self._touch()

    def update_date(self, new_date: datetime) -> None:
        self.date = _validate_transaction_date(new_date)
        self._touch()

    def change_category(self, new_category_id: UUID) -> None:
        self.category_id = _require_identifier(
            new_category_id, "category_id", "CategoryId"
        )
        self._touch()

    def update_payment_method(self, new_payment_method: Optional[PaymentMethod]) -> None:
        self.payment_method = self._coerce_payment_method(new_payment_method)
        self._touch()

    def update_notes(self, new_notes: Optional[str]) -> None:
        self.notes = _clean_optional_text(new_notes, "notes", "Notes")
        self._touch()

    @classmethod
    def _restore_values(cls, values: dict[str, Any]) -> dict[str, Any]:
        if isinstance(values.get("amount"), dict):
            values["amount"] = Money.model_construct(**values["amount"])
        if values.get("type") is not None:
            values["type"] = ExpenseType(values["type"])
        if values.get("payment_method") is not None:
            values["payment_method"] = PaymentMethod(values["payment_method"])
        return values
