"""
Balance Summary Model

Read model returned by ExpenseFlow.summarize(): totals for one user in
one currency. Currencies are never mixed, so a user with transactions in
two currencies gets two summaries.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from expense_manager.models.entities import Expense
from expense_manager.models.value_objects import Money


class BalanceSummary(BaseModel):
    """Income and expense totals in a single currency."""

    currency: str
    total_income: Money
    total_expenses: Money
    transaction_count: int = Field(default=0, ge=0)

    @classmethod
    def empty(cls, currency: str) -> "BalanceSummary":
        return cls(
            currency=currency,
            total_income=Money.zero(currency),
            total_expenses=Money.zero(currency),
        )

    def add(self, expense: Expense) -> "BalanceSummary":
        """Return a new summary including this transaction."""
        if expense.is_income:
            income, spent = self.total_income + expense.amount, self.total_expenses
        else:
            income, spent = self.total_income, self.total_expenses + expense.amount

        return BalanceSummary(
            currency=self.currency,
            total_income=income,
            total_expenses=spent,
            transaction_count=self.transaction_count + 1,
        )

    @property
    def net(self) -> Decimal:
        """Income minus expenses; may be negative, so it is not Money."""
        return self.total_income.amount - self.total_expenses.amount
