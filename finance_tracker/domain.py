"""Domain records for the Personal Finance Tracker.

Plain dataclasses shared by the stores, the filter engine and the summary
aggregator. Amounts are always positive ``Decimal`` values with two fractional
digits; the sign of a transaction comes from its ``kind``.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional


CENTS = Decimal("0.01")


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class CategoryType(str, Enum):
    """Which kinds of transactions a category applies to."""

    INCOME = "income"
    EXPENSE = "expense"
    BOTH = "both"

    def applies_to(self, kind: TransactionKind) -> bool:
        return self is CategoryType.BOTH or self.value == kind.value


class TypeFilter(str, Enum):
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


class DateRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


@dataclass
class Transaction:
    id: str
    kind: TransactionKind
    description: str
    amount: Decimal  # always > 0
    category: str
    date: dt.datetime
    note: Optional[str] = None
    created_at: dt.datetime = field(default_factory=dt.datetime.now)

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.kind is TransactionKind.INCOME else -self.amount

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "type": self.kind.value,
            "description": self.description,
            "amount": f"{self.amount.quantize(CENTS)}",
            "category": self.category,
            "note": self.note,
            "date": self.date.isoformat(),
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class Category:
    id: str
    key: str
    label: str
    icon: str
    color: str
    type: CategoryType
    is_default: bool = False
    created_at: dt.datetime = field(default_factory=dt.datetime.now)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "key": self.key,
            "label": self.label,
            "icon": self.icon,
            "color": self.color,
            "type": self.type.value,
            "isDefault": self.is_default,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class FilterSpec:
    """Search and filter constraints for one transaction listing.

    Every dimension left at its default is inactive. ``custom_start`` and
    ``custom_end`` are only consulted when ``date_range`` is ``custom``.
    """

    search: str = ""
    category: Optional[str] = None
    type: TypeFilter = TypeFilter.ALL
    date_range: DateRange = DateRange.ALL
    custom_start: Optional[dt.datetime] = None
    custom_end: Optional[dt.datetime] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None


@dataclass
class FinancialSummary:
    balance: Decimal = Decimal("0")
    monthly_income: Decimal = Decimal("0")
    monthly_expenses: Decimal = Decimal("0")
    income_transaction_count: int = 0
    expense_transaction_count: int = 0
    total_transactions: int = 0

    def to_dict(self) -> Dict:
        # Amounts are rounded here and nowhere earlier.
        return {
            "balance": float(self.balance.quantize(CENTS)),
            "monthlyIncome": float(self.monthly_income.quantize(CENTS)),
            "monthlyExpenses": float(self.monthly_expenses.quantize(CENTS)),
            "incomeTransactionCount": self.income_transaction_count,
            "expenseTransactionCount": self.expense_transaction_count,
            "totalTransactions": self.total_transactions,
        }
