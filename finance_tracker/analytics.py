"""Analytics and summary calculations.

Functions that compute balances, current-month figures and trends from
transactions. All sums are ``Decimal``; nothing here rounds.
"""

from __future__ import annotations

import datetime as dt
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

from .domain import FinancialSummary, Transaction, TransactionKind
from .filters import by_date_window, month_window


ZERO = Decimal("0")


def month_key(d: dt.date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def compute_summary(txns: Sequence[Transaction], now: dt.datetime) -> FinancialSummary:
    """Balance over all time plus income/expense figures for the month of ``now``.

    The balance deliberately spans the whole collection while the monthly
    figures only cover the current calendar month.
    """

    summary = FinancialSummary(total_transactions=len(txns))
    in_month = by_date_window(*month_window(now))
    for t in txns:
        summary.balance += t.signed_amount
        if not in_month(t):
            continue
        if t.kind is TransactionKind.INCOME:
            summary.monthly_income += t.amount
            summary.income_transaction_count += 1
        else:
            summary.monthly_expenses += t.amount
            summary.expense_transaction_count += 1
    return summary


def monthly_totals(txns: Iterable[Transaction]) -> Dict[str, Dict[str, Decimal]]:
    months: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: {"income": ZERO, "expense": ZERO, "net": ZERO})
    for t in txns:
        m = months[month_key(t.date)]
        if t.kind is TransactionKind.INCOME:
            m["income"] += t.amount
        else:
            m["expense"] += t.amount
        m["net"] = m["income"] - m["expense"]
    return {m: dict(vals) for m, vals in sorted(months.items())}


def spending_by_category(
    txns: Iterable[Transaction],
    kind: TransactionKind = TransactionKind.EXPENSE,
) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in txns:
        if t.kind is kind:
            totals[t.category] += t.amount
    return dict(sorted(totals.items(), key=lambda kv: kv[1], reverse=True))


def running_balance(txns: Iterable[Transaction]) -> List[Tuple[Transaction, Decimal]]:
    """Chronological ``(transaction, balance after it)`` pairs."""
    ordered = sorted(txns, key=lambda t: (t.date, t.created_at))
    balance = ZERO
    series: List[Tuple[Transaction, Decimal]] = []
    for t in ordered:
        balance += t.signed_amount
        series.append((t, balance))
    return series
