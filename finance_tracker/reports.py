"""Reporting utilities.

Formats transactions and summaries into CSV, human-readable text and JSON.
"""

from __future__ import annotations

import csv
import datetime as dt
import json
from decimal import Decimal
from pathlib import Path
from typing import Dict, IO, Iterable, List

from .domain import CENTS, FinancialSummary, Transaction, TransactionKind


CSV_HEADER = ["Date", "Description", "Category", "Type", "Amount", "Note"]
KIND_LABELS = {TransactionKind.INCOME: "Income", TransactionKind.EXPENSE: "Expense"}


def fmt_amount(value: Decimal) -> str:
    return f"{value.quantize(CENTS)}"


def export_filename(today: dt.date) -> str:
    return f"transactions_{today.isoformat()}.csv"


def _ensure_text_writer(target: str | Path | IO[str]):
    if hasattr(target, "write"):
        return target, None
    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("w", newline="", encoding="utf-8")
    return handle, handle


def export_transactions_csv(txns: Iterable[Transaction], path: str | Path | IO[str]) -> int:
    """Write one CSV row per transaction; returns the number of rows written."""
    rows: List[List[str]] = [CSV_HEADER]
    for t in txns:
        rows.append([
            t.date.date().isoformat(),
            t.description,
            t.category,
            KIND_LABELS[t.kind],
            fmt_amount(t.amount),
            t.note or "",
        ])

    writer_target, to_close = _ensure_text_writer(path)
    try:
        writer = csv.writer(writer_target, lineterminator="\n")
        writer.writerows(rows)
    finally:
        if to_close is not None:
            to_close.close()
    return len(rows) - 1


def format_text_report(summary: FinancialSummary, now: dt.datetime) -> str:
    lines: List[str] = []
    lines.append("=== Personal Finance Summary ===")
    lines.append(f"Balance:          {fmt_amount(summary.balance)}")
    lines.append(f"Transactions:     {summary.total_transactions}")
    lines.append("")
    lines.append(f"-- {now.strftime('%B %Y')} --")
    lines.append(f"Income:   {fmt_amount(summary.monthly_income):>12}  ({summary.income_transaction_count} transactions)")
    lines.append(f"Expenses: {fmt_amount(summary.monthly_expenses):>12}  ({summary.expense_transaction_count} transactions)")
    lines.append(f"Net:      {fmt_amount(summary.monthly_income - summary.monthly_expenses):>12}")
    return "\n".join(lines)


def save_json(data: Dict, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
