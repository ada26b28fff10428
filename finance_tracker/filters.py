"""Transaction filtering.

Each filter dimension is an independent predicate; a listing keeps the
transactions for which every active predicate holds. Input order is preserved:
ordering belongs to the store, not to the filter.
"""

from __future__ import annotations

import calendar
import datetime as dt
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Tuple

from .domain import DateRange, FilterSpec, Transaction, TransactionKind, TypeFilter


Predicate = Callable[[Transaction], bool]
Window = Tuple[Optional[dt.datetime], Optional[dt.datetime]]


def _day_start(value: dt.date) -> dt.datetime:
    return dt.datetime.combine(value, dt.time.min)


def _day_end(value: dt.date) -> dt.datetime:
    return dt.datetime.combine(value, dt.time.max)


def month_window(now: dt.datetime) -> Tuple[dt.datetime, dt.datetime]:
    """First through last calendar day of the month containing ``now``."""
    last_day = calendar.monthrange(now.year, now.month)[1]
    return _day_start(dt.date(now.year, now.month, 1)), _day_end(dt.date(now.year, now.month, last_day))


def resolve_date_window(spec: FilterSpec, now: dt.datetime) -> Optional[Window]:
    """Concrete [start, end] bounds for the spec's date range, or None when inactive."""
    rng = spec.date_range
    if rng is DateRange.ALL:
        return None
    if rng is DateRange.TODAY:
        start = _day_start(now.date())
        return start, start + dt.timedelta(days=1)
    if rng is DateRange.WEEK:
        return now - dt.timedelta(days=7), now
    if rng is DateRange.MONTH:
        return month_window(now)
    if rng is DateRange.YEAR:
        return _day_start(dt.date(now.year, 1, 1)), _day_end(dt.date(now.year, 12, 31))
    if spec.custom_start is None and spec.custom_end is None:
        return None
    return spec.custom_start, spec.custom_end


def by_search(text: str) -> Predicate:
    needle = text.lower()

    def _match(t: Transaction) -> bool:
        if needle in t.description.lower():
            return True
        return bool(t.note) and needle in t.note.lower()

    return _match


def by_category(key: str) -> Predicate:
    def _match(t: Transaction) -> bool:
        return t.category == key

    return _match


def by_kind(kind: TransactionKind) -> Predicate:
    def _match(t: Transaction) -> bool:
        return t.kind is kind

    return _match


def by_date_window(start: Optional[dt.datetime], end: Optional[dt.datetime]) -> Predicate:
    def _match(t: Transaction) -> bool:
        return (start is None or t.date >= start) and (end is None or t.date <= end)

    return _match


def by_amount_range(minimum: Optional[Decimal], maximum: Optional[Decimal]) -> Predicate:
    def _match(t: Transaction) -> bool:
        return (minimum is None or t.amount >= minimum) and (maximum is None or t.amount <= maximum)

    return _match


def build_predicates(spec: FilterSpec, now: Optional[dt.datetime] = None) -> List[Predicate]:
    """One predicate per active dimension of ``spec``."""
    predicates: List[Predicate] = []
    if spec.search:
        predicates.append(by_search(spec.search))
    if spec.category:
        predicates.append(by_category(spec.category))
    if spec.type is not TypeFilter.ALL:
        predicates.append(by_kind(TransactionKind(spec.type.value)))
    window = resolve_date_window(spec, now or dt.datetime.now())
    if window is not None:
        predicates.append(by_date_window(*window))
    if spec.min_amount is not None or spec.max_amount is not None:
        predicates.append(by_amount_range(spec.min_amount, spec.max_amount))
    return predicates


def filter_transactions(
    txns: Iterable[Transaction],
    spec: FilterSpec,
    now: Optional[dt.datetime] = None,
) -> List[Transaction]:
    predicates = build_predicates(spec, now)
    return [t for t in txns if all(p(t) for p in predicates)]
