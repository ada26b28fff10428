from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from finance_tracker.domain import CategoryType, DateRange, TransactionKind, TypeFilter
from finance_tracker.validation import (
    InvalidFilterInput,
    ValidationError,
    parse_amount,
    parse_category_payload,
    parse_datetime,
    parse_filter_spec,
    parse_transaction_payload,
)


def test_empty_query_gives_inactive_spec() -> None:
    spec = parse_filter_spec({})
    assert spec.search == ""
    assert spec.category is None
    assert spec.type is TypeFilter.ALL
    assert spec.date_range is DateRange.ALL
    assert spec.min_amount is None and spec.max_amount is None


def test_default_range_applies_when_absent() -> None:
    assert parse_filter_spec({}, DateRange.MONTH).date_range is DateRange.MONTH


def test_full_query() -> None:
    spec = parse_filter_spec({
        "search": "  coffee ",
        "category": "food",
        "type": "expense",
        "dateRange": "custom",
        "startDate": "2024-01-01",
        "endDate": "2024-01-16",
        "minAmount": "200",
        "maxAmount": "1,500.50",
    })
    assert spec.search == "coffee"
    assert spec.category == "food"
    assert spec.type is TypeFilter.EXPENSE
    assert spec.custom_start == dt.datetime(2024, 1, 1)
    assert spec.custom_end == dt.datetime(2024, 1, 16, 23, 59, 59, 999999)
    assert spec.min_amount == Decimal("200")
    assert spec.max_amount == Decimal("1500.50")


def test_dates_without_range_mean_custom() -> None:
    spec = parse_filter_spec({"startDate": "2024-01-01", "endDate": "2024-01-31"})
    assert spec.date_range is DateRange.CUSTOM


def test_dates_ignored_for_named_ranges() -> None:
    spec = parse_filter_spec({"dateRange": "year", "startDate": "not a date"})
    assert spec.date_range is DateRange.YEAR
    assert spec.custom_start is None


def test_category_all_means_unset() -> None:
    assert parse_filter_spec({"category": "all"}).category is None


@pytest.mark.parametrize(
    "query, field",
    [
        ({"minAmount": "abc"}, "minAmount"),
        ({"maxAmount": "NaN"}, "maxAmount"),
        ({"minAmount": "-5"}, "minAmount"),
        ({"type": "transfer"}, "type"),
        ({"dateRange": "decade"}, "dateRange"),
        ({"dateRange": "custom", "endDate": "31/31/2024"}, "endDate"),
    ],
)
def test_bad_filter_input_is_rejected(query, field) -> None:
    with pytest.raises(InvalidFilterInput) as info:
        parse_filter_spec(query)
    assert [e["field"] for e in info.value.errors] == [field]


def test_all_filter_errors_reported_together() -> None:
    with pytest.raises(InvalidFilterInput) as info:
        parse_filter_spec({"minAmount": "x", "maxAmount": "y"})
    assert {e["field"] for e in info.value.errors} == {"minAmount", "maxAmount"}


def test_parse_datetime_formats() -> None:
    assert parse_datetime("2024-01-15") == dt.datetime(2024, 1, 15)
    assert parse_datetime("15.01.2024") == dt.datetime(2024, 1, 15)
    assert parse_datetime("2024-01-15T10:30:00") == dt.datetime(2024, 1, 15, 10, 30)
    assert parse_datetime(dt.date(2024, 1, 15)) == dt.datetime(2024, 1, 15)
    assert parse_datetime("2024-01-15T10:30:00Z").tzinfo is None
    with pytest.raises(ValueError):
        parse_datetime("yesterday")


def test_parse_amount_rounds_to_cents() -> None:
    assert parse_amount("12.345") == Decimal("12.35")
    assert parse_amount(19.99) == Decimal("19.99")
    assert parse_amount(3) == Decimal("3.00")
    for bad in ("0", "-1", "0.001", "abc", True, "100000000", "1e30", 1e30, "-1e30"):
        with pytest.raises(ValueError):
            parse_amount(bad)


def test_transaction_payload() -> None:
    data = parse_transaction_payload({
        "type": "income",
        "description": " Salary ",
        "amount": 1000,
        "category": "salary",
        "note": "",
        "date": "2024-01-15",
    })
    assert data == {
        "kind": TransactionKind.INCOME,
        "description": "Salary",
        "amount": Decimal("1000.00"),
        "category": "salary",
        "note": None,
        "date": dt.datetime(2024, 1, 15),
    }


def test_transaction_payload_requires_fields() -> None:
    with pytest.raises(ValidationError) as info:
        parse_transaction_payload({"description": "", "amount": -3})
    fields = {e["field"] for e in info.value.errors}
    assert fields == {"type", "description", "amount", "category", "date"}


def test_partial_transaction_payload_only_returns_sent_fields() -> None:
    assert parse_transaction_payload({"amount": "5"}, partial=True) == {"amount": Decimal("5.00")}
    with pytest.raises(ValidationError):
        parse_transaction_payload({"type": "loan"}, partial=True)


def test_category_payload() -> None:
    data = parse_category_payload({
        "key": "pets",
        "label": "Pets",
        "icon": "🐶",
        "color": "#aaaaaa",
        "type": "expense",
        "isDefault": "false",
    })
    assert data["type"] is CategoryType.EXPENSE
    assert data["is_default"] is False


def test_category_key_must_be_slug() -> None:
    with pytest.raises(ValidationError) as info:
        parse_category_payload(
            {"key": "my pets!", "label": "Pets", "icon": "x", "color": "y", "type": "both"}
        )
    assert info.value.errors[0]["field"] == "key"
