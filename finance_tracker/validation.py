"""Boundary parsing for request input.

Turns the loosely-typed values that arrive in query strings and JSON bodies
into the typed values the rest of the package works with. Nothing past this
module re-validates: the filter engine and the aggregator assume their input
went through here.
"""

from __future__ import annotations

import datetime as dt
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from .domain import CENTS, CategoryType, DateRange, FilterSpec, TransactionKind, TypeFilter


MAX_AMOUNT = Decimal("99999999.99")  # NUMERIC(10, 2)
CATEGORY_KEY_RE = re.compile(r"^[a-zA-Z0-9_-]+$")

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d.%m.%Y")


class ValidationError(ValueError):
    """Raised when request input cannot be turned into typed values.

    ``errors`` holds one ``{"field": ..., "message": ...}`` entry per problem.
    """

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class InvalidFilterInput(ValidationError):
    """A filter bound (amount, date, type or range) could not be parsed."""


def _is_date_only(value: str) -> bool:
    return "T" not in value and ":" not in value


def parse_datetime(value: Any) -> dt.datetime:
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)
    else:
        text = str(value).strip()
        if not text:
            raise ValueError("Date is empty")
        for fmt in _DATE_FORMATS:
            try:
                return dt.datetime.strptime(text, fmt)
            except ValueError:
                continue
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = dt.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Unrecognized date format: {value}") from exc
    if parsed.tzinfo is not None:
        # Stored dates carry no zone; keep the local wall-clock reading.
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value}")
    if isinstance(value, float):
        value = repr(value)
    text = str(value).replace(",", "").strip()
    try:
        number = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value}") from exc
    if not number.is_finite():
        raise ValueError(f"Invalid amount: {value}")
    return number


def parse_amount(value: Any) -> Decimal:
    """Parse a transaction amount: positive, two fractional digits."""
    number = parse_decimal(value)
    # Bounds first: quantize fails outright on values past the context precision.
    if number > MAX_AMOUNT:
        raise ValueError(f"Amount cannot exceed {MAX_AMOUNT}")
    if number <= 0:
        raise ValueError("Amount must be positive")
    amount = number.quantize(CENTS, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise ValueError("Amount must be positive")
    return amount


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_filter_spec(
    args: Mapping[str, Any],
    default_range: DateRange = DateRange.ALL,
) -> FilterSpec:
    """Build a ``FilterSpec`` from query parameters.

    Accepts ``search``, ``category``, ``type``, ``dateRange`` (or ``range``),
    ``startDate``, ``endDate``, ``minAmount`` and ``maxAmount``. When no range
    is given but explicit dates are, the range is ``custom``. Every problem is
    collected and reported in a single ``InvalidFilterInput``.
    """

    errors: List[Dict[str, str]] = []
    spec = FilterSpec(search=(args.get("search") or "").strip())

    category = (args.get("category") or "").strip()
    if category and category != "all":
        spec.category = category

    type_value = (args.get("type") or "all").strip().lower()
    try:
        spec.type = TypeFilter(type_value)
    except ValueError:
        errors.append({"field": "type", "message": f"Unknown transaction type: {type_value}"})

    start_raw = args.get("startDate") or ""
    end_raw = args.get("endDate") or ""
    range_raw = (args.get("dateRange") or args.get("range") or "").strip().lower()
    if not range_raw:
        range_raw = DateRange.CUSTOM.value if (start_raw or end_raw) else default_range.value
    try:
        spec.date_range = DateRange(range_raw)
    except ValueError:
        errors.append({"field": "dateRange", "message": f"Unknown date range: {range_raw}"})

    if spec.date_range is DateRange.CUSTOM:
        if start_raw:
            try:
                spec.custom_start = parse_datetime(start_raw)
            except ValueError as exc:
                errors.append({"field": "startDate", "message": str(exc)})
        if end_raw:
            try:
                end = parse_datetime(end_raw)
            except ValueError as exc:
                errors.append({"field": "endDate", "message": str(exc)})
            else:
                # A bare date means the whole of that day.
                if isinstance(end_raw, str) and _is_date_only(end_raw.strip()):
                    end = dt.datetime.combine(end.date(), dt.time.max)
                spec.custom_end = end

    for field_name, attr in (("minAmount", "min_amount"), ("maxAmount", "max_amount")):
        raw = args.get(field_name)
        if _blank(raw):
            continue
        try:
            bound = parse_decimal(raw)
        except ValueError as exc:
            errors.append({"field": field_name, "message": str(exc)})
            continue
        if bound < 0:
            errors.append({"field": field_name, "message": "Amount bound cannot be negative"})
            continue
        setattr(spec, attr, bound)

    if errors:
        raise InvalidFilterInput("Invalid filter parameters", errors)
    return spec


def parse_transaction_payload(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate a transaction body; returns only the fields that were sent.

    Keys of the result: ``kind``, ``description``, ``amount``, ``category``,
    ``note``, ``date``. With ``partial`` unset every field but ``note`` is
    required.
    """

    errors: List[Dict[str, str]] = []
    result: Dict[str, Any] = {}

    def present(name: str) -> bool:
        return name in data and data[name] is not None

    if present("type"):
        try:
            result["kind"] = TransactionKind(str(data["type"]).strip().lower())
        except ValueError:
            errors.append({"field": "type", "message": "Type must be income or expense"})
    elif not partial:
        errors.append({"field": "type", "message": "Type is required"})

    for name, label in (("description", "Description"), ("category", "Category")):
        if present(name):
            value = str(data[name]).strip()
            if value:
                result[name] = value
            else:
                errors.append({"field": name, "message": f"{label} is required"})
        elif not partial:
            errors.append({"field": name, "message": f"{label} is required"})

    if present("amount"):
        try:
            result["amount"] = parse_amount(data["amount"])
        except ValueError as exc:
            errors.append({"field": "amount", "message": str(exc)})
    elif not partial:
        errors.append({"field": "amount", "message": "Amount is required"})

    if present("date"):
        try:
            result["date"] = parse_datetime(data["date"])
        except ValueError as exc:
            errors.append({"field": "date", "message": str(exc)})
    elif not partial:
        errors.append({"field": "date", "message": "Date is required"})

    if "note" in data:
        note = data["note"]
        result["note"] = (str(note).strip() or None) if note is not None else None

    if errors:
        raise ValidationError("Invalid transaction data", errors)
    return result


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"true", "1", "yes"}:
        return True
    if text in {"false", "0", "no", ""}:
        return False
    raise ValueError(f"Invalid flag: {value}")


def parse_category_payload(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate a category body.

    Keys of the result: ``key``, ``label``, ``icon``, ``color``, ``type``,
    ``is_default``.
    """

    errors: List[Dict[str, str]] = []
    result: Dict[str, Any] = {}

    if data.get("key") is not None:
        key = str(data["key"]).strip()
        if not key:
            errors.append({"field": "key", "message": "Key is required"})
        elif not CATEGORY_KEY_RE.match(key):
            errors.append({
                "field": "key",
                "message": "Key may only contain letters, digits, dashes and underscores",
            })
        else:
            result["key"] = key
    elif not partial:
        errors.append({"field": "key", "message": "Key is required"})

    for name in ("label", "icon", "color"):
        if data.get(name) is not None:
            value = str(data[name]).strip()
            if value:
                result[name] = value
            else:
                errors.append({"field": name, "message": f"{name.capitalize()} is required"})
        elif not partial:
            errors.append({"field": name, "message": f"{name.capitalize()} is required"})

    if data.get("type") is not None:
        try:
            result["type"] = CategoryType(str(data["type"]).strip().lower())
        except ValueError:
            errors.append({"field": "type", "message": "Type must be income, expense or both"})
    elif not partial:
        errors.append({"field": "type", "message": "Type is required"})

    if data.get("isDefault") is not None:
        try:
            result["is_default"] = _parse_flag(data["isDefault"])
        except ValueError as exc:
            errors.append({"field": "isDefault", "message": str(exc)})
    elif not partial:
        result["is_default"] = False

    if errors:
        raise ValidationError("Invalid category data", errors)
    return result
