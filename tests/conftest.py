from __future__ import annotations

import datetime as dt
import itertools
from decimal import Decimal

import pytest

from finance_tracker.config import AppConfig
from finance_tracker.domain import Transaction, TransactionKind
from finance_tracker.storage import MemoryStorage
from finance_tracker.webapp import create_app


NOW = dt.datetime(2024, 1, 25, 12, 0)


@pytest.fixture
def now() -> dt.datetime:
    return NOW


@pytest.fixture
def make_txn():
    counter = itertools.count(1)

    def _make(kind, amount, date, description="Entry", category="other", note=None):
        n = next(counter)
        if isinstance(date, str):
            date = dt.datetime.fromisoformat(date)
        return Transaction(
            id=f"t{n}",
            kind=TransactionKind(kind),
            description=description,
            amount=Decimal(str(amount)),
            category=category,
            note=note,
            date=date,
            created_at=dt.datetime(2024, 1, 1) + dt.timedelta(seconds=n),
        )

    return _make


@pytest.fixture
def january(make_txn):
    return [
        make_txn("income", "1000", "2024-01-15", "January salary", "salary"),
        make_txn("expense", "300", "2024-01-20", "Groceries", "food", note="weekly shop"),
    ]


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def app():
    cfg = AppConfig(database_url="sqlite://")
    app = create_app(cfg, test_config={"TESTING": True, "CLOCK": lambda: NOW})
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
