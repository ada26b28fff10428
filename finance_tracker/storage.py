"""Transaction store and category registry.

``TransactionStore`` and ``CategoryRegistry`` are the interfaces the web app
and the CLI talk to. Two implementations are provided: ``SqlStorage`` over a
SQLAlchemy session (the normal case) and ``MemoryStorage`` (tests, throwaway
sessions). Lookups that miss return ``None``/``False`` rather than raising.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from .domain import Category, CategoryType, Transaction, TransactionKind
from .models import CategoryRecord, TransactionRecord, db


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base class for refused store operations."""


class DuplicateCategoryError(StorageError):
    def __init__(self, key: str):
        super().__init__(f"A category with key '{key}' already exists")
        self.key = key


class ProtectedCategoryError(StorageError):
    def __init__(self, key: str, action: str = "deleted"):
        super().__init__(f"Category '{key}' is a default category and cannot be {action}")
        self.key = key


class ImmutableKeyError(StorageError):
    def __init__(self, key: str):
        super().__init__(f"The key of category '{key}' cannot be changed")
        self.key = key


def _newest_first(txns: Iterable[Transaction]) -> List[Transaction]:
    return sorted(txns, key=lambda t: (t.date, t.created_at), reverse=True)


def _matches_type(category: Category, applicable_to: Optional[CategoryType]) -> bool:
    if applicable_to is None:
        return True
    if applicable_to is CategoryType.BOTH:
        return category.type is CategoryType.BOTH
    return category.type.applies_to(TransactionKind(applicable_to.value))


class TransactionStore(ABC):
    @abstractmethod
    def list_transactions(self) -> List[Transaction]:
        """All transactions, newest date first."""

    @abstractmethod
    def get_transaction(self, txn_id: str) -> Optional[Transaction]:
        ...

    @abstractmethod
    def create_transaction(self, data: Dict[str, Any]) -> Transaction:
        """Store a validated payload (see ``parse_transaction_payload``)."""

    @abstractmethod
    def update_transaction(self, txn_id: str, changes: Dict[str, Any]) -> Optional[Transaction]:
        ...

    @abstractmethod
    def delete_transaction(self, txn_id: str) -> bool:
        ...


class CategoryRegistry(ABC):
    @abstractmethod
    def list_categories(self, applicable_to: Optional[CategoryType] = None) -> List[Category]:
        """Categories ordered by kind then label.

        ``applicable_to`` of income/expense also returns ``both`` categories;
        ``both`` returns only those.
        """

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]:
        ...

    @abstractmethod
    def get_category_by_key(self, key: str) -> Optional[Category]:
        ...

    @abstractmethod
    def create_category(self, data: Dict[str, Any]) -> Category:
        """Raises ``DuplicateCategoryError`` if the key is taken."""

    @abstractmethod
    def update_category(self, category_id: str, changes: Dict[str, Any]) -> Optional[Category]:
        """Raises ``ImmutableKeyError`` on an attempt to change the key and
        ``ProtectedCategoryError`` on an attempt to clear ``is_default``."""

    @abstractmethod
    def delete_category(self, category_id: str) -> bool:
        """Raises ``ProtectedCategoryError`` for default categories."""


class MemoryStorage(TransactionStore, CategoryRegistry):
    """Dict-backed storage; writes are serialized by a lock."""

    def __init__(self) -> None:
        self._transactions: Dict[str, Transaction] = {}
        self._categories: Dict[str, Category] = {}
        self._lock = threading.RLock()

    def list_transactions(self) -> List[Transaction]:
        with self._lock:
            snapshot = [dataclasses.replace(t) for t in self._transactions.values()]
        return _newest_first(snapshot)

    def get_transaction(self, txn_id: str) -> Optional[Transaction]:
        with self._lock:
            txn = self._transactions.get(txn_id)
            return dataclasses.replace(txn) if txn else None

    def create_transaction(self, data: Dict[str, Any]) -> Transaction:
        txn = Transaction(
            id=str(uuid.uuid4()),
            kind=data["kind"],
            description=data["description"],
            amount=data["amount"],
            category=data["category"],
            note=data.get("note"),
            date=data["date"],
            created_at=dt.datetime.now(),
        )
        with self._lock:
            self._transactions[txn.id] = txn
        return dataclasses.replace(txn)

    def update_transaction(self, txn_id: str, changes: Dict[str, Any]) -> Optional[Transaction]:
        with self._lock:
            existing = self._transactions.get(txn_id)
            if existing is None:
                return None
            updated = dataclasses.replace(existing, **changes)
            self._transactions[txn_id] = updated
            return dataclasses.replace(updated)

    def delete_transaction(self, txn_id: str) -> bool:
        with self._lock:
            return self._transactions.pop(txn_id, None) is not None

    def list_categories(self, applicable_to: Optional[CategoryType] = None) -> List[Category]:
        with self._lock:
            cats = [dataclasses.replace(c) for c in self._categories.values()]
        cats = [c for c in cats if _matches_type(c, applicable_to)]
        return sorted(cats, key=lambda c: (c.type.value, c.label))

    def get_category(self, category_id: str) -> Optional[Category]:
        with self._lock:
            cat = self._categories.get(category_id)
            return dataclasses.replace(cat) if cat else None

    def get_category_by_key(self, key: str) -> Optional[Category]:
        with self._lock:
            for cat in self._categories.values():
                if cat.key == key:
                    return dataclasses.replace(cat)
        return None

    def create_category(self, data: Dict[str, Any]) -> Category:
        cat = Category(
            id=str(uuid.uuid4()),
            key=data["key"],
            label=data["label"],
            icon=data["icon"],
            color=data["color"],
            type=data["type"],
            is_default=data.get("is_default", False),
            created_at=dt.datetime.now(),
        )
        with self._lock:
            if any(c.key == cat.key for c in self._categories.values()):
                raise DuplicateCategoryError(cat.key)
            self._categories[cat.id] = cat
        return dataclasses.replace(cat)

    def update_category(self, category_id: str, changes: Dict[str, Any]) -> Optional[Category]:
        with self._lock:
            existing = self._categories.get(category_id)
            if existing is None:
                return None
            if changes.get("key", existing.key) != existing.key:
                raise ImmutableKeyError(existing.key)
            if existing.is_default and changes.get("is_default", True) is False:
                raise ProtectedCategoryError(existing.key, "unprotected")
            updated = dataclasses.replace(existing, **changes)
            self._categories[category_id] = updated
            return dataclasses.replace(updated)

    def delete_category(self, category_id: str) -> bool:
        with self._lock:
            existing = self._categories.get(category_id)
            if existing is None:
                return False
            if existing.is_default:
                raise ProtectedCategoryError(existing.key)
            del self._categories[category_id]
            return True


_TXN_COLUMNS = {
    "kind": "type",
    "description": "description",
    "amount": "amount",
    "category": "category",
    "note": "note",
    "date": "date",
}
_CATEGORY_COLUMNS = {
    "key": "key",
    "label": "label",
    "icon": "icon",
    "color": "color",
    "type": "type",
    "is_default": "is_default",
}


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, (TransactionKind, CategoryType)) else value


class SqlStorage(TransactionStore, CategoryRegistry):
    """Storage over a SQLAlchemy session (``db.session`` inside a Flask app)."""

    def __init__(self, session=None) -> None:
        self.session = session if session is not None else db.session

    def list_transactions(self) -> List[Transaction]:
        stmt = db.select(TransactionRecord).order_by(
            TransactionRecord.date.desc(),
            TransactionRecord.created_at.desc(),
        )
        return [row.to_domain() for row in self.session.execute(stmt).scalars()]

    def get_transaction(self, txn_id: str) -> Optional[Transaction]:
        row = self.session.get(TransactionRecord, txn_id)
        return row.to_domain() if row else None

    def create_transaction(self, data: Dict[str, Any]) -> Transaction:
        row = TransactionRecord(id=str(uuid.uuid4()), created_at=dt.datetime.now())
        for field, column in _TXN_COLUMNS.items():
            if field in data:
                setattr(row, column, _column_value(data[field]))
        self.session.add(row)
        self.session.commit()
        logger.info("Created transaction %s (%s %s)", row.id, row.type, row.amount)
        return row.to_domain()

    def update_transaction(self, txn_id: str, changes: Dict[str, Any]) -> Optional[Transaction]:
        row = self.session.get(TransactionRecord, txn_id)
        if row is None:
            return None
        for field, column in _TXN_COLUMNS.items():
            if field in changes:
                setattr(row, column, _column_value(changes[field]))
        self.session.commit()
        return row.to_domain()

    def delete_transaction(self, txn_id: str) -> bool:
        row = self.session.get(TransactionRecord, txn_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.commit()
        logger.info("Deleted transaction %s", txn_id)
        return True

    def list_categories(self, applicable_to: Optional[CategoryType] = None) -> List[Category]:
        stmt = db.select(CategoryRecord).order_by(CategoryRecord.type, CategoryRecord.label)
        cats = [row.to_domain() for row in self.session.execute(stmt).scalars()]
        return [c for c in cats if _matches_type(c, applicable_to)]

    def get_category(self, category_id: str) -> Optional[Category]:
        row = self.session.get(CategoryRecord, category_id)
        return row.to_domain() if row else None

    def get_category_by_key(self, key: str) -> Optional[Category]:
        stmt = db.select(CategoryRecord).filter_by(key=key)
        row = self.session.execute(stmt).scalar_one_or_none()
        return row.to_domain() if row else None

    def create_category(self, data: Dict[str, Any]) -> Category:
        if self.get_category_by_key(data["key"]) is not None:
            raise DuplicateCategoryError(data["key"])
        row = CategoryRecord(id=str(uuid.uuid4()), created_at=dt.datetime.now(), is_default=False)
        for field, column in _CATEGORY_COLUMNS.items():
            if field in data:
                setattr(row, column, _column_value(data[field]))
        self.session.add(row)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateCategoryError(data["key"]) from exc
        logger.info("Created category %s", row.key)
        return row.to_domain()

    def update_category(self, category_id: str, changes: Dict[str, Any]) -> Optional[Category]:
        row = self.session.get(CategoryRecord, category_id)
        if row is None:
            return None
        if changes.get("key", row.key) != row.key:
            raise ImmutableKeyError(row.key)
        if row.is_default and changes.get("is_default", True) is False:
            raise ProtectedCategoryError(row.key, "unprotected")
        for field, column in _CATEGORY_COLUMNS.items():
            if field in changes:
                setattr(row, column, _column_value(changes[field]))
        self.session.commit()
        return row.to_domain()

    def delete_category(self, category_id: str) -> bool:
        row = self.session.get(CategoryRecord, category_id)
        if row is None:
            return False
        if row.is_default:
            raise ProtectedCategoryError(row.key)
        key = row.key
        self.session.delete(row)
        self.session.commit()
        logger.info("Deleted category %s", key)
        return True
