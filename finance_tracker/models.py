"""SQLAlchemy models for the Personal Finance Tracker."""

from __future__ import annotations

import datetime as dt
import uuid

from flask_sqlalchemy import SQLAlchemy

from .domain import Category, CategoryType, Transaction, TransactionKind


db = SQLAlchemy()


def _new_id() -> str:
    return str(uuid.uuid4())


class TransactionRecord(db.Model):
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("type IN ('income', 'expense')", name="ck_transactions_type"),
        db.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    type = db.Column(db.String(16), nullable=False)
    description = db.Column(db.Text, nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    note = db.Column(db.Text)
    date = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=dt.datetime.now, nullable=False)

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            kind=TransactionKind(self.type),
            description=self.description,
            amount=self.amount,
            category=self.category,
            note=self.note,
            date=self.date,
            created_at=self.created_at,
        )


class CategoryRecord(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.CheckConstraint("type IN ('income', 'expense', 'both')", name="ck_categories_type"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    key = db.Column(db.String(120), unique=True, nullable=False)
    label = db.Column(db.Text, nullable=False)
    icon = db.Column(db.Text, nullable=False)
    color = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(16), nullable=False)
    is_default = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=dt.datetime.now, nullable=False)

    def to_domain(self) -> Category:
        return Category(
            id=self.id,
            key=self.key,
            label=self.label,
            icon=self.icon,
            color=self.color,
            type=CategoryType(self.type),
            is_default=bool(self.is_default),
            created_at=self.created_at,
        )
