"""Utility helpers for database setup and store access."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from flask import Flask, current_app
from sqlalchemy.engine import make_url

from .config import DEFAULT_CATEGORIES, AppConfig
from .models import db
from .storage import CategoryRegistry, SqlStorage
from .validation import parse_category_payload


logger = logging.getLogger(__name__)

STORAGE_EXTENSION = "finance_tracker.storage"


def sqlite_path(database_url: str) -> Optional[Path]:
    """The file behind a SQLite URL, or None for other databases and ``:memory:``."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def init_app(app: Flask, cfg: AppConfig) -> None:
    app.config.setdefault("SQLALCHEMY_DATABASE_URI", cfg.database_url)
    path = sqlite_path(app.config["SQLALCHEMY_DATABASE_URI"])
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Using database %s", app.config["SQLALCHEMY_DATABASE_URI"])
    db.init_app(app)
    app.extensions[STORAGE_EXTENSION] = SqlStorage(db.session)
    with app.app_context():
        init_db(cfg.categories)


def get_storage() -> SqlStorage:
    return current_app.extensions[STORAGE_EXTENSION]


def init_db(categories: Optional[Iterable[Dict[str, str]]] = None) -> None:
    db.create_all()
    seed_default_categories(get_storage(), categories)


def seed_default_categories(
    registry: CategoryRegistry,
    categories: Optional[Iterable[Dict[str, str]]] = None,
) -> int:
    """Create the default categories when the registry is empty; returns how many."""
    if registry.list_categories():
        return 0
    created = 0
    for entry in categories if categories is not None else DEFAULT_CATEGORIES:
        registry.create_category(parse_category_payload({**entry, "isDefault": True}))
        created += 1
    logger.info("Seeded %d default categories", created)
    return created
