"""Configuration utilities for the Personal Finance Tracker.

Provides the default category set and helpers to load user-defined
configuration (database location, categories, default date range) from a JSON
file, with environment variables taking precedence.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .domain import DateRange


PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent
DEFAULT_DATABASE_URL = f"sqlite:///{PROJECT_ROOT / 'finance_tracker.db'}"


# Seeded into an empty category registry. All of them are protected from deletion.
DEFAULT_CATEGORIES: List[Dict[str, str]] = [
    # Income
    {"key": "salary", "label": "Salary", "icon": "💰", "color": "#10b981", "type": "income"},
    {"key": "freelance", "label": "Freelance", "icon": "💻", "color": "#3b82f6", "type": "income"},
    {"key": "investment", "label": "Investments", "icon": "📈", "color": "#8b5cf6", "type": "income"},
    {"key": "gift", "label": "Gift", "icon": "🎁", "color": "#f59e0b", "type": "income"},
    {"key": "other-income", "label": "Other", "icon": "💵", "color": "#6b7280", "type": "income"},
    # Expense
    {"key": "food", "label": "Food", "icon": "🍕", "color": "#ef4444", "type": "expense"},
    {"key": "transport", "label": "Transport", "icon": "🚗", "color": "#f97316", "type": "expense"},
    {"key": "housing", "label": "Housing", "icon": "🏠", "color": "#84cc16", "type": "expense"},
    {"key": "utilities", "label": "Utilities", "icon": "💡", "color": "#06b6d4", "type": "expense"},
    {"key": "healthcare", "label": "Health", "icon": "🏥", "color": "#ec4899", "type": "expense"},
    {"key": "entertainment", "label": "Entertainment", "icon": "🎮", "color": "#a855f7", "type": "expense"},
    {"key": "shopping", "label": "Shopping", "icon": "🛒", "color": "#f59e0b", "type": "expense"},
    {"key": "education", "label": "Education", "icon": "📚", "color": "#3b82f6", "type": "expense"},
    {"key": "other-expense", "label": "Other", "icon": "💸", "color": "#6b7280", "type": "expense"},
]


def normalize_database_url(value: str) -> str:
    """Accept either a SQLAlchemy URL or a bare path to a SQLite file."""
    if "://" in value:
        return value
    return f"sqlite:///{Path(value).expanduser().resolve()}"


@dataclass
class AppConfig:
    database_url: str = DEFAULT_DATABASE_URL
    secret_key: str = "dev-finance-tracker"
    log_level: str = "INFO"
    default_date_range: DateRange = DateRange.ALL
    categories: List[Dict[str, str]] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))

    @staticmethod
    def load(config_path: Optional[str | Path] = None) -> "AppConfig":
        """Load config from JSON if provided, else use defaults.

        JSON format:
        {
          "database_url": "sqlite:///finance.db",
          "default_date_range": "month",
          "categories": [{"key": "salary", "label": "Salary", "icon": "💰",
                          "color": "#10b981", "type": "income"}]
        }

        ``DATABASE_URL``, ``SECRET_KEY`` and ``LOG_LEVEL`` in the environment
        override whatever the file says.
        """

        cfg = AppConfig()

        if config_path:
            p = Path(config_path)
            if p.exists():
                with p.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    if raw.get("database_url"):
                        cfg.database_url = normalize_database_url(str(raw["database_url"]))
                    if raw.get("log_level"):
                        cfg.log_level = str(raw["log_level"]).upper()
                    if raw.get("default_date_range"):
                        cfg.default_date_range = DateRange(str(raw["default_date_range"]).lower())
                    if isinstance(raw.get("categories"), list):
                        cfg.categories = [
                            {k: str(c[k]) for k in ("key", "label", "icon", "color", "type")}
                            for c in raw["categories"]
                            if isinstance(c, dict) and all(k in c for k in ("key", "label", "icon", "color", "type"))
                        ]

        if os.environ.get("DATABASE_URL"):
            cfg.database_url = normalize_database_url(os.environ["DATABASE_URL"])
        if os.environ.get("SECRET_KEY"):
            cfg.secret_key = os.environ["SECRET_KEY"]
        if os.environ.get("LOG_LEVEL"):
            cfg.log_level = os.environ["LOG_LEVEL"].upper()
        return cfg
