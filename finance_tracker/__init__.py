"""Personal Finance Tracker package."""

__all__ = [
    "config",
    "domain",
    "validation",
    "filters",
    "analytics",
    "models",
    "storage",
    "db",
    "reports",
    "webapp",
    "cli",
]

__version__ = "0.1.0"
