"""SQLite store for templates, schedules, consumption and goals."""

from mealtrack.db.connection import DatabaseConnection, get_db, set_db

__all__ = ["DatabaseConnection", "get_db", "set_db"]
