"""Database connection management using raw sqlite3."""

from __future__ import annotations

import functools
import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generator, Optional, TypeVar

from mealtrack.db.schema import get_schema_sql
from mealtrack.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_MESSAGES = ("database is locked", "database is busy", "database table is locked")


def _is_transient(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return any(m in message for m in _TRANSIENT_MESSAGES)


class DatabaseConnection:
    """Manages SQLite database connections."""

    def __init__(self, db_path: Path, busy_timeout: float = 5.0):
        """Initialize database connection manager.

        Args:
            db_path: Path to the SQLite database file
            busy_timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Create parent directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for one transaction.

        Commits on success and rolls back on any exception. Lock contention
        is re-raised as TransientStoreError.

        Yields:
            sqlite3.Connection with Row factory enabled

        Example:
            with db.get_connection() as conn:
                cursor = conn.execute("SELECT * FROM foods")
                rows = cursor.fetchall()
        """
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            if _is_transient(e):
                raise TransientStoreError(str(e)) from e
            raise
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize_schema(self) -> None:
        """Create all tables if they don't exist."""
        with self.get_connection() as conn:
            conn.executescript(get_schema_sql())

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the database.

        Args:
            table_name: Name of the table to check

        Returns:
            True if table exists
        """
        query = """
            SELECT name FROM sqlite_master
            WHERE type='table' AND name=?
        """
        with self.get_connection() as conn:
            cursor = conn.execute(query, (table_name,))
            return cursor.fetchone() is not None

    def get_table_count(self, table_name: str) -> int:
        """Get the number of rows in a table.

        Args:
            table_name: Name of the table

        Returns:
            Row count
        """
        # table_name is validated by checking it exists first
        if not self.table_exists(table_name):
            return 0
        with self.get_connection() as conn:
            cursor = conn.execute(f"SELECT COUNT(*) FROM {table_name}")
            result = cursor.fetchone()
            return result[0] if result else 0


def retry_transient(
    func: Callable[[], T],
    attempts: int = 3,
    backoff: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a read-only callable, retrying TransientStoreError.

    Only use for reads; mutations are never retried implicitly.

    Args:
        func: Zero-argument callable performing the read
        attempts: Total number of tries (at least 1)
        backoff: Initial delay in seconds, doubled after each failure
        sleep: Sleep function (injectable for tests)

    Returns:
        Whatever func returns
    """
    attempts = max(1, attempts)
    delay = backoff
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except TransientStoreError:
            if attempt == attempts:
                raise
            logger.warning(
                "Store busy, retrying read (attempt %d/%d) in %.2fs",
                attempt, attempts, delay,
            )
            sleep(delay)
            delay *= 2
    raise AssertionError("unreachable")


def read_with_retry(method: Callable[..., T]) -> Callable[..., T]:
    """Decorator for service methods whose instance has `db` and `settings`."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        store = self.settings.store
        return retry_transient(
            lambda: method(self, *args, **kwargs),
            attempts=store.read_retries,
            backoff=store.retry_backoff_seconds,
        )

    return wrapper


# Global database instance (lazy loaded)
_db: Optional[DatabaseConnection] = None


def get_db() -> DatabaseConnection:
    """Get the global database instance.

    Lazily initializes the database connection using settings.

    Returns:
        DatabaseConnection instance
    """
    global _db
    if _db is None:
        from mealtrack.config import get_settings

        settings = get_settings()
        _db = DatabaseConnection(
            settings.database.path, busy_timeout=settings.store.busy_timeout_seconds
        )
    return _db


def set_db(db: Optional[DatabaseConnection]) -> None:
    """Set the global database instance.

    Useful for testing with a custom database.

    Args:
        db: DatabaseConnection instance to use, or None to reset
    """
    global _db
    _db = db
