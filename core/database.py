"""
Database Module - SQLite-backed per-device key/value store
==========================================================

The guest client keeps a small amount of state on the device it runs on,
the way a browser keeps it in local storage:
- The bar open/closed flag toggled in host mode
- Any other client preference keyed by a namespaced string
"""

import sqlite3
import json
from pathlib import Path
from typing import Any
from contextlib import contextmanager
import threading

from .exceptions import ClientError
from .logging import get_logger

logger = get_logger("core.database")


class LocalStore:
    """
    SQLite key/value store for per-device client state.

    Values are JSON-serialised, so booleans round-trip as booleans.
    Last write wins; there is no cross-device synchronisation.

    Attributes:
        db_path (str): Path to SQLite database file
    """

    def __init__(self, db_path: str):
        """
        Open (and create if needed) the store.

        Args:
            db_path: Path to SQLite database file

        Raises:
            ClientError: If the store cannot be initialized
        """
        self.db_path = db_path
        self._local = threading.local()

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self):
        """
        Context manager for database transactions.

        Provides automatic commit on success and rollback on error.

        Yields:
            sqlite3.Connection: Database connection
        """
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise ClientError(f"Local store transaction failed: {e}", {"path": self.db_path})

    def _init_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a stored value.

        Args:
            key: Setting key
            default: Returned when the key is absent

        Returns:
            Decoded value, or ``default``
        """
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?", (key,)
            ).fetchone()

        if row is None:
            return default

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            return row["value"]

    def set(self, key: str, value: Any) -> None:
        """
        Store a value, replacing any previous one.

        Args:
            key: Setting key
            value: JSON-serialisable value
        """
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, json.dumps(value))
            )
        logger.debug(f"Stored {key}")

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (key,))

    def close(self) -> None:
        """Close database connection for current thread."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None


def init_store(db_path: str) -> LocalStore:
    """
    Initialize and return a local store instance.

    Args:
        db_path: Path to SQLite database file

    Returns:
        LocalStore instance
    """
    return LocalStore(db_path)
