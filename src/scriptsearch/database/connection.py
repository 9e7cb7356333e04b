"""SQLite connection management for scriptsearch."""

from __future__ import annotations

import os
import platform
import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, cast

from scriptsearch.config import get_logger

logger = get_logger(__name__)

MEMORY_DATABASE = ":memory:"


class DatabaseConnection:
    """Manages SQLite connections for the script store.

    One connection is opened lazily per thread and kept until :meth:`close`.
    Connections run in autocommit mode; :meth:`transaction` wraps a block in an
    explicit ``BEGIN``/``COMMIT``.
    """

    def __init__(self, db_path: str | Path, **kwargs: Any) -> None:
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file, or ``":memory:"``
            **kwargs: Additional connection parameters (``timeout``)
        """
        self.db_path = db_path if db_path == MEMORY_DATABASE else Path(db_path)
        self.connection_params = {
            "timeout": kwargs.get("timeout", 30.0),
            "check_same_thread": kwargs.get("check_same_thread", False),
            "isolation_level": None,
        }
        self._local = threading.local()

    @property
    def is_memory(self) -> bool:
        """Whether this store lives only in memory."""
        return self.db_path == MEMORY_DATABASE

    def _get_connection(self) -> sqlite3.Connection:
        """Get the thread-local connection, opening it on first use."""
        if getattr(self._local, "connection", None) is None:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), **self.connection_params)
            self._configure_connection(conn)
            self._local.connection = conn
            logger.debug("Opened database connection", db_path=str(self.db_path))

        return cast(sqlite3.Connection, self._local.connection)

    def _configure_connection(self, conn: sqlite3.Connection) -> None:
        """Apply PRAGMAs and the row factory to a fresh connection."""
        conn.execute("PRAGMA foreign_keys = ON")

        # WAL keeps readers unblocked; tests and Windows use DELETE to avoid locks
        if (
            self.is_memory
            or os.environ.get("PYTEST_CURRENT_TEST")
            or platform.system() == "Windows"
        ):
            conn.execute("PRAGMA journal_mode = DELETE")
        else:
            conn.execute("PRAGMA journal_mode = WAL")

        conn.execute("PRAGMA synchronous = NORMAL")
        conn.execute("PRAGMA temp_store = MEMORY")

        conn.row_factory = sqlite3.Row

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection in a context manager.

        Yields:
            SQLite connection object

        Example:
            with db_conn.get_connection() as conn:
                rows = conn.execute("SELECT * FROM scripts").fetchall()
        """
        conn = self._get_connection()
        try:
            yield conn
        except Exception as e:
            logger.error("Database operation failed", error=str(e))
            if conn.in_transaction:
                conn.rollback()
            raise

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block inside one transaction, rolling back on any error.

        Yields:
            SQLite connection object in transaction mode
        """
        conn = self._get_connection()
        conn.execute("BEGIN")
        try:
            yield conn
            conn.commit()
        except Exception as e:
            logger.error("Transaction failed, rolling back", error=str(e))
            conn.rollback()
            raise

    def execute(
        self, sql: str, parameters: tuple | dict | None = None
    ) -> sqlite3.Cursor:
        """Execute a single SQL statement.

        Args:
            sql: SQL statement to execute
            parameters: Parameters for the SQL statement

        Returns:
            Cursor object with query results
        """
        with self.get_connection() as conn:
            if parameters is None:
                return conn.execute(sql)
            return conn.execute(sql, parameters)

    def fetch_one(
        self, sql: str, parameters: tuple | dict | None = None
    ) -> sqlite3.Row | None:
        """Execute query and fetch one result."""
        cursor = self.execute(sql, parameters)
        return cast(sqlite3.Row | None, cursor.fetchone())

    def fetch_all(
        self, sql: str, parameters: tuple | dict | None = None
    ) -> list[sqlite3.Row]:
        """Execute query and fetch all results."""
        cursor = self.execute(sql, parameters)
        return cursor.fetchall()

    def close(self) -> None:
        """Close the connection held by the calling thread, if any."""
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None
            logger.debug("Closed database connection", db_path=str(self.db_path))

    def __enter__(self) -> DatabaseConnection:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
