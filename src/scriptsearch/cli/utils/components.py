"""Store wiring shared by CLI commands."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from scriptsearch.config import ScriptSearchSettings
from scriptsearch.database.connection import DatabaseConnection
from scriptsearch.database.repository import ScriptRepository


@contextmanager
def open_repository(
    settings: ScriptSearchSettings,
) -> Generator[ScriptRepository, None, None]:
    """Open the configured store with its schema in place.

    The connection is closed when the block exits.
    """
    connection = DatabaseConnection(
        settings.database_path, timeout=settings.database_timeout
    )
    try:
        repository = ScriptRepository(connection)
        repository.initialize_schema()
        yield repository
    finally:
        connection.close()
