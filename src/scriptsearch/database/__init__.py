"""SQLite persistence for embedded script records."""

from scriptsearch.database.connection import DatabaseConnection
from scriptsearch.database.models import ScriptRecord, StoreStats
from scriptsearch.database.repository import ScriptRepository

__all__ = [
    "DatabaseConnection",
    "ScriptRecord",
    "ScriptRepository",
    "StoreStats",
]
