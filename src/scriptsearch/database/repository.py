"""Persistence and query layer for embedded script records.

All list-valued columns go through :mod:`scriptsearch.database.codec`, so
callers only ever see native lists. Every mutating method issues exactly one
writing SQL statement and nothing is cached, so a read always reflects the
latest write.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from scriptsearch.config import get_logger
from scriptsearch.database.codec import (
    decode_strings,
    decode_vector,
    encode_strings,
    encode_vector,
)
from scriptsearch.database.connection import DatabaseConnection
from scriptsearch.database.models import ScriptRecord, StoreStats
from scriptsearch.database.schema import (
    DROP_SCRIPTS_TABLE,
    MUTABLE_COLUMNS,
    SCHEMA_STATEMENTS,
)
from scriptsearch.exceptions import InvalidIdError, StoreError, ValidationError

logger = get_logger(__name__)

REQUIRED_FIELDS = ("name", "path", "category")

_SELECT_COLUMNS = """
    id, name, path, category, description, usage, tags, dependencies,
    embedding_text, embedding, tokens, created_at, updated_at
"""


@contextmanager
def _store_errors(operation: str) -> Generator[None, None, None]:
    """Wrap ``sqlite3`` failures in :class:`StoreError`."""
    try:
        yield
    except sqlite3.Error as e:
        raise StoreError(
            message=f"Store operation '{operation}' failed: {e}",
            details={"operation": operation, "error_type": type(e).__name__},
        ) from e


def _now() -> str:
    """Current UTC time with microseconds, so back-to-back writes differ."""
    return datetime.now(UTC).isoformat(timespec="microseconds")


def _check_id(record_id: Any) -> int:
    if isinstance(record_id, bool) or not isinstance(record_id, int):
        raise InvalidIdError(record_id)
    if record_id <= 0:
        raise InvalidIdError(record_id)
    return record_id


def _check_tokens(tokens: Any) -> None:
    if tokens is None:
        return
    if isinstance(tokens, bool) or not isinstance(tokens, int) or tokens < 0:
        raise ValidationError(
            message="tokens must be a non-negative integer",
            details={"tokens": tokens},
        )


def _row_to_record(row: sqlite3.Row) -> ScriptRecord:
    return ScriptRecord(
        id=row["id"],
        name=row["name"],
        path=row["path"],
        category=row["category"],
        description=row["description"],
        usage=row["usage"],
        tags=decode_strings(row["tags"], "tags"),
        dependencies=decode_strings(row["dependencies"], "dependencies"),
        embedding_text=row["embedding_text"],
        embedding=decode_vector(row["embedding"]),
        tokens=row["tokens"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ScriptRepository:
    """CRUD and query operations over the ``scripts`` table.

    Default ordering for :meth:`list` is ``id ASC``, i.e. insertion order, so
    pagination is deterministic.

    When a record carries a vector, :meth:`create`, :meth:`upsert` and
    :meth:`update` first run a read-only ``SELECT`` to compare its length with
    the stored vectors. The write itself is still a single statement.
    """

    def __init__(self, connection: DatabaseConnection) -> None:
        """Initialize the repository.

        Args:
            connection: Database connection manager for the store
        """
        self.connection = connection

    # Schema

    def initialize_schema(self) -> None:
        """Create the table and index if they do not exist."""
        with _store_errors("initialize_schema"), self.connection.transaction() as conn:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)
        logger.debug("Schema initialized")

    def drop_schema(self) -> None:
        """Drop the table and every record in it."""
        with _store_errors("drop_schema"):
            self.connection.execute(DROP_SCRIPTS_TABLE)
        logger.info("Dropped scripts table")

    # Validation

    def _validate(self, record: ScriptRecord) -> None:
        for field_name in REQUIRED_FIELDS:
            value = getattr(record, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(
                    message=f"{field_name} is required",
                    details={"field": field_name},
                )
        _check_tokens(record.tokens)

    def _check_dimension(
        self,
        embedding: list[float] | None,
        exclude_path: str | None = None,
        exclude_id: int | None = None,
    ) -> None:
        """Reject a vector whose length differs from vectors already stored."""
        if not embedding:
            return
        stored = self._stored_dimension(exclude_path, exclude_id)
        if stored is not None and stored != len(embedding):
            raise ValidationError(
                message="Embedding dimension does not match the store",
                hint="Re-seed with --force after changing the embedding model",
                details={"expected": stored, "actual": len(embedding)},
            )

    def _stored_dimension(
        self, exclude_path: str | None, exclude_id: int | None
    ) -> int | None:
        sql = (
            "SELECT embedding FROM scripts "
            "WHERE embedding IS NOT NULL AND embedding != '[]' "
            "AND path != ? AND id != ? LIMIT 1"
        )
        with _store_errors("stored_dimension"):
            row = self.connection.fetch_one(sql, (exclude_path or "", exclude_id or 0))
        if row is None:
            return None
        vector = decode_vector(row["embedding"])
        return len(vector) if vector else None

    @staticmethod
    def _column_values(record: ScriptRecord) -> tuple[Any, ...]:
        return (
            record.name,
            record.path,
            record.category,
            record.description,
            record.usage,
            encode_strings(record.tags),
            encode_strings(record.dependencies),
            record.embedding_text,
            encode_vector(record.embedding),
            record.tokens,
        )

    # Writes

    def create(self, record: ScriptRecord) -> int:
        """Insert a new record.

        Args:
            record: Record to insert; ``id`` and timestamps are ignored

        Returns:
            The id assigned by the store

        Raises:
            ValidationError: If name, path or category is empty, or the
                embedding does not match the store's dimension
            StoreError: If the insert fails, e.g. on a duplicate path
        """
        self._validate(record)
        self._check_dimension(record.embedding)
        now = _now()
        values = (*self._column_values(record), now, now)

        with _store_errors("create"):
            cursor = self.connection.execute(
                """
                INSERT INTO scripts (
                    name, path, category, description, usage, tags,
                    dependencies, embedding_text, embedding, tokens,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                values,
            )
        record_id = int(cursor.lastrowid or 0)
        logger.debug("Created script record", id=record_id, path=record.path)
        return record_id

    def upsert(self, record: ScriptRecord) -> int:
        """Insert a record or replace the one stored under the same path.

        ``created_at`` of an existing row is preserved; ``updated_at`` is
        refreshed.

        Returns:
            The id of the inserted or updated row
        """
        self._validate(record)
        self._check_dimension(record.embedding, exclude_path=record.path)
        now = _now()
        values = (*self._column_values(record), now, now)

        with _store_errors("upsert"):
            cursor = self.connection.execute(
                """
                INSERT INTO scripts (
                    name, path, category, description, usage, tags,
                    dependencies, embedding_text, embedding, tokens,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    name = excluded.name,
                    category = excluded.category,
                    description = excluded.description,
                    usage = excluded.usage,
                    tags = excluded.tags,
                    dependencies = excluded.dependencies,
                    embedding_text = excluded.embedding_text,
                    embedding = excluded.embedding,
                    tokens = excluded.tokens,
                    updated_at = excluded.updated_at
                RETURNING id
                """,
                values,
            )
            # RETURNING rows must be drained for the write to complete
            rows = cursor.fetchall()
        record_id = int(rows[0][0])
        logger.debug("Upserted script record", id=record_id, path=record.path)
        return record_id

    def update(self, record_id: int, **fields: Any) -> None:
        """Update selected columns of one record.

        Args:
            record_id: Id of the record to change
            **fields: Column values; only mutable columns are accepted

        Raises:
            InvalidIdError: If ``record_id`` is not positive
            ValidationError: On an unknown column or an invalid value
        """
        _check_id(record_id)
        if not fields:
            return

        unknown = sorted(set(fields) - MUTABLE_COLUMNS)
        if unknown:
            raise ValidationError(
                message=f"Cannot update field(s): {', '.join(unknown)}",
                details={"allowed": sorted(MUTABLE_COLUMNS)},
            )
        for field_name in ("name", "category"):
            if field_name in fields:
                value = fields[field_name]
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(
                        message=f"{field_name} is required",
                        details={"field": field_name},
                    )
        if "tokens" in fields:
            _check_tokens(fields["tokens"])
        if "embedding" in fields:
            self._check_dimension(fields["embedding"], exclude_id=record_id)

        assignments = []
        params: list[Any] = []
        for column, value in fields.items():
            if column in ("tags", "dependencies"):
                value = encode_strings(value)
            elif column == "embedding":
                value = encode_vector(value)
            assignments.append(f"{column} = ?")
            params.append(value)
        params.extend([_now(), record_id])

        sql = (
            f"UPDATE scripts SET {', '.join(assignments)}, "  # noqa: S608
            "updated_at = ? WHERE id = ?"
        )
        with _store_errors("update"):
            cursor = self.connection.execute(sql, tuple(params))
        if cursor.rowcount == 0:
            logger.debug("Update matched no record", id=record_id)

    def delete(self, record_id: int) -> None:
        """Delete one record; deleting a missing id is a no-op.

        Raises:
            InvalidIdError: If ``record_id`` is not positive
        """
        _check_id(record_id)
        with _store_errors("delete"):
            self.connection.execute("DELETE FROM scripts WHERE id = ?", (record_id,))
        logger.debug("Deleted script record", id=record_id)

    # Reads

    def get_by_id(self, record_id: int) -> ScriptRecord | None:
        """Fetch a record by id, or ``None`` when absent."""
        _check_id(record_id)
        with _store_errors("get_by_id"):
            row = self.connection.fetch_one(
                f"SELECT {_SELECT_COLUMNS} FROM scripts WHERE id = ?",  # noqa: S608
                (record_id,),
            )
        return _row_to_record(row) if row is not None else None

    def get_by_path(self, path: str) -> ScriptRecord | None:
        """Fetch a record by its path, or ``None`` when absent."""
        with _store_errors("get_by_path"):
            row = self.connection.fetch_one(
                f"SELECT {_SELECT_COLUMNS} FROM scripts WHERE path = ?",  # noqa: S608
                (path,),
            )
        return _row_to_record(row) if row is not None else None

    def list(
        self,
        category: str | None = None,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[ScriptRecord]:
        """List records in insertion order.

        Args:
            category: Only return records in this category
            limit: Maximum number of records; ``None`` returns every row
            offset: Number of records to skip

        Returns:
            Matching records ordered by ``id ASC``

        Raises:
            ValidationError: If ``limit`` is not positive or ``offset`` is
                negative
        """
        if limit is not None and limit <= 0:
            raise ValidationError(
                message="limit must be positive", details={"limit": limit}
            )
        if offset < 0:
            raise ValidationError(
                message="offset must not be negative", details={"offset": offset}
            )

        sql = f"SELECT {_SELECT_COLUMNS} FROM scripts"  # noqa: S608
        params: list[Any] = []
        if category is not None:
            sql += " WHERE category = ?"
            params.append(category)
        # SQLite treats a negative LIMIT as unbounded
        sql += " ORDER BY id ASC LIMIT ? OFFSET ?"
        params.extend([limit if limit is not None else -1, offset])

        with _store_errors("list"):
            rows = self.connection.fetch_all(sql, tuple(params))
        return [_row_to_record(row) for row in rows]

    def count(self, category: str | None = None) -> int:
        """Count records, optionally within one category."""
        sql = "SELECT COUNT(*) FROM scripts"
        params: tuple[Any, ...] = ()
        if category is not None:
            sql += " WHERE category = ?"
            params = (category,)
        with _store_errors("count"):
            row = self.connection.fetch_one(sql, params)
        return int(row[0]) if row is not None else 0

    def list_categories(self) -> list[str]:
        """Return the distinct categories in ascending order."""
        with _store_errors("list_categories"):
            rows = self.connection.fetch_all(
                "SELECT DISTINCT category FROM scripts ORDER BY category ASC"
            )
        return [row["category"] for row in rows]

    def stats(self) -> StoreStats:
        """Compute aggregate statistics over the store."""
        with _store_errors("stats"):
            totals = self.connection.fetch_one(
                """
                SELECT
                    COUNT(*) AS total_scripts,
                    COUNT(DISTINCT category) AS total_categories,
                    AVG(tokens) AS avg_tokens,
                    SUM(tokens) AS total_tokens
                FROM scripts
                """
            )
            per_category = self.connection.fetch_all(
                """
                SELECT category, COUNT(*) AS n
                FROM scripts
                GROUP BY category
                ORDER BY category ASC
                """
            )

        if totals is None:
            return StoreStats()
        return StoreStats(
            total_scripts=int(totals["total_scripts"] or 0),
            total_categories=int(totals["total_categories"] or 0),
            avg_tokens=float(totals["avg_tokens"] or 0.0),
            total_tokens=int(totals["total_tokens"] or 0),
            categories={row["category"]: int(row["n"]) for row in per_category},
        )
