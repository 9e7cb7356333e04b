"""Record types stored in and returned by the script repository."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ScriptRecord:
    """A script and its embedding as stored in the ``scripts`` table.

    ``path`` is the natural key; re-seeding the same path replaces the row.
    ``embedding`` is ``None`` for a record that was never embedded, which is
    distinct from an explicit zero vector.

    Example:
        >>> record = ScriptRecord(
        ...     name="fix-audio",
        ...     path="/opt/scripts/audio/fix-audio.ts",
        ...     category="audio",
        ...     tags=["audio", "pipewire"],
        ... )
    """

    name: str
    path: str
    category: str
    description: str | None = None
    usage: str | None = None
    tags: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    embedding_text: str | None = None
    embedding: list[float] | None = None
    tokens: int | None = None
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def has_embedding(self) -> bool:
        """Whether the record carries a non-empty vector."""
        return bool(self.embedding)


@dataclass
class StoreStats:
    """Aggregate figures over the whole store."""

    total_scripts: int = 0
    total_categories: int = 0
    avg_tokens: float = 0.0
    total_tokens: int = 0
    categories: dict[str, int] = field(default_factory=dict)
