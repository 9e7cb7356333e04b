"""Data types produced while seeding the store."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ScriptMetadata:
    """Metadata derived from one script file before it is embedded."""

    name: str
    path: str
    category: str
    description: str = ""
    usage: str = ""
    tags: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    @property
    def embedding_text(self) -> str:
        """Text sent to the embedding provider.

        The description when there is one, otherwise the script name.
        """
        description = self.description.strip()
        return description if description else self.name


@dataclass(frozen=True)
class SeedingFailure:
    """A file that could not be indexed, with the reason."""

    path: str
    error: str


@dataclass
class SeedingOutcome:
    """Counters and statistics for one seeding run.

    ``processed`` counts every discovered file, ``inserted`` every successful
    upsert and ``updated`` the subset of those that replaced an existing row.
    """

    processed: int = 0
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    failures: list[SeedingFailure] = field(default_factory=list)
    duration_seconds: float = 0.0
    categories: dict[str, int] = field(default_factory=dict)
    total_tokens: int = 0

    def record_failure(self, path: str, error: BaseException | str) -> None:
        """Count a failed file and remember why it failed."""
        self.failed += 1
        message = error if isinstance(error, str) else _describe(error)
        self.failures.append(SeedingFailure(path=path, error=message))

    def record_success(self, category: str, tokens: int, replaced: bool) -> None:
        """Count a stored file."""
        self.inserted += 1
        if replaced:
            self.updated += 1
        self.categories[category] = self.categories.get(category, 0) + 1
        self.total_tokens += tokens

    @property
    def succeeded(self) -> bool:
        """Whether every processed file was stored."""
        return self.failed == 0


def _describe(error: BaseException) -> str:
    message = getattr(error, "message", None) or str(error)
    return message or type(error).__name__
