"""Populate the script store from a directory tree.

Discovery, metadata extraction, batched embedding and upserts keyed by path.
Failures are contained per file: a bad file is recorded in the outcome and the
run carries on with the rest of the tree.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Protocol

from scriptsearch.config import get_logger
from scriptsearch.database.models import ScriptRecord, StoreStats
from scriptsearch.database.repository import ScriptRepository
from scriptsearch.embeddings.models import EmbeddingResult
from scriptsearch.embeddings.protocols import Embedder
from scriptsearch.exceptions import (
    ProviderError,
    ResponseShapeError,
    ScriptSearchError,
    ValidationError,
)
from scriptsearch.seeding.analyzer import ScriptAnalyzer
from scriptsearch.seeding.models import ScriptMetadata, SeedingOutcome

logger = get_logger(__name__)

DEFAULT_EXTENSIONS = (".ts", ".py", ".sh")
DEFAULT_BATCH_SIZE = 16
SKIPPED_DIRECTORIES = frozenset({"node_modules", "__pycache__"})

# Errors contained at file granularity; anything else propagates
FILE_ERRORS = (ScriptSearchError, OSError, UnicodeDecodeError)

# Statuses that blame the request body rather than the key, model or provider
INPUT_REJECTED_STATUSES = frozenset({400, 413, 422})

ProgressCallback = Callable[[int, int], None]


def _input_rejected(error: ScriptSearchError) -> bool:
    """Whether a failed batch can be blamed on one of its inputs.

    Outages, rate limits, bad credentials and unknown models fail every
    request alike, so retrying the files one at a time would only repeat the
    failure.
    """
    if isinstance(error, ResponseShapeError):
        return True
    if not isinstance(error, ProviderError):
        return True
    if error.retryable:
        return False
    return error.status_code in INPUT_REJECTED_STATUSES


class MetadataExtractor(Protocol):
    """Anything that can turn a script file into metadata."""

    def analyze(
        self, path: str | Path, root: str | Path | None = None
    ) -> ScriptMetadata:
        """Derive metadata for one script."""
        ...


class DatabaseSeeder:
    """(Re)populates the store from a directory of scripts.

    Re-running on an unchanged tree keeps the row count and path set; only
    ``updated_at`` moves.
    """

    def __init__(
        self,
        repository: ScriptRepository,
        embedder: Embedder,
        analyzer: MetadataExtractor | None = None,
        on_progress: ProgressCallback | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        """Initialize the seeder.

        Args:
            repository: Store to write to
            embedder: Generator used for embedding texts
            analyzer: Metadata extractor; defaults to :class:`ScriptAnalyzer`
            on_progress: Called with ``(current, total)`` as each file finishes
            batch_size: Number of texts submitted per provider request
            extensions: File suffixes treated as scripts

        Raises:
            ValidationError: If ``batch_size`` is not positive
        """
        if batch_size <= 0:
            raise ValidationError(
                message="batch_size must be positive",
                details={"batch_size": batch_size},
            )
        self.repository = repository
        self.embedder = embedder
        self.analyzer = analyzer or ScriptAnalyzer()
        self.on_progress = on_progress
        self.batch_size = batch_size
        self.extensions = frozenset(ext.lower() for ext in extensions)

    def initialize_schema(self) -> None:
        """Create the store schema if needed."""
        self.repository.initialize_schema()

    def reset_schema(self) -> None:
        """Drop every record and recreate the schema."""
        self.repository.drop_schema()
        self.repository.initialize_schema()

    def discover_scripts(self, root_dir: str | Path) -> list[Path]:
        """Find every script below ``root_dir``.

        Hidden directories and dependency folders are skipped. The result is
        sorted, but callers should not depend on the order.

        Raises:
            ValidationError: If ``root_dir`` is not an existing directory
        """
        root = Path(root_dir).expanduser()
        if not root.is_dir():
            raise ValidationError(
                message=f"Scripts directory not found: {root}",
                hint="Pass an existing directory with --directory",
                details={"directory": str(root)},
            )

        found: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = [
                d
                for d in dirnames
                if not d.startswith(".") and d not in SKIPPED_DIRECTORIES
            ]
            for filename in filenames:
                if filename.startswith("."):
                    continue
                if Path(filename).suffix.lower() in self.extensions:
                    found.append((Path(dirpath) / filename).resolve())

        found.sort()
        logger.debug("Discovered scripts", root=str(root), count=len(found))
        return found

    def get_stats(self) -> StoreStats:
        """Aggregate statistics of the store."""
        return self.repository.stats()

    async def seed_scripts(self, root_dir: str | Path) -> SeedingOutcome:
        """Index every script below ``root_dir``.

        Args:
            root_dir: Directory to scan

        Returns:
            Counters, failures and statistics for the run

        Raises:
            ValidationError: If ``root_dir`` does not exist
        """
        start = time.perf_counter()
        root = Path(root_dir).expanduser().resolve()
        files = self.discover_scripts(root)
        total = len(files)
        outcome = SeedingOutcome()

        logger.info("Seeding started", root=str(root), files=total)

        pending: list[ScriptMetadata] = []
        for path in files:
            try:
                metadata = self.analyzer.analyze(path, root)
            except FILE_ERRORS as e:
                self._fail(outcome, str(path), e, total)
                continue

            pending.append(metadata)
            if len(pending) >= self.batch_size:
                await self._process_batch(pending, outcome, total)
                pending = []

        if pending:
            await self._process_batch(pending, outcome, total)

        outcome.duration_seconds = time.perf_counter() - start
        logger.info(
            "Seeding complete",
            processed=outcome.processed,
            inserted=outcome.inserted,
            updated=outcome.updated,
            failed=outcome.failed,
            total_tokens=outcome.total_tokens,
            duration_seconds=round(outcome.duration_seconds, 3),
        )
        return outcome

    async def _process_batch(
        self, batch: Sequence[ScriptMetadata], outcome: SeedingOutcome, total: int
    ) -> None:
        """Embed one batch and store each result."""
        texts = [metadata.embedding_text for metadata in batch]
        try:
            results = await self.embedder.generate_batch(texts)
        except ScriptSearchError as e:
            if not _input_rejected(e):
                logger.warning(
                    "Batch embedding failed; marking batch as failed",
                    size=len(batch),
                    error=e.message,
                    status_code=getattr(e, "status_code", None),
                )
                for metadata in batch:
                    self._fail(outcome, metadata.path, e, total)
                return
            # One bad input rejects the whole request, so find it file by file
            logger.warning(
                "Batch embedding rejected; retrying files individually",
                size=len(batch),
                error=e.message,
            )
            await self._process_individually(batch, outcome, total)
            return

        for metadata, result in zip(batch, results, strict=True):
            self._store(metadata, result, outcome, total)

    async def _process_individually(
        self, batch: Sequence[ScriptMetadata], outcome: SeedingOutcome, total: int
    ) -> None:
        for metadata in batch:
            try:
                result = await self.embedder.generate_embedding(metadata.embedding_text)
            except ScriptSearchError as e:
                self._fail(outcome, metadata.path, e, total)
                continue
            self._store(metadata, result, outcome, total)

    def _store(
        self,
        metadata: ScriptMetadata,
        result: EmbeddingResult,
        outcome: SeedingOutcome,
        total: int,
    ) -> None:
        record = ScriptRecord(
            name=metadata.name,
            path=metadata.path,
            category=metadata.category,
            description=metadata.description or None,
            usage=metadata.usage or None,
            tags=list(metadata.tags),
            dependencies=list(metadata.dependencies),
            embedding_text=metadata.embedding_text,
            embedding=list(result.embedding),
            tokens=result.tokens,
        )
        try:
            replaced = self.repository.get_by_path(record.path) is not None
            self.repository.upsert(record)
        except ScriptSearchError as e:
            self._fail(outcome, metadata.path, e, total)
            return

        outcome.record_success(metadata.category, result.tokens, replaced)
        self._advance(outcome, total)

    def _fail(
        self, outcome: SeedingOutcome, path: str, error: BaseException, total: int
    ) -> None:
        logger.warning(
            "Failed to index script",
            path=path,
            error=str(getattr(error, "message", error)),
            error_type=type(error).__name__,
        )
        outcome.record_failure(path, error)
        self._advance(outcome, total)

    def _advance(self, outcome: SeedingOutcome, total: int) -> None:
        outcome.processed += 1
        if self.on_progress is not None:
            self.on_progress(outcome.processed, total)
