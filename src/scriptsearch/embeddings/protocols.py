"""Protocol definitions for embedding consumers."""

from collections.abc import Sequence
from typing import Protocol

from scriptsearch.embeddings.models import EmbeddingResult


class Embedder(Protocol):
    """Interface search and seeding need from an embedding generator.

    :class:`~scriptsearch.embeddings.generator.EmbeddingGenerator` satisfies
    it; tests substitute fakes.

    Example:
        >>> class FixedEmbedder:
        ...     async def generate_embedding(self, text: str) -> EmbeddingResult:
        ...         return EmbeddingResult(embedding=[1.0, 0.0], tokens=1)
        ...
        ...     async def generate_batch(self, texts):
        ...         return [await self.generate_embedding(t) for t in texts]
    """

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Embed one non-empty text."""
        ...

    async def generate_batch(self, texts: Sequence[str]) -> list[EmbeddingResult]:
        """Embed texts in one request, preserving order."""
        ...
