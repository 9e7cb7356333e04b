"""Brute-force vector search over the script store.

Every query scores the whole (optionally category-filtered) candidate set,
O(n·d) per call with no cached index. That is fine for a few thousand scripts;
larger catalogs would need an approximate nearest-neighbour index.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from scriptsearch.config import get_logger
from scriptsearch.database.repository import ScriptRepository
from scriptsearch.embeddings.protocols import Embedder
from scriptsearch.exceptions import InvalidQueryError, InvalidTopNError
from scriptsearch.search.models import SearchResult

logger = get_logger(__name__)


def cosine_similarity(
    vec1: Sequence[float] | np.ndarray, vec2: Sequence[float] | np.ndarray
) -> float:
    """Calculate cosine similarity between two vectors.

    Args:
        vec1: First vector
        vec2: Second vector

    Returns:
        Similarity in ``[-1, 1]``; exactly ``0.0`` when either vector has zero
        magnitude

    Raises:
        ValueError: If the vectors have different dimensions
    """
    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)

    if a.shape != b.shape:
        raise ValueError(f"Vector dimension mismatch: {a.shape} vs {b.shape}")

    with np.errstate(over="ignore", invalid="ignore"):
        norm_a = np.linalg.norm(a)
        norm_b = np.linalg.norm(b)
        if norm_a == 0 or norm_b == 0:
            return 0.0
        similarity = float(np.dot(a, b) / (norm_a * norm_b))

    if not np.isfinite(similarity):
        # Norms or the dot product overflowed float64
        return 0.0
    # Rounding can push |similarity| slightly past 1
    return max(-1.0, min(1.0, similarity))


class VectorSearch:
    """Answers "which scripts are similar to this query"."""

    cosine_similarity = staticmethod(cosine_similarity)

    def __init__(self, embedder: Embedder, repository: ScriptRepository) -> None:
        """Initialize vector search.

        Args:
            embedder: Generator used to embed the query
            repository: Store holding the candidate records
        """
        self.embedder = embedder
        self.repository = repository

    async def search(
        self,
        query: str,
        top_n: int = 10,
        category: str | None = None,
        min_similarity: float | None = None,
    ) -> list[SearchResult]:
        """Rank stored scripts by similarity to ``query``.

        Args:
            query: Natural-language description of the wanted script
            top_n: Maximum number of results
            category: Only consider scripts in this category
            min_similarity: Drop results scoring below this value

        Returns:
            Results ordered by descending similarity; equal scores keep the
            store's order

        Raises:
            InvalidQueryError: If ``query`` is empty or blank
            InvalidTopNError: If ``top_n`` is not positive
            ProviderError: If embedding the query fails
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidQueryError()
        if isinstance(top_n, bool) or not isinstance(top_n, int) or top_n <= 0:
            raise InvalidTopNError(top_n)

        query_embedding = await self.embedder.generate_embedding(query)
        query_vector = np.asarray(query_embedding.embedding, dtype=np.float64)

        candidates = self.repository.list(category=category, limit=None)

        results: list[SearchResult] = []
        skipped = 0
        for record in candidates:
            if not record.has_embedding:
                continue
            if len(record.embedding) != query_vector.shape[0]:
                skipped += 1
                continue

            similarity = cosine_similarity(query_vector, record.embedding)
            if min_similarity is not None and similarity < min_similarity:
                continue
            results.append(SearchResult(script=record, similarity=similarity))

        if skipped:
            logger.warning(
                "Skipped records with mismatched embedding dimension",
                skipped=skipped,
                expected=int(query_vector.shape[0]),
            )

        # list.sort is stable, so ties keep repository order
        results.sort(key=lambda result: result.similarity, reverse=True)

        logger.debug(
            "Vector search complete",
            candidates=len(candidates),
            matched=len(results),
            returned=min(len(results), top_n),
            category=category,
        )
        return results[:top_n]
