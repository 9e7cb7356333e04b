"""Search result types."""

from __future__ import annotations

from dataclasses import dataclass

from scriptsearch.database.models import ScriptRecord


@dataclass(frozen=True)
class SearchResult:
    """A stored script scored against a query.

    Attributes:
        script: The matching record
        similarity: Cosine similarity in ``[-1, 1]``
    """

    script: ScriptRecord
    similarity: float
