"""Similarity search over embedded scripts."""

from scriptsearch.search.formatter import ResultFormatter
from scriptsearch.search.models import SearchResult
from scriptsearch.search.vector import VectorSearch, cosine_similarity

__all__ = ["ResultFormatter", "SearchResult", "VectorSearch", "cosine_similarity"]
