"""Embedding generation with retry, backoff and batching."""

from scriptsearch.embeddings.generator import (
    EmbeddingConfig,
    EmbeddingGenerator,
    apportion_tokens,
)
from scriptsearch.embeddings.models import EmbeddingResult
from scriptsearch.embeddings.retry import RetryStrategy

__all__ = [
    "EmbeddingConfig",
    "EmbeddingGenerator",
    "EmbeddingResult",
    "RetryStrategy",
    "apportion_tokens",
]
