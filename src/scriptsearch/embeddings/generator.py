"""Embedding generation through an OpenAI-compatible embeddings API."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import httpx

from scriptsearch.config import get_logger
from scriptsearch.config.settings import (
    DEFAULT_EMBEDDING_API_URL,
    ScriptSearchSettings,
)
from scriptsearch.embeddings.models import (
    EmbeddingResponse,
    EmbeddingResult,
    ProviderFailure,
    parse_response,
)
from scriptsearch.embeddings.retry import RetryStrategy, Sleep
from scriptsearch.exceptions import (
    ConfigurationError,
    EmptyInputError,
    ResponseShapeError,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class EmbeddingConfig:
    """Provider configuration injected into :class:`EmbeddingGenerator`.

    Raises:
        ConfigurationError: If a required value is missing or out of range
    """

    api_key: str
    model: str
    dimensions: int | None = None
    api_url: str = DEFAULT_EMBEDDING_API_URL
    timeout: float = 30.0
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(
                message="Embedding API key is required",
                hint="Set OPENAI_API_KEY in the environment or .env file",
            )
        if not self.model or not self.model.strip():
            raise ConfigurationError(
                message="Embedding model is required",
                hint="Set EMBEDDING_MODEL, e.g. text-embedding-3-small",
            )
        if self.dimensions is not None and self.dimensions <= 0:
            raise ConfigurationError(
                message="Embedding dimensions must be a positive integer",
                details={"dimensions": self.dimensions},
            )
        if self.max_attempts < 1:
            raise ConfigurationError(
                message="max_attempts must be at least 1",
                details={"max_attempts": self.max_attempts},
            )
        if self.timeout <= 0:
            raise ConfigurationError(
                message="timeout must be positive",
                details={"timeout": self.timeout},
            )

    @classmethod
    def from_settings(cls, settings: ScriptSearchSettings) -> EmbeddingConfig:
        """Build the config from application settings.

        Raises:
            ConfigurationError: If the API key or model is not configured
        """
        settings.require_embedding_credentials()
        return cls(
            api_key=settings.openai_api_key or "",
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            api_url=settings.embedding_api_url,
            timeout=settings.embedding_timeout,
            max_attempts=settings.embedding_max_attempts,
            base_delay=settings.embedding_retry_base_delay,
        )

    def __repr__(self) -> str:
        return (
            f"EmbeddingConfig(model={self.model!r}, dimensions={self.dimensions!r}, "
            f"api_url={self.api_url!r})"
        )


def apportion_tokens(total: int, count: int) -> list[int]:
    """Split a batch's token usage across its items.

    Each item gets ``total // count``; the first ``total % count`` items get
    one more, so the shares always sum to ``total``.
    """
    if count <= 0:
        return []
    share, remainder = divmod(max(total, 0), count)
    return [share + 1 if i < remainder else share for i in range(count)]


class EmbeddingGenerator:
    """Turns text into embedding vectors.

    Each call issues one ``POST {api_url}/embeddings`` per attempt; a batch
    sends every text in one request. Transient failures (HTTP 429, 5xx and
    transport errors) are retried with exponential backoff.

    Example:
        >>> config = EmbeddingConfig(api_key="sk-...", model="text-embedding-3-small")
        >>> async with EmbeddingGenerator(config) as generator:
        ...     result = await generator.generate_embedding("restart pipewire")
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the generator.

        Args:
            config: Provider configuration
            client: HTTP client to use; one is created and owned when omitted
            sleep: Awaitable used for backoff delays
        """
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout)
        )
        self._retry = RetryStrategy(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
            sleep=sleep,
        )

    @property
    def endpoint(self) -> str:
        """Full URL of the embeddings endpoint."""
        return f"{self.config.api_url.rstrip('/')}/embeddings"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, texts: str | list[str]) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": self.config.model, "input": texts}
        if self.config.dimensions:
            payload["dimensions"] = self.config.dimensions
        return payload

    async def _attempt(
        self, payload: dict[str, Any]
    ) -> EmbeddingResponse | ProviderFailure:
        """One HTTP round trip, converted to a tagged result."""
        try:
            response = await self._client.post(
                self.endpoint,
                headers=self._headers(),
                json=payload,
                timeout=self.config.timeout,
            )
        except httpx.RequestError as e:
            # Decoding and redirect errors repeat on every attempt
            return ProviderFailure(
                message=f"{type(e).__name__}: {e}",
                status_code=None,
                retryable=isinstance(e, httpx.TransportError),
            )
        return parse_response(response)

    @staticmethod
    def _check_text(text: Any) -> None:
        if not isinstance(text, str) or not text.strip():
            raise EmptyInputError()

    def _to_results(
        self, response: EmbeddingResponse, expected: int
    ) -> list[EmbeddingResult]:
        """Validate a response and split it into per-input results.

        Raises:
            ResponseShapeError: If the vector count or any dimension is wrong
        """
        items = response.ordered()
        if len(items) != expected:
            raise ResponseShapeError(
                message="Embedding provider returned the wrong number of vectors",
                details={"expected": expected, "received": len(items)},
            )

        dimensions = self.config.dimensions
        for item in items:
            if dimensions is not None and len(item.embedding) != dimensions:
                raise ResponseShapeError(
                    message="Embedding provider returned an unexpected dimension",
                    hint="Check that EMBEDDING_DIMENSIONS is supported by the model",
                    details={"expected": dimensions, "received": len(item.embedding)},
                )

        model = response.model or self.config.model
        tokens = apportion_tokens(response.usage.total_tokens, expected)
        return [
            EmbeddingResult(embedding=list(item.embedding), tokens=share, model=model)
            for item, share in zip(items, tokens, strict=True)
        ]

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Embed a single text.

        Args:
            text: Non-empty text to embed

        Returns:
            The vector, the billed tokens and the model that produced it

        Raises:
            EmptyInputError: If ``text`` is empty or blank
            ProviderError: If the provider call fails
        """
        self._check_text(text)
        response = await self._retry.execute(
            lambda: self._attempt(self._payload(text)), "embed"
        )
        result = self._to_results(response, expected=1)[0]
        logger.debug(
            "Generated embedding",
            model=result.model,
            tokens=result.tokens,
            dimensions=result.dimensions,
        )
        return result

    async def generate_batch(self, texts: Sequence[str]) -> list[EmbeddingResult]:
        """Embed several texts in one request.

        Args:
            texts: Texts to embed; results come back in the same order

        Returns:
            One result per input; an empty input returns ``[]`` without any
            network call

        Raises:
            EmptyInputError: If any text is empty or blank
            ProviderError: If the provider call fails
        """
        batch = list(texts)
        if not batch:
            return []
        for text in batch:
            self._check_text(text)

        response = await self._retry.execute(
            lambda: self._attempt(self._payload(batch)), "embed_batch"
        )
        results = self._to_results(response, expected=len(batch))
        logger.debug(
            "Generated batch embeddings",
            count=len(results),
            tokens=response.usage.total_tokens,
            model=results[0].model,
        )
        return results

    async def aclose(self) -> None:
        """Close the HTTP client if this generator created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> EmbeddingGenerator:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
