"""Embedding provider wire models and results.

Provider responses are parsed at the HTTP boundary into either an
:class:`EmbeddingResponse` or a :class:`ProviderFailure`; raw JSON never
travels further than :func:`parse_response`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from scriptsearch.exceptions import ProviderError, RateLimitError


class EmbeddingData(BaseModel):
    """One vector in a provider response."""

    embedding: list[float]
    index: int = Field(default=0, ge=0)


class EmbeddingUsage(BaseModel):
    """Token usage reported by the provider."""

    prompt_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class EmbeddingResponse(BaseModel):
    """Successful provider response."""

    data: list[EmbeddingData]
    usage: EmbeddingUsage = Field(default_factory=EmbeddingUsage)
    model: str | None = None

    def ordered(self) -> list[EmbeddingData]:
        """Vectors sorted by their input position."""
        return sorted(self.data, key=lambda item: item.index)


@dataclass(frozen=True)
class ProviderFailure:
    """Failed provider attempt.

    Attributes:
        message: Error message from the provider envelope or the transport
        status_code: HTTP status, or None for transport errors
        retryable: Whether another attempt may succeed
        retry_after: Seconds requested by a Retry-After header
    """

    message: str
    status_code: int | None = None
    retryable: bool = False
    retry_after: float | None = None

    def to_error(self, attempts: int) -> ProviderError:
        """Convert the failure into the exception raised to callers."""
        if self.status_code == 429:
            return RateLimitError(
                message=f"Embedding provider rate limit exceeded: {self.message}",
                retry_after=self.retry_after,
                attempts=attempts,
            )
        return ProviderError(
            message=f"Embedding request failed: {self.message}",
            status_code=self.status_code,
            attempts=attempts,
            retryable=self.retryable,
            hint=_hint_for_status(self.status_code),
        )


@dataclass(frozen=True)
class EmbeddingResult:
    """Vector for one input text."""

    embedding: list[float] = field(default_factory=list)
    tokens: int = 0
    model: str = ""

    @property
    def dimensions(self) -> int:
        """Length of the vector."""
        return len(self.embedding)


def _hint_for_status(status_code: int | None) -> str | None:
    if status_code in (401, 403):
        return "Check that OPENAI_API_KEY is valid"
    if status_code == 404:
        return "Check EMBEDDING_MODEL and the embeddings API URL"
    if status_code is None:
        return "Check network connectivity to the embedding provider"
    if status_code >= 500:
        return "The provider is having problems; try again later"
    return None


def is_retryable_status(status_code: int) -> bool:
    """Rate limits and server errors are transient; other 4xx are not."""
    return status_code == 429 or status_code >= 500


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given in seconds.

    HTTP-date values are not supported and yield ``None``.
    """
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def _error_message(response: httpx.Response) -> str:
    """Pull ``error.message`` out of the envelope, falling back to the body."""
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    text = response.text.strip()
    return text[:200] if text else f"HTTP {response.status_code}"


def parse_response(response: httpx.Response) -> EmbeddingResponse | ProviderFailure:
    """Turn an HTTP response into a tagged result.

    Args:
        response: Response to the embeddings request

    Returns:
        EmbeddingResponse for a well-formed 2xx body, ProviderFailure otherwise
    """
    if not response.is_success:
        return ProviderFailure(
            message=_error_message(response),
            status_code=response.status_code,
            retryable=is_retryable_status(response.status_code),
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )

    try:
        return EmbeddingResponse.model_validate_json(response.content)
    except PydanticValidationError as e:
        return ProviderFailure(
            message=f"Malformed embedding response: {e.error_count()} error(s)",
            status_code=response.status_code,
            retryable=False,
        )
