"""Retry strategy for embedding provider calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from scriptsearch.config import get_logger
from scriptsearch.embeddings.models import EmbeddingResponse, ProviderFailure

logger = get_logger(__name__)

Attempt = Callable[[], Awaitable[EmbeddingResponse | ProviderFailure]]
Sleep = Callable[[float], Awaitable[None]]


class RetryStrategy:
    """Exponential backoff over attempts that return a tagged result.

    ``max_attempts`` counts the first try: ``max_attempts=3`` means one call
    and at most two retries.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize retry strategy.

        Args:
            max_attempts: Total attempts, including the first.
            base_delay: Delay in seconds before the first retry.
            max_delay: Upper bound for any single delay.
            sleep: Awaitable used to wait between attempts.
        """
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def calculate_retry_delay(self, attempt: int) -> float:
        """Delay after failed attempt ``attempt`` (1-based); doubles each time."""
        return float(min(self.base_delay * (2 ** (attempt - 1)), self.max_delay))

    def delay_for(self, failure: ProviderFailure, attempt: int) -> float:
        """Honour Retry-After when the provider sent one."""
        if failure.retry_after is not None:
            return float(min(failure.retry_after, self.max_delay))
        return self.calculate_retry_delay(attempt)

    async def execute(self, attempt_func: Attempt, operation: str) -> EmbeddingResponse:
        """Run ``attempt_func`` until it succeeds or the budget is spent.

        Args:
            attempt_func: Coroutine factory performing one provider call.
            operation: Short description used in log events.

        Returns:
            The first successful response.

        Raises:
            ProviderError: On a non-retryable failure, or once every attempt
                has failed.
        """
        for attempt in range(1, self.max_attempts + 1):
            result = await attempt_func()
            if isinstance(result, EmbeddingResponse):
                if attempt > 1:
                    logger.info(
                        "Provider call succeeded after retry",
                        operation=operation,
                        attempt=attempt,
                    )
                return result

            if not result.retryable:
                logger.error(
                    "Provider call failed",
                    operation=operation,
                    status_code=result.status_code,
                    error=result.message,
                )
                raise result.to_error(attempts=attempt)

            if attempt >= self.max_attempts:
                logger.error(
                    "Provider call failed after all attempts",
                    operation=operation,
                    attempts=attempt,
                    status_code=result.status_code,
                    error=result.message,
                )
                raise result.to_error(attempts=attempt)

            delay = self.delay_for(result, attempt)
            logger.warning(
                f"Attempt {attempt}/{self.max_attempts} failed, "
                f"retrying in {delay:.2f}s",
                operation=operation,
                status_code=result.status_code,
                error=result.message,
                retry_delay=delay,
            )
            await self._sleep(delay)

        raise RuntimeError("retry loop exited without a result")  # pragma: no cover
