"""Tests for provider response parsing and the retry strategy."""

import httpx
import pytest

from scriptsearch.embeddings.models import (
    EmbeddingResponse,
    ProviderFailure,
    is_retryable_status,
    parse_response,
    parse_retry_after,
)
from scriptsearch.embeddings.retry import RetryStrategy
from scriptsearch.exceptions import ProviderError, RateLimitError
from tests.embedding_test_utils import embedding_payload, error_payload


class TestParseResponse:
    """Test the tagged result produced at the HTTP boundary."""

    def test_success(self):
        response = httpx.Response(200, json=embedding_payload([[0.5, 0.5]], 3))
        parsed = parse_response(response)
        assert isinstance(parsed, EmbeddingResponse)
        assert parsed.data[0].embedding == [0.5, 0.5]
        assert parsed.usage.total_tokens == 3

    def test_error_envelope_message(self):
        response = httpx.Response(401, json=error_payload("Incorrect API key"))
        parsed = parse_response(response)
        assert isinstance(parsed, ProviderFailure)
        assert parsed.message == "Incorrect API key"
        assert parsed.status_code == 401
        assert parsed.retryable is False

    def test_plain_text_error(self):
        response = httpx.Response(503, text="upstream unavailable")
        parsed = parse_response(response)
        assert isinstance(parsed, ProviderFailure)
        assert parsed.message == "upstream unavailable"
        assert parsed.retryable is True

    def test_retry_after_header(self):
        response = httpx.Response(
            429, headers={"Retry-After": "7"}, json=error_payload("limit")
        )
        parsed = parse_response(response)
        assert isinstance(parsed, ProviderFailure)
        assert parsed.retry_after == 7.0

    def test_missing_usage_defaults_to_zero(self):
        response = httpx.Response(200, json={"data": [{"embedding": [1.0]}]})
        parsed = parse_response(response)
        assert isinstance(parsed, EmbeddingResponse)
        assert parsed.usage.total_tokens == 0


@pytest.mark.parametrize(
    ("status", "retryable"),
    [(429, True), (500, True), (503, True), (400, False), (401, False), (404, False)],
)
def test_is_retryable_status(status, retryable):
    assert is_retryable_status(status) is retryable


@pytest.mark.parametrize(
    ("header", "expected"),
    [("3", 3.0), ("1.5", 1.5), (None, None), ("", None), ("soon", None), ("-1", None)],
)
def test_parse_retry_after(header, expected):
    assert parse_retry_after(header) == expected


class TestProviderFailure:
    """Test conversion of failures into exceptions."""

    def test_rate_limit_becomes_rate_limit_error(self):
        error = ProviderFailure("limit", 429, True, 2.0).to_error(attempts=3)
        assert isinstance(error, RateLimitError)
        assert error.retry_after == 2.0
        assert error.attempts == 3

    def test_auth_failure_has_hint(self):
        error = ProviderFailure("bad key", 401, False).to_error(attempts=1)
        assert type(error) is ProviderError
        assert error.hint is not None
        assert "OPENAI_API_KEY" in error.hint
        assert error.details == {"status_code": 401, "attempts": 1}


class TestRetryStrategy:
    """Test backoff arithmetic."""

    def test_delay_doubles(self):
        strategy = RetryStrategy(base_delay=1.0, max_delay=30.0)
        assert [strategy.calculate_retry_delay(n) for n in (1, 2, 3, 4)] == [
            1.0,
            2.0,
            4.0,
            8.0,
        ]

    def test_delay_capped(self):
        strategy = RetryStrategy(base_delay=10.0, max_delay=15.0)
        assert strategy.calculate_retry_delay(3) == 15.0

    def test_retry_after_capped(self):
        strategy = RetryStrategy(max_delay=5.0)
        failure = ProviderFailure("limit", 429, True, retry_after=60.0)
        assert strategy.delay_for(failure, 1) == 5.0

    def test_at_least_one_attempt(self):
        assert RetryStrategy(max_attempts=0).max_attempts == 1
