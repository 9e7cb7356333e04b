"""Custom exception hierarchy for scriptsearch with helpful error messages."""

from __future__ import annotations

from typing import Any


class ScriptSearchError(Exception):
    """Base exception with helpful formatting for all scriptsearch errors.

    Provides structured error messages with hints and details to help users
    understand and fix problems.
    """

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception with structured error information.

        Args:
            message: Primary error message describing what went wrong
            hint: Optional hint suggesting how to fix the problem
            details: Optional dictionary with additional debugging information
        """
        self.message = message
        self.hint = hint
        self.details = details
        super().__init__(self.format_error())

    def format_error(self) -> str:
        """Format the error message with hint and details.

        Returns:
            Formatted error string with all available information
        """
        output = f"Error: {self.message}"
        if self.hint:
            output += f"\nHint: {self.hint}"
        if self.details:
            details_str = "\n".join(
                f"  {key}: {value}" for key, value in self.details.items()
            )
            output += f"\nDetails:\n{details_str}"
        return output


class ConfigurationError(ScriptSearchError):
    """Configuration errors including missing credentials and invalid settings."""

    pass


class ValidationError(ScriptSearchError):
    """Input validation errors with details about what was expected."""

    pass


class InvalidIdError(ValidationError):
    """Record identifier is not a positive integer."""

    def __init__(self, record_id: Any) -> None:
        """Initialize with the rejected identifier.

        Args:
            record_id: The identifier that failed validation
        """
        self.record_id = record_id
        super().__init__(
            message="Invalid ID: must be positive",
            details={"id": record_id},
        )


class InvalidQueryError(ValidationError):
    """Search query is empty or blank."""

    def __init__(self, message: str = "Invalid query: query cannot be empty") -> None:
        """Initialize invalid query error."""
        super().__init__(
            message=message,
            hint="Describe what the script should do, e.g. 'fix microphone'",
        )


class InvalidTopNError(ValidationError):
    """Requested result count is not positive."""

    def __init__(self, top_n: Any) -> None:
        """Initialize with the rejected result count.

        Args:
            top_n: The result count that failed validation
        """
        self.top_n = top_n
        super().__init__(
            message="Invalid topN: topN must be positive",
            details={"top_n": top_n},
        )


class EmptyInputError(ValidationError):
    """Text submitted for embedding is empty."""

    def __init__(self, message: str = "Empty text: text cannot be empty") -> None:
        """Initialize empty input error."""
        super().__init__(message=message)


class ProviderError(ScriptSearchError):
    """Embedding provider failure after retries, or a fatal client error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        attempts: int | None = None,
        retryable: bool = False,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize provider error.

        Args:
            message: Error message reported by or about the provider
            status_code: HTTP status of the last failed attempt, if any
            attempts: Number of attempts made before giving up
            retryable: Whether the last failure was a transient one
            hint: Optional hint for the user
            details: Optional additional information
        """
        self.status_code = status_code
        self.attempts = attempts
        self.retryable = retryable
        merged: dict[str, Any] = dict(details or {})
        if status_code is not None:
            merged["status_code"] = status_code
        if attempts is not None:
            merged["attempts"] = attempts
        super().__init__(message=message, hint=hint, details=merged or None)


class ResponseShapeError(ProviderError):
    """Provider answered, but with the wrong number or size of vectors."""

    pass


class RateLimitError(ProviderError):
    """Rate limit still exceeded after the retry budget was spent."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
        attempts: int | None = None,
    ) -> None:
        """Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds the provider asked us to wait
            attempts: Number of attempts made
        """
        self.retry_after = retry_after
        hint = None
        if retry_after:
            hint = f"Please wait {retry_after} seconds before retrying"
        details: dict[str, Any] = {}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(
            message=message,
            status_code=429,
            attempts=attempts,
            retryable=True,
            hint=hint,
            details=details,
        )


class StoreError(ScriptSearchError):
    """Underlying store failure, wrapping the original database exception."""

    pass
