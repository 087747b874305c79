"""Error taxonomy for the bot lifecycle pipeline.

- ConfigurationError: Recall.ai credential missing (fail fast, user-facing)
- ValidationError: required input to an operation is missing
- ProviderError: non-2xx, transport failure or malformed body from Recall.ai
- MeetingNotFoundError: no meeting matches the lookup key
"""

from __future__ import annotations


class RecallError(Exception):
    """Base class for bot pipeline errors."""


class ConfigurationError(RecallError):
    """Raised when the Recall.ai API key is not configured."""


class ValidationError(RecallError, ValueError):
    """Raised when an operation is called without a required input."""


class ProviderError(RecallError):
    """Raised when a Recall.ai call fails or returns a malformed body.

    Args:
        message: Human-readable description including the upstream detail.
        status_code: HTTP status from Recall.ai, None for transport errors.
        detail: Upstream error payload ("detail" field when present).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class MeetingNotFoundError(RecallError, LookupError):
    """Raised when a meeting lookup by id or bot id finds nothing."""
