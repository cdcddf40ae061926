"""Exception hierarchy shared by the relay and its adapters."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for all relay errors."""


class CompletionError(RelayError):
    """The chat-completion call failed or returned nothing usable."""


class RateLimitError(CompletionError):
    """Rate limit exceeded.

    Attributes:
        retry_after: Number of seconds to wait before retrying, if known.
    """

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class CompletionTimeoutError(CompletionError):
    """The chat-completion request timed out."""
