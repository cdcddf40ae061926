"""Logging, secret redaction and shared error types."""

from slack_gpt_relay.utils.errors import (
    CompletionError,
    CompletionTimeoutError,
    RateLimitError,
    RelayError,
)
from slack_gpt_relay.utils.logging import configure_logging, register_secrets
from slack_gpt_relay.utils.security import RedactionError, SecretRedactor

__all__ = [
    "CompletionError",
    "CompletionTimeoutError",
    "RateLimitError",
    "RedactionError",
    "RelayError",
    "SecretRedactor",
    "configure_logging",
    "register_secrets",
]
