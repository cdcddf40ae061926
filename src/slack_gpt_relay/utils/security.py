"""Secret redaction for log output.

The relay holds Slack tokens, the Slack signing secret and a model
provider API key, and it logs user text and SDK errors at DEBUG/ERROR.
Nothing that looks like a credential may reach the logs. Redaction fails
closed: a broken pattern raises instead of letting text through
unfiltered.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

log = structlog.get_logger()


class SecurityError(Exception):
    """Base exception for security-related errors."""


class RedactionError(SecurityError):
    """Raised when secret redaction fails."""


@dataclass(frozen=True)
class SecretPattern:
    """A named regular expression for one kind of credential."""

    name: str
    regex: str


SLACK_PATTERNS = (
    SecretPattern("Slack token", r"xox[baprs]-[\w-]+"),
    SecretPattern("Slack app token", r"xapp-[\w-]+"),
    SecretPattern("Slack webhook URL", r"https://hooks\.slack\.com/services/[\w/]+"),
)

MODEL_PROVIDER_PATTERNS = (
    SecretPattern("Anthropic API key", r"sk-ant-[\w-]{40,}"),
    SecretPattern("OpenAI project API key", r"sk-proj-[\w-]{20,}"),
    SecretPattern("OpenAI legacy API key", r"sk-[a-zA-Z0-9]{48}"),
)

# Lambda deployments see AWS credentials in their environment
AWS_PATTERNS = (
    SecretPattern("AWS access key ID", r"AKIA[0-9A-Z]{16}"),
    SecretPattern(
        "AWS secret access key",
        r"(?i:aws[_-]?secret[_-]?access[_-]?key)\s*[=:]\s*[\"']?[a-zA-Z0-9/+=]{40}",
    ),
)

GENERIC_PATTERNS = (
    SecretPattern(
        "Generic secret",
        r"(?i:api[_-]?key|secret|token|password|credential)\s*[=:]\s*[\"']?[\w-]{16,}",
    ),
    SecretPattern(
        "Private key header",
        r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----",
    ),
    SecretPattern("JWT", r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*"),
)

DEFAULT_PATTERNS = SLACK_PATTERNS + MODEL_PROVIDER_PATTERNS + AWS_PATTERNS + GENERIC_PATTERNS


class SecretRedactor:
    """Replaces credentials in text with a placeholder.

    Example:
        redactor = SecretRedactor.with_known_secrets([config.slack.signing_secret])
        safe_text = redactor.redact(text)

    Attributes:
        placeholder: The string secrets are replaced with.
    """

    def __init__(
        self,
        placeholder: str = "[REDACTED]",
        extra_patterns: Iterable[SecretPattern] = (),
    ) -> None:
        """Compile the default patterns plus ``extra_patterns``.

        Raises:
            RedactionError: If any pattern fails to compile.
        """
        self.placeholder = placeholder
        self._compiled: list[tuple[str, re.Pattern[str]]] = []

        for pattern in (*DEFAULT_PATTERNS, *extra_patterns):
            try:
                self._compiled.append((pattern.name, re.compile(pattern.regex)))
            except re.error as e:
                log.error("pattern_compilation_failed", pattern=pattern.name, error=str(e))
                raise RedactionError(
                    f"Failed to compile secret pattern {pattern.name!r}: {e}"
                ) from e

    @classmethod
    def with_known_secrets(
        cls,
        secrets: Iterable[str | None],
        placeholder: str = "[REDACTED]",
    ) -> SecretRedactor:
        """Create a redactor that also masks the literal configured secrets.

        The Slack signing secret is plain hex and matches no generic
        pattern, so it is only caught this way.

        Args:
            secrets: Secret values; empty and None entries are ignored.
            placeholder: String to replace detected secrets with.
        """
        known = (SecretPattern("Configured secret", re.escape(s)) for s in secrets if s)
        return cls(placeholder=placeholder, extra_patterns=known)

    @property
    def patterns(self) -> list[re.Pattern[str]]:
        """Return the compiled patterns."""
        return [compiled for _, compiled in self._compiled]

    def redact(self, text: str) -> str:
        """Return ``text`` with every secret replaced by the placeholder.

        Raises:
            RedactionError: If redaction fails for any reason.
        """
        if not text:
            return text

        try:
            for _, compiled in self._compiled:
                text = compiled.sub(self.placeholder, text)
        except Exception as e:
            log.error("redaction_failed", error=str(e))
            raise RedactionError(f"Redaction failed: {e}") from e
        return text

    def find_secrets(self, text: str) -> list[str]:
        """Return the names of the secret kinds present in ``text``.

        Raises:
            RedactionError: If a pattern fails while searching.
        """
        if not text:
            return []

        try:
            return [name for name, compiled in self._compiled if compiled.search(text)]
        except Exception as e:
            log.error("secret_search_failed", error=str(e))
            raise RedactionError(f"Secret check failed: {e}") from e

    def has_secrets(self, text: str) -> bool:
        """Return True if ``text`` contains any secret."""
        return bool(self.find_secrets(text))
