"""Structured logging for the relay.

Log entries are structlog events rendered through the stdlib ``logging``
handlers: one JSON object per line for CloudWatch or a container log
collector, or colored console output for local Socket Mode runs.

User text and model replies pass through the logs at DEBUG level, next to
errors raised by the Slack and model SDKs that may echo credentials. Every
entry is therefore run through a ``SecretRedactor`` before rendering. Call
``register_secrets`` with the configured credentials so values that match
no generic pattern (the hex signing secret) are masked too.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, MutableMapping
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

from slack_gpt_relay.utils.security import SecretRedactor

SERVICE_NAME = "slack-gpt-relay"

_redactor = SecretRedactor()


class LogFormat(StrEnum):
    """Log output format options."""

    JSON = "json"
    CONSOLE = "console"


def register_secrets(secrets: Iterable[str | None]) -> None:
    """Mask these literal values in every subsequent log entry.

    Args:
        secrets: Configured credential values (None/empty entries ignored)
    """
    global _redactor
    _redactor = SecretRedactor.with_known_secrets(secrets)


def sanitize_log_value(value: Any) -> Any:
    """Recursively redact secrets from strings inside ``value``."""
    match value:
        case str():
            return _redactor.redact(value)
        case dict():
            return {k: sanitize_log_value(v) for k, v in value.items()}
        case list() | tuple():
            return type(value)(sanitize_log_value(v) for v in value)
        case _:
            return value


def secret_sanitizer(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> EventDict:
    """Structlog processor to sanitize secrets from log entries."""
    return {key: sanitize_log_value(value) for key, value in event_dict.items()}


def _service_version() -> str | None:
    try:
        from slack_gpt_relay._version import __version__
    except (ImportError, RuntimeError):
        return None
    return __version__


def add_service_info(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Tag every entry with the service name and version."""
    event_dict["service"] = SERVICE_NAME
    if version := _service_version():
        event_dict["version"] = version
    return event_dict


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    numeric = logging.getLevelNamesMapping().get(level.upper())
    if numeric is None:
        raise ValueError(f"Unknown log level: {level}")
    return numeric


def _renderer(log_format: LogFormat) -> Processor:
    if log_format is LogFormat.JSON:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def _handlers(level: int, file_path: Path | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if file_path is not None:
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(file_path))
        except OSError as e:
            # Console only
            logging.getLogger(__name__).warning("Could not open log file %s: %s", file_path, e)

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def configure_logging(
    level: str | int = "INFO",
    log_format: LogFormat | str = LogFormat.JSON,
    file_path: Path | str | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL) or number
        log_format: ``json`` or ``console``
        file_path: Log file, used when ``file_enabled`` is set
        file_enabled: Also write entries to ``file_path``

    Raises:
        ValueError: If the level or format is unknown

    Example:
        # Local socket-mode development
        configure_logging(level="DEBUG", log_format="console")

        # Lambda, where CloudWatch ingests one JSON object per line
        configure_logging(level="INFO", log_format="json")
    """
    numeric_level = _parse_level(level)
    log_format = LogFormat(str(log_format).lower())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_info,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        secret_sanitizer,
        structlog.processors.UnicodeDecoder(),
        _renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=_handlers(numeric_level, Path(file_path) if file_enabled and file_path else None),
        force=True,
    )


def bind_context(**kwargs: Any) -> None:
    """Bind contextual variables for all subsequent log calls.

    Example:
        bind_context(channel="C123", thread_ts="1700000000.000100")
        log.info("completion_requested")  # Includes channel and thread_ts
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove contextual variables."""
    structlog.contextvars.unbind_contextvars(*keys)
