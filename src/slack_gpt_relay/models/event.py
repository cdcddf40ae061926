"""Data models for inbound Slack events."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """Slack event types the relay subscribes to."""

    APP_MENTION = "app_mention"
    MESSAGE = "message"


@dataclass(frozen=True)
class EventContext:
    """Per-delivery metadata supplied by the hosting framework."""

    bot_user_id: str | None = None
    bot_id: str | None = None
    retry_num: int | None = None
    retry_reason: str | None = None

    @property
    def is_retry(self) -> bool:
        """Return True when Slack is redelivering an earlier event."""
        return self.retry_num is not None


@dataclass(frozen=True)
class ThreadRef:
    """Identity of a conversation: channel plus root message timestamp."""

    channel: str
    thread_ts: str

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> ThreadRef:
        """Resolve the thread an event belongs to.

        A reply carries the root timestamp in ``thread_ts``; a top-level
        message starts a new thread rooted at its own ``ts``.
        """
        return cls(
            channel=event.get("channel", ""),
            thread_ts=event.get("thread_ts") or event.get("ts", ""),
        )


class SkipReason(Enum):
    """Why an event was not processed."""

    TIMEOUT_RETRY = "timeout_retry"
    NOT_IN_THREAD = "not_in_thread"
    HAS_SUBTYPE = "has_subtype"
    MENTION_IN_MESSAGE = "mention_in_message"
    UNSUPPORTED_EVENT = "unsupported_event"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the event gate."""

    proceed: bool
    reason: SkipReason | None = None

    def __bool__(self) -> bool:
        return self.proceed


class RelayOutcome(Enum):
    """Outcome of handling one event."""

    SKIPPED = "skipped"
    NO_TRANSCRIPT = "no_transcript"
    REPLIED = "replied"
    ERROR_REPLIED = "error_replied"
