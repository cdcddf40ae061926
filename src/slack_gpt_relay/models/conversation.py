"""Data models for thread transcripts and chat turns."""

from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    """Speaker of a chat turn, valued with the completion API wire tag."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatTurn:
    """One role-tagged message submitted to a chat-completion API."""

    role: Role
    content: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the turn in chat-completion request form."""
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class RawThreadMessage:
    """A message as returned by the thread history query."""

    timestamp: str
    text: str | None = None
    author_bot_id: str | None = None  # Set when posted by a bot

    @classmethod
    def from_slack(cls, message: dict[str, object]) -> "RawThreadMessage":
        """Build from a `conversations.replies` message record."""
        text = message.get("text")
        bot_id = message.get("bot_id")
        return cls(
            timestamp=str(message.get("ts", "")),
            text=text if isinstance(text, str) else None,
            author_bot_id=bot_id if isinstance(bot_id, str) and bot_id else None,
        )
