"""Conversion of a Slack thread into a chat-completion transcript.

The thread is the bot's only memory. Each message becomes one chat turn:

- messages posted by this bot are ASSISTANT turns, verbatim
- a message that opens with a mention of the bot (``<@U123> be terse``)
  is a SYSTEM instruction, with the mention removed
- everything else is a USER turn, verbatim

A thread whose first turn is not an instruction was not started by
addressing the bot and is not answered. No default instruction is ever
injected. Only the most recent turns are forwarded; instructions are
always kept.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from slack_gpt_relay.config.schema import DEFAULT_MAX_HISTORY_TURNS
from slack_gpt_relay.models.conversation import ChatTurn, RawThreadMessage, Role
from slack_gpt_relay.models.event import EventContext


def build_mention_pattern(bot_user_id: str | None) -> re.Pattern[str] | None:
    """Return a pattern matching a leading mention of the bot.

    The mention token and any whitespace following it are matched, so
    substituting the match away leaves the instruction text.

    Args:
        bot_user_id: Slack user ID of the bot (``U...``)

    Returns:
        Compiled pattern, or None when the bot identity is unknown
    """
    if not bot_user_id:
        return None
    return re.compile(rf"^<@{re.escape(bot_user_id)}>[ \t\r\n]*")


def starts_with_mention(text: str | None, bot_user_id: str | None) -> bool:
    """Return True if text opens with a mention of the bot."""
    pattern = build_mention_pattern(bot_user_id)
    return bool(pattern and text and pattern.match(text))


def contains_mention(text: str | None, bot_user_id: str | None) -> bool:
    """Return True if text mentions the bot anywhere."""
    return bool(bot_user_id and text and f"<@{bot_user_id}>" in text)


def to_chat_turn(
    message: RawThreadMessage,
    context: EventContext,
    mention_pattern: re.Pattern[str] | None,
) -> ChatTurn:
    """Classify a single thread message."""
    content = message.text or ""

    if context.bot_id and message.author_bot_id == context.bot_id:
        return ChatTurn(Role.ASSISTANT, content)

    if mention_pattern is not None and mention_pattern.match(content):
        return ChatTurn(Role.SYSTEM, mention_pattern.sub("", content, count=1))

    return ChatTurn(Role.USER, content)


def map_transcript(
    context: EventContext,
    messages: Sequence[RawThreadMessage],
) -> list[ChatTurn]:
    """Convert thread messages into chat turns, rejecting unowned threads.

    Args:
        context: Identity of the bot receiving the event
        messages: Thread messages, root first

    Returns:
        One turn per message, or an empty list when the first turn is
        not a SYSTEM instruction
    """
    pattern = build_mention_pattern(context.bot_user_id)
    turns = [to_chat_turn(m, context, pattern) for m in messages]

    if not turns or turns[0].role is not Role.SYSTEM:
        return []
    return turns


def trim_history(
    turns: Sequence[ChatTurn],
    max_turns: int = DEFAULT_MAX_HISTORY_TURNS,
) -> list[ChatTurn]:
    """Drop the oldest non-SYSTEM turns beyond ``max_turns``.

    SYSTEM turns are never dropped and relative order is preserved.
    Applying the function twice gives the same result as applying it once.

    Args:
        turns: Transcript, oldest first
        max_turns: Most recent non-SYSTEM turns to keep

    Returns:
        The bounded transcript
    """
    if max_turns < 0:
        raise ValueError(f"max_turns must be non-negative, got {max_turns}")

    non_system = [i for i, turn in enumerate(turns) if turn.role is not Role.SYSTEM]
    if len(non_system) <= max_turns:
        return list(turns)

    dropped = set(non_system[: len(non_system) - max_turns])
    return [turn for i, turn in enumerate(turns) if i not in dropped]


def build_transcript(
    context: EventContext,
    messages: Sequence[RawThreadMessage],
    max_turns: int = DEFAULT_MAX_HISTORY_TURNS,
) -> list[ChatTurn]:
    """Map and trim a thread; empty when the thread is not eligible."""
    return trim_history(map_transcript(context, messages), max_turns)
