"""Tests for conversation and event data models."""

from __future__ import annotations

import dataclasses

import pytest

from slack_gpt_relay.models.conversation import ChatTurn, RawThreadMessage, Role
from slack_gpt_relay.models.event import (
    EventContext,
    EventKind,
    GateDecision,
    SkipReason,
    ThreadRef,
)


class TestChatTurn:
    """Test ChatTurn."""

    def test_to_dict(self) -> None:
        """Test the chat-completion request form."""
        turn = ChatTurn(Role.ASSISTANT, "Arr!")
        assert turn.to_dict() == {"role": "assistant", "content": "Arr!"}

    def test_content_defaults_empty(self) -> None:
        """Test that content defaults to an empty string."""
        assert ChatTurn(Role.USER).content == ""

    def test_frozen(self) -> None:
        """Test that turns are immutable."""
        turn = ChatTurn(Role.USER, "hi")
        with pytest.raises(dataclasses.FrozenInstanceError):
            turn.content = "bye"  # type: ignore[misc]


class TestRawThreadMessage:
    """Test RawThreadMessage parsing."""

    def test_from_user_message(self) -> None:
        """Test a message written by a person."""
        message = RawThreadMessage.from_slack(
            {"type": "message", "user": "U999", "ts": "1700000000.000100", "text": "hi"}
        )
        assert message == RawThreadMessage("1700000000.000100", "hi", None)

    def test_from_bot_message(self) -> None:
        """Test that the bot id is captured."""
        message = RawThreadMessage.from_slack(
            {"ts": "1700000001.000100", "text": "Arr!", "bot_id": "BBOT456"}
        )
        assert message.author_bot_id == "BBOT456"

    def test_missing_text(self) -> None:
        """Test that a message without text has text None."""
        message = RawThreadMessage.from_slack({"ts": "1.0", "files": []})
        assert message.text is None

    def test_empty_bot_id_ignored(self) -> None:
        """Test that an empty bot id is treated as absent."""
        assert RawThreadMessage.from_slack({"ts": "1.0", "bot_id": ""}).author_bot_id is None


class TestEventContext:
    """Test EventContext."""

    def test_not_retry_by_default(self) -> None:
        """Test a first delivery."""
        assert not EventContext().is_retry

    def test_retry(self) -> None:
        """Test that any retry number marks a retry."""
        assert EventContext(retry_num=0, retry_reason="http_error").is_retry


class TestThreadRef:
    """Test thread resolution from events."""

    def test_top_level_message(self) -> None:
        """Test that a top-level message roots its own thread."""
        ref = ThreadRef.from_event({"channel": "C123", "ts": "1700000000.000100"})
        assert ref == ThreadRef("C123", "1700000000.000100")

    def test_thread_reply(self) -> None:
        """Test that a reply resolves to its root."""
        ref = ThreadRef.from_event(
            {"channel": "C123", "ts": "1700000005.000100", "thread_ts": "1700000000.000100"}
        )
        assert ref.thread_ts == "1700000000.000100"


class TestGateDecision:
    """Test GateDecision truthiness."""

    def test_proceed_is_truthy(self) -> None:
        """Test proceed decisions."""
        assert GateDecision(proceed=True)

    def test_skip_is_falsy(self) -> None:
        """Test skip decisions."""
        decision = GateDecision(proceed=False, reason=SkipReason.HAS_SUBTYPE)
        assert not decision
        assert decision.reason is SkipReason.HAS_SUBTYPE


class TestEventKind:
    """Test EventKind."""

    def test_values_are_slack_event_types(self) -> None:
        """Test that values match Slack event type names."""
        assert EventKind("app_mention") is EventKind.APP_MENTION
        assert EventKind.MESSAGE == "message"
