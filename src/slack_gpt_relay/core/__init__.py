"""Core business logic components.

This module exports the relay pipeline pieces:
- ChatRelay: Runs one Slack event through gate, transcript and completion
- should_process: Event filtering and duplicate-delivery guard
- build_transcript / trim_history: Thread to chat-turn conversion
"""

from slack_gpt_relay.core.event_gate import is_timeout_retry, should_process
from slack_gpt_relay.core.relay import ChatRelay, create_relay, format_error_reply
from slack_gpt_relay.core.transcript import build_transcript, map_transcript, trim_history

__all__ = [
    "ChatRelay",
    "build_transcript",
    "create_relay",
    "format_error_reply",
    "is_timeout_retry",
    "map_transcript",
    "should_process",
    "trim_history",
]
