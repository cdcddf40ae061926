"""Per-event pipeline: gate, fetch, map, trim, complete, reply.

Every event is handled independently; the Slack thread is the only state.
The hosting adapter supplies the platform client and delivery context
explicitly for each call.
"""

from __future__ import annotations

import json
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from slack_gpt_relay.config.schema import ConversationConfig
from slack_gpt_relay.core.event_gate import should_process
from slack_gpt_relay.core.transcript import build_transcript
from slack_gpt_relay.models.event import EventContext, EventKind, RelayOutcome, ThreadRef
from slack_gpt_relay.utils.logging import bind_context, unbind_context

if TYPE_CHECKING:
    from slack_gpt_relay.config.schema import RelayConfig
    from slack_gpt_relay.interfaces.chat import ThreadClient
    from slack_gpt_relay.interfaces.llm import CompletionProvider
    from slack_gpt_relay.models.conversation import ChatTurn

log = structlog.get_logger()

ERROR_REPLY_PREFIX = "Unexpected error occurs. Please start a conversation in a new thread:"

EventHandler = Callable[
    [dict[str, Any], EventContext, "ThreadClient"],
    Awaitable[RelayOutcome],
]


def format_error_reply(error: BaseException) -> str:
    """Build the in-thread message shown when the completion call fails."""
    return f"{ERROR_REPLY_PREFIX} {error}"


class ChatRelay:
    """Relays Slack thread conversations to a chat-completion model.

    Example:
        relay = ChatRelay(OpenAIAdapter(config.llm.openai), config.conversation)
        handler = relay.event_handlers[EventKind.APP_MENTION]
        await handler(event, EventContext(bot_user_id="U1", bot_id="B1"), thread_client)
    """

    def __init__(
        self,
        llm: CompletionProvider,
        config: ConversationConfig | None = None,
    ) -> None:
        """Initialize the relay.

        Args:
            llm: Completion backend
            config: Transcript handling settings
        """
        self._llm = llm
        self._config = config or ConversationConfig()

    @property
    def llm(self) -> CompletionProvider:
        """Return the completion backend."""
        return self._llm

    @property
    def event_handlers(self) -> Mapping[EventKind, EventHandler]:
        """Return the event-kind to handler mapping hosts must register."""
        return {
            EventKind.APP_MENTION: self.handle_app_mention,
            EventKind.MESSAGE: self.handle_message,
        }

    async def handle_app_mention(
        self,
        event: dict[str, Any],
        context: EventContext,
        chat: ThreadClient,
    ) -> RelayOutcome:
        """Handle a mention of the bot, starting or continuing a thread."""
        return await self.handle_event(EventKind.APP_MENTION, event, context, chat)

    async def handle_message(
        self,
        event: dict[str, Any],
        context: EventContext,
        chat: ThreadClient,
    ) -> RelayOutcome:
        """Handle a plain message; only thread replies are answered."""
        return await self.handle_event(EventKind.MESSAGE, event, context, chat)

    async def handle_event(
        self,
        kind: EventKind,
        event: dict[str, Any],
        context: EventContext,
        chat: ThreadClient,
    ) -> RelayOutcome:
        """Run one event through the gate and, if admitted, the pipeline."""
        decision = should_process(kind, event, context, self._config.timeout_retry_reason)
        if not decision:
            log.debug(
                "event_skipped",
                event_kind=kind.value,
                reason=decision.reason.value if decision.reason else None,
            )
            return RelayOutcome.SKIPPED

        thread = ThreadRef.from_event(event)
        bind_context(channel=thread.channel, thread_ts=thread.thread_ts)
        try:
            return await self.complete_thread(thread, context, chat)
        finally:
            unbind_context("channel", "thread_ts")

    async def complete_thread(
        self,
        thread: ThreadRef,
        context: EventContext,
        chat: ThreadClient,
    ) -> RelayOutcome:
        """Fetch the thread, ask the model, and post its answer.

        Fetch and post failures propagate to the caller.

        Args:
            thread: Conversation to answer
            context: Bot identity for role assignment
            chat: Platform client for this event

        Returns:
            What was done for this thread
        """
        start_time = time.time()

        messages = await chat.fetch_thread(thread)
        turns = build_transcript(context, messages, self._config.max_history_turns)
        if not turns:
            log.debug("transcript_not_eligible", messages=len(messages))
            return RelayOutcome.NO_TRANSCRIPT

        log.debug(
            "transcript_built",
            fetched=len(messages),
            turns=len(turns),
            transcript=json.dumps([t.to_dict() for t in turns], ensure_ascii=False, indent=2),
        )

        text, ok = await self._complete(turns)
        await chat.post_reply(thread, text)

        outcome = RelayOutcome.REPLIED if ok else RelayOutcome.ERROR_REPLIED
        log.info(
            "thread_completed",
            outcome=outcome.value,
            model=self._llm.model_name,
            duration_seconds=round(time.time() - start_time, 2),
        )
        return outcome

    async def _complete(self, turns: list[ChatTurn]) -> tuple[str, bool]:
        """Call the model; on any failure return the fallback reply instead."""
        try:
            reply = await self._llm.complete(turns)
        except Exception as e:
            log.error(
                "completion_failed",
                error_type=type(e).__name__,
                error=str(e),
                model=self._llm.model_name,
            )
            return format_error_reply(e), False

        log.debug("completion_received", reply=reply)
        return reply, True


def create_relay(config: RelayConfig) -> ChatRelay:
    """Factory function to create a ChatRelay with its completion backend.

    Args:
        config: Application configuration

    Returns:
        Configured ChatRelay instance

    Raises:
        ValueError: If the provider is not supported or not configured
    """
    return ChatRelay(_create_llm_adapter(config), config.conversation)


def _create_llm_adapter(config: RelayConfig) -> CompletionProvider:
    """Create a completion adapter based on configuration."""
    provider = config.llm.provider

    if provider == "openai":
        if not config.llm.openai:
            raise ValueError("OpenAI configuration required when provider is 'openai'")
        from slack_gpt_relay.adapters.llm.openai import OpenAIAdapter

        return OpenAIAdapter(config.llm.openai)

    if provider == "anthropic":
        if not config.llm.anthropic:
            raise ValueError("Anthropic configuration required when provider is 'anthropic'")
        from slack_gpt_relay.adapters.llm.anthropic import AnthropicAdapter

        return AnthropicAdapter(config.llm.anthropic)

    raise ValueError(f"Unsupported LLM provider: {provider}")
