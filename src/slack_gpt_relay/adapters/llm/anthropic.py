"""Anthropic Claude chat-completion adapter.

This module implements the CompletionProvider protocol for Anthropic's
Messages API. The Messages API differs from the chat-completion shape the
transcript is built for:

- instructions go in a separate ``system`` parameter, not in ``messages``
- ``messages`` must start with a user turn and alternate user/assistant

The adapter folds the transcript into that shape before sending it.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import anthropic
import structlog

from ...config.schema import AnthropicConfig
from ...models.conversation import ChatTurn, Role
from ...utils.errors import CompletionError, CompletionTimeoutError, RateLimitError

log = structlog.get_logger()

# Placeholder for the opening user turn the Messages API requires
CONVERSATION_START = "(conversation start)"


def split_system(turns: Sequence[ChatTurn]) -> tuple[str, list[dict[str, str]]]:
    """Fold a transcript into a system prompt and alternating messages.

    SYSTEM turns are joined into the system prompt. Consecutive turns of
    the same role are merged with a blank line between them. When the
    first remaining turn is from the assistant, a placeholder user turn
    is prepended. A transcript holding only instructions is sent as a
    single user message with no system prompt.

    Args:
        turns: Transcript, oldest first

    Returns:
        (system prompt, messages) ready for ``messages.create``
    """
    system_parts: list[str] = []
    messages: list[dict[str, str]] = []

    for turn in turns:
        match turn.role:
            case Role.SYSTEM:
                system_parts.append(turn.content)
                continue
            case Role.USER:
                role = "user"
            case Role.ASSISTANT:
                role = "assistant"

        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] = f"{messages[-1]['content']}\n\n{turn.content}"
        else:
            messages.append({"role": role, "content": turn.content})

    system = "\n\n".join(part for part in system_parts if part)

    if not messages:
        return "", [{"role": "user", "content": system or CONVERSATION_START}]

    if messages[0]["role"] != "user":
        messages.insert(0, {"role": "user", "content": CONVERSATION_START})

    return system, messages


class AnthropicAdapter:
    """Anthropic adapter implementing the CompletionProvider protocol.

    Example:
        config = AnthropicConfig(api_key="sk-ant-...")
        adapter = AnthropicAdapter(config)

        reply = await adapter.complete(turns)
    """

    def __init__(
        self,
        config: AnthropicConfig,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        """Initialize the Anthropic adapter.

        Args:
            config: Anthropic-specific configuration.
            client: Preconfigured SDK client. If None, creates one.
        """
        self._config = config
        self._client = client or anthropic.AsyncAnthropic(
            api_key=config.api_key,
            timeout=config.timeout,
            max_retries=0,
        )

    @property
    def model_name(self) -> str:
        """Return the model identifier being used."""
        return self._config.model

    async def complete(self, turns: Sequence[ChatTurn]) -> str:
        """Send the transcript and return the reply text.

        Raises:
            ValueError: If the transcript is empty.
            CompletionError: If the API call fails.
            RateLimitError: If rate limit exceeded.
            CompletionTimeoutError: If request times out.
        """
        if not turns:
            raise ValueError("Cannot request a completion for an empty transcript")

        system, messages = split_system(turns)

        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.RateLimitError as e:
            log.warning("anthropic_rate_limit", error=str(e))
            raise RateLimitError(f"Anthropic rate limit exceeded: {e}") from e
        except anthropic.APITimeoutError as e:
            log.error("anthropic_timeout", error=str(e))
            raise CompletionTimeoutError(f"Anthropic request timed out: {e}") from e
        except anthropic.APIError as e:
            log.error("anthropic_api_error", error=str(e))
            raise CompletionError(f"Anthropic API error: {e}") from e

        for block in response.content:
            if hasattr(block, "text"):
                return str(block.text)

        raise CompletionError("Anthropic response contained no text")

    async def list_models(self) -> list[str]:
        """Return the model ids visible to the configured key."""
        try:
            return [model.id async for model in self._client.models.list()]
        except anthropic.APIError as e:
            raise CompletionError(f"Failed to list Anthropic models: {e}") from e
