"""OpenAI chat-completion adapter.

This module implements the CompletionProvider protocol on top of the
official ``openai`` SDK. SDK-level retries are disabled: a failed call is
reported once and surfaced to the user instead of being repeated against
an unbounded thread.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import openai
import structlog

from ...config.schema import OpenAIConfig
from ...models.conversation import ChatTurn
from ...utils.errors import CompletionError, CompletionTimeoutError, RateLimitError

log = structlog.get_logger()


class OpenAIAdapter:
    """OpenAI adapter implementing the CompletionProvider protocol.

    Example:
        adapter = OpenAIAdapter(OpenAIConfig(api_key="sk-..."))
        reply = await adapter.complete([ChatTurn(Role.SYSTEM, "be a pirate")])
    """

    def __init__(
        self,
        config: OpenAIConfig,
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the OpenAI adapter.

        Args:
            config: OpenAI-specific configuration.
            client: Preconfigured SDK client. If None, creates one.
        """
        self._config = config
        self._client = client or openai.AsyncOpenAI(
            api_key=config.api_key,
            timeout=config.timeout,
            max_retries=0,
        )

    @property
    def model_name(self) -> str:
        """Return the model identifier being used."""
        return self._config.model

    async def complete(self, turns: Sequence[ChatTurn]) -> str:
        """Send the transcript and return the first choice's text.

        Raises:
            ValueError: If the transcript is empty.
            CompletionError: If the API call fails or returns no choices.
            RateLimitError: If rate limit exceeded.
            CompletionTimeoutError: If request times out.
        """
        if not turns:
            raise ValueError("Cannot request a completion for an empty transcript")

        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": [turn.to_dict() for turn in turns],
        }
        if self._config.temperature is not None:
            kwargs["temperature"] = self._config.temperature

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.RateLimitError as e:
            log.warning("openai_rate_limit", error=str(e))
            raise RateLimitError(f"OpenAI rate limit exceeded: {e}") from e
        except openai.APITimeoutError as e:
            log.error("openai_timeout", error=str(e))
            raise CompletionTimeoutError(f"OpenAI request timed out: {e}") from e
        except openai.APIError as e:
            log.error("openai_api_error", error=str(e))
            raise CompletionError(f"OpenAI API error: {e}") from e

        if not response.choices:
            raise CompletionError("OpenAI returned no choices")

        usage = getattr(response, "usage", None)
        if usage is not None:
            log.debug(
                "openai_usage",
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
            )

        return response.choices[0].message.content or ""

    async def list_models(self) -> list[str]:
        """Return the model ids visible to the configured key."""
        try:
            return [model.id async for model in self._client.models.list()]
        except openai.APIError as e:
            raise CompletionError(f"Failed to list OpenAI models: {e}") from e
