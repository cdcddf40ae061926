"""Abstract interface for chat-completion integrations."""

from collections.abc import Sequence
from typing import Protocol

from ..models.conversation import ChatTurn


class CompletionProvider(Protocol):
    """Abstract interface for chat-completion backends.

    Implemented by the OpenAI and Anthropic adapters.
    """

    async def complete(self, turns: Sequence[ChatTurn]) -> str:
        """
        Send a transcript and return the text of the first reply choice.

        Args:
            turns: Non-empty transcript, oldest turn first

        Returns:
            Reply text (possibly empty)

        Raises:
            CompletionError: If the call fails
            RateLimitError: If rate limit exceeded
            CompletionTimeoutError: If the request times out
        """
        ...

    async def list_models(self) -> list[str]:
        """
        Return the model identifiers available to the configured key.

        Raises:
            CompletionError: If the listing fails
        """
        ...

    @property
    def model_name(self) -> str:
        """
        Return the model identifier being used.

        Examples:
            - "gpt-3.5-turbo"
            - "claude-3-5-sonnet-20241022"
        """
        ...
