"""Abstract interface for the chat platform seen by the relay."""

from typing import Protocol

from ..models.conversation import RawThreadMessage
from ..models.event import ThreadRef


class ThreadClient(Protocol):
    """Thread-level operations the relay needs from a chat platform.

    A fresh client is handed to the relay per event by the hosting
    adapter, carrying whatever credentials the platform call requires.
    """

    async def fetch_thread(self, thread: ThreadRef) -> list[RawThreadMessage]:
        """
        Return every message of a thread in chronological order.

        The root message at ``thread.thread_ts`` is included.

        Raises:
            FetchError: If the history query fails
        """
        ...

    async def post_reply(self, thread: ThreadRef, text: str) -> str:
        """
        Post text as a reply in the thread.

        Returns:
            Message ID of the posted reply

        Raises:
            SendError: If message delivery fails
        """
        ...
