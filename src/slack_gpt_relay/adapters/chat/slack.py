"""Slack adapter using slack-bolt.

This module wires the relay into a Slack ``AsyncApp``:

- ``SlackThreadClient`` implements the ThreadClient protocol over the
  Web API (``conversations.replies`` / ``chat.postMessage``)
- ``build_event_context`` combines Bolt's context and the retry headers into
  an EventContext
- ``create_slack_app`` registers the relay's event handlers on an app that
  either hosting adapter (Socket Mode or Lambda) can drive
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog
from slack_bolt.app.async_app import AsyncApp
from slack_bolt.request.async_request import AsyncBoltRequest
from slack_bolt.response import BoltResponse
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from ...config.schema import SlackConfig
from ...models.conversation import RawThreadMessage
from ...models.event import EventContext, ThreadRef

if TYPE_CHECKING:
    from ...core.relay import ChatRelay, EventHandler


log = structlog.get_logger()

# Page size for conversations.replies
REPLIES_PAGE_LIMIT = 200


class SlackAdapterError(Exception):
    """Base exception for Slack adapter errors."""


class FetchError(SlackAdapterError):
    """Raised when reading thread history fails."""


class SendError(SlackAdapterError):
    """Raised when sending a message fails."""


class SlackThreadClient:
    """Thread operations backed by the Slack Web API.

    One instance is created per event around the client Bolt hands the
    listener, so the bot token in use is always the one that received
    the event.

    Example:
        chat = SlackThreadClient(client)
        messages = await chat.fetch_thread(ThreadRef("C123", "1700000000.000100"))
        await chat.post_reply(ThreadRef("C123", "1700000000.000100"), "Ahoy!")
    """

    def __init__(self, client: AsyncWebClient, token: str | None = None) -> None:
        """Initialize the thread client.

        Args:
            client: Slack Web API client.
            token: Bot token overriding the client's own, if any.
        """
        self._client = client
        self._token = token

    async def fetch_thread(self, thread: ThreadRef) -> list[RawThreadMessage]:
        """Return all messages of a thread, root first.

        Raises:
            FetchError: If the history query fails.
        """
        messages: list[RawThreadMessage] = []
        cursor: str | None = None

        while True:
            kwargs: dict[str, Any] = {
                "channel": thread.channel,
                "ts": thread.thread_ts,
                "inclusive": True,
                "limit": REPLIES_PAGE_LIMIT,
            }
            if self._token:
                kwargs["token"] = self._token
            if cursor:
                kwargs["cursor"] = cursor

            try:
                result = await self._client.conversations_replies(**kwargs)
            except SlackApiError as e:
                log.error(
                    "fetch_thread_failed",
                    channel=thread.channel,
                    thread_ts=thread.thread_ts,
                    error=str(e),
                )
                raise FetchError(f"Failed to fetch thread: {e}") from e

            page: list[dict[str, Any]] = result.get("messages") or []
            messages.extend(RawThreadMessage.from_slack(m) for m in page)

            metadata: dict[str, Any] = result.get("response_metadata") or {}
            cursor = metadata.get("next_cursor")
            if not result.get("has_more") or not cursor:
                break

        log.debug("thread_fetched", channel=thread.channel, messages=len(messages))
        return messages

    async def post_reply(self, thread: ThreadRef, text: str) -> str:
        """Post text into the thread.

        Returns:
            Message ID (ts) of the posted reply.

        Raises:
            SendError: If message delivery fails.
        """
        kwargs: dict[str, Any] = {
            "channel": thread.channel,
            "thread_ts": thread.thread_ts,
            "text": text,
        }
        if self._token:
            kwargs["token"] = self._token

        try:
            result = await self._client.chat_postMessage(**kwargs)
        except SlackApiError as e:
            log.error(
                "send_reply_failed",
                channel=thread.channel,
                thread_ts=thread.thread_ts,
                error=str(e),
            )
            raise SendError(f"Failed to send message: {e}") from e

        message_ts: str = result.get("ts", "")
        log.debug("message_sent", channel=thread.channel, message_ts=message_ts)
        return message_ts


RETRY_NUM_HEADER = "x-slack-retry-num"
RETRY_REASON_HEADER = "x-slack-retry-reason"


def _first_header(headers: Mapping[str, Sequence[str]], name: str) -> str | None:
    values = headers.get(name) or []
    return values[0] if values else None


def _parse_retry_num(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def build_event_context(
    context: Mapping[str, Any],
    headers: Mapping[str, Sequence[str]],
) -> EventContext:
    """Build an EventContext for one delivery.

    The bot identity comes from Bolt's authorization step (``context``).
    Retry metadata is only available as the ``X-Slack-Retry-*`` request
    headers, which Bolt hands over normalized to lowercase keys with list
    values. Socket Mode deliveries carry the same headers.
    """
    return EventContext(
        bot_user_id=context.get("bot_user_id"),
        bot_id=context.get("bot_id"),
        retry_num=_parse_retry_num(_first_header(headers, RETRY_NUM_HEADER)),
        retry_reason=_first_header(headers, RETRY_REASON_HEADER) or None,
    )


def _make_listener(handler: EventHandler) -> Any:
    """Adapt a relay handler to Bolt's keyword-injected listener signature."""

    async def listener(
        event: dict[str, Any],
        context: Mapping[str, Any],
        client: AsyncWebClient,
        request: AsyncBoltRequest,
    ) -> None:
        event_context = build_event_context(context, request.headers)
        await handler(event, event_context, SlackThreadClient(client))

    return listener


async def _handle_error(error: Exception, body: dict[str, Any]) -> BoltResponse:
    """Log listener failures that escaped the relay."""
    event: dict[str, Any] = body.get("event") or {}
    log.error(
        "slack_listener_failed",
        event_type=event.get("type", "unknown"),
        channel=event.get("channel"),
        error_type=type(error).__name__,
        error=str(error),
    )
    return BoltResponse(status=200, body="")


def create_slack_app(
    config: SlackConfig,
    relay: ChatRelay,
    *,
    process_before_response: bool = False,
) -> AsyncApp:
    """Create a Bolt app with the relay's event handlers registered.

    Args:
        config: Slack-specific configuration.
        relay: The relay whose ``event_handlers`` are registered.
        process_before_response: Run listeners before acknowledging the
            request. Required when the host cannot keep working after
            the HTTP response, as on Lambda.

    Returns:
        The configured AsyncApp.
    """
    app = AsyncApp(
        token=config.bot_token,
        signing_secret=config.signing_secret,
        process_before_response=process_before_response,
    )

    for kind, handler in relay.event_handlers.items():
        app.event(kind.value)(_make_listener(handler))
        log.debug("slack_listener_registered", event_kind=kind.value)

    app.error(_handle_error)
    return app
