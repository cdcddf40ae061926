"""Tests for the Slack adapter."""

from __future__ import annotations

import json
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from slack_bolt.request.async_request import AsyncBoltRequest
from slack_sdk.errors import SlackApiError
from slack_sdk.signature import SignatureVerifier
from slack_sdk.web.async_client import AsyncWebClient
from slack_sdk.web.async_slack_response import AsyncSlackResponse

from slack_gpt_relay.adapters.chat.slack import (
    REPLIES_PAGE_LIMIT,
    FetchError,
    SendError,
    SlackThreadClient,
    _handle_error,
    build_event_context,
    create_slack_app,
)
from slack_gpt_relay.config.schema import SlackConfig
from slack_gpt_relay.models.conversation import RawThreadMessage
from slack_gpt_relay.models.event import EventContext, EventKind, ThreadRef

THREAD = ThreadRef(channel="C123", thread_ts="1700000000.000100")


def _slack_error(error: str) -> SlackApiError:
    return SlackApiError(error, {"ok": False, "error": error})


@pytest.fixture
def mock_web_client() -> AsyncMock:
    """Create a mock AsyncWebClient."""
    client = AsyncMock()
    client.conversations_replies.return_value = {
        "ok": True,
        "messages": [
            {"ts": "1700000000.000100", "text": "<@UBOT123> be a pirate"},
            {"ts": "1700000001.000100", "text": "Arr!", "bot_id": "BBOT456"},
        ],
        "has_more": False,
    }
    client.chat_postMessage.return_value = {"ok": True, "ts": "1700000002.000100"}
    return client


@pytest.fixture
def thread_client(mock_web_client: AsyncMock) -> SlackThreadClient:
    """Create a thread client around the mock Web API client."""
    return SlackThreadClient(mock_web_client)


class TestFetchThread:
    """Test thread history reads."""

    async def test_single_page(
        self, thread_client: SlackThreadClient, mock_web_client: AsyncMock
    ) -> None:
        """Test that the root and replies are returned in order."""
        messages = await thread_client.fetch_thread(THREAD)

        assert messages == [
            RawThreadMessage("1700000000.000100", "<@UBOT123> be a pirate"),
            RawThreadMessage("1700000001.000100", "Arr!", "BBOT456"),
        ]
        mock_web_client.conversations_replies.assert_awaited_once_with(
            channel="C123",
            ts="1700000000.000100",
            inclusive=True,
            limit=REPLIES_PAGE_LIMIT,
        )

    async def test_follows_cursor(
        self, thread_client: SlackThreadClient, mock_web_client: AsyncMock
    ) -> None:
        """Test that every page of a long thread is read."""
        mock_web_client.conversations_replies.side_effect = [
            {
                "messages": [{"ts": "1.0", "text": "first"}],
                "has_more": True,
                "response_metadata": {"next_cursor": "page2"},
            },
            {
                "messages": [{"ts": "2.0", "text": "second"}],
                "has_more": False,
                "response_metadata": {"next_cursor": ""},
            },
        ]

        messages = await thread_client.fetch_thread(THREAD)

        assert [m.text for m in messages] == ["first", "second"]
        second_call = mock_web_client.conversations_replies.await_args_list[1]
        assert second_call.kwargs["cursor"] == "page2"

    async def test_token_override(self, mock_web_client: AsyncMock) -> None:
        """Test that an explicit token is passed on each call."""
        client = SlackThreadClient(mock_web_client, token="xoxb-other")
        await client.fetch_thread(THREAD)

        assert mock_web_client.conversations_replies.await_args.kwargs["token"] == "xoxb-other"

    async def test_missing_messages(
        self, thread_client: SlackThreadClient, mock_web_client: AsyncMock
    ) -> None:
        """Test that a response without messages yields an empty list."""
        mock_web_client.conversations_replies.return_value = {"ok": True}
        assert await thread_client.fetch_thread(THREAD) == []

    async def test_api_error(
        self, thread_client: SlackThreadClient, mock_web_client: AsyncMock
    ) -> None:
        """Test that Web API failures become FetchError."""
        mock_web_client.conversations_replies.side_effect = _slack_error("channel_not_found")

        with pytest.raises(FetchError, match="channel_not_found"):
            await thread_client.fetch_thread(THREAD)


class TestPostReply:
    """Test posting into threads."""

    async def test_posts_in_thread(
        self, thread_client: SlackThreadClient, mock_web_client: AsyncMock
    ) -> None:
        """Test that the reply targets the thread root."""
        ts = await thread_client.post_reply(THREAD, "Ahoy!")

        assert ts == "1700000002.000100"
        mock_web_client.chat_postMessage.assert_awaited_once_with(
            channel="C123",
            thread_ts="1700000000.000100",
            text="Ahoy!",
        )

    async def test_api_error(
        self, thread_client: SlackThreadClient, mock_web_client: AsyncMock
    ) -> None:
        """Test that Web API failures become SendError."""
        mock_web_client.chat_postMessage.side_effect = _slack_error("not_in_channel")

        with pytest.raises(SendError, match="not_in_channel"):
            await thread_client.post_reply(THREAD, "Ahoy!")


class TestBuildEventContext:
    """Test conversion of Bolt's context and request headers."""

    def test_first_delivery(self) -> None:
        """Test a delivery without retry headers."""
        context = build_event_context({"bot_user_id": "UBOT123", "bot_id": "BBOT456"}, {})

        assert context == EventContext("UBOT123", "BBOT456", None, None)
        assert not context.is_retry

    def test_retry_headers(self) -> None:
        """Test that retry number and reason are read from the headers."""
        context = build_event_context(
            {"bot_user_id": "UBOT123"},
            {"x-slack-retry-num": ["2"], "x-slack-retry-reason": ["http_timeout"]},
        )

        assert context.retry_num == 2
        assert context.retry_reason == "http_timeout"
        assert context.is_retry

    def test_retry_keys_in_context_ignored(self) -> None:
        """Test that only the headers carry retry metadata."""
        context = build_event_context({"retry_num": 2, "retry_reason": "http_timeout"}, {})

        assert context.retry_num is None
        assert context.retry_reason is None

    @pytest.mark.parametrize("value", [[""], ["abc"], []])
    def test_bad_retry_num(self, value: list[str]) -> None:
        """Test that unparseable retry numbers are ignored."""
        assert build_event_context({}, {"x-slack-retry-num": value}).retry_num is None


def _signed_request(body: str, signing_secret: str, headers: dict[str, str]) -> AsyncBoltRequest:
    timestamp = str(int(time.time()))
    signature = SignatureVerifier(signing_secret).generate_signature(
        timestamp=timestamp, body=body
    )
    return AsyncBoltRequest(
        body=body,
        headers={
            "content-type": "application/json",
            "x-slack-request-timestamp": timestamp,
            "x-slack-signature": signature,
            **headers,
        },
    )


def _auth_test_response() -> AsyncSlackResponse:
    return AsyncSlackResponse(
        client=AsyncWebClient(),
        http_verb="POST",
        api_url="https://slack.com/api/auth.test",
        req_args={},
        data={"ok": True, "user_id": "UBOT123", "bot_id": "BBOT456", "team_id": "T1"},
        headers={},
        status_code=200,
    )


class TestCreateSlackApp:
    """Test Bolt app construction."""

    @pytest.fixture
    def relay(self) -> MagicMock:
        """Create a relay stub with two handlers."""
        relay = MagicMock()
        relay.event_handlers = {
            EventKind.APP_MENTION: AsyncMock(),
            EventKind.MESSAGE: AsyncMock(),
        }
        return relay

    def test_registers_handlers(self, slack_config: SlackConfig, relay: MagicMock) -> None:
        """Test that every relay handler is registered by event name."""
        with patch("slack_gpt_relay.adapters.chat.slack.AsyncApp") as mock_app_cls:
            app = create_slack_app(slack_config, relay, process_before_response=True)

        mock_app_cls.assert_called_once_with(
            token=slack_config.bot_token,
            signing_secret=slack_config.signing_secret,
            process_before_response=True,
        )
        registered = [c.args[0] for c in app.event.call_args_list]
        assert registered == ["app_mention", "message"]
        app.error.assert_called_once_with(_handle_error)

    async def test_listener_invokes_handler(
        self, slack_config: SlackConfig, relay: MagicMock
    ) -> None:
        """Test that a registered listener forwards to the relay handler."""
        with patch("slack_gpt_relay.adapters.chat.slack.AsyncApp") as mock_app_cls:
            create_slack_app(slack_config, relay)

        app = mock_app_cls.return_value
        listener = app.event.return_value.call_args_list[0].args[0]
        event = {"type": "app_mention", "channel": "C123", "ts": "1.0"}
        web_client = AsyncMock()

        await listener(
            event=event,
            context={"bot_user_id": "UBOT123", "bot_id": "BBOT456"},
            client=web_client,
            request=MagicMock(headers={}),
        )

        handler = relay.event_handlers[EventKind.APP_MENTION]
        handler.assert_awaited_once()
        passed_event, passed_context, passed_chat = handler.await_args.args
        assert passed_event is event
        assert passed_context == EventContext("UBOT123", "BBOT456", None, None)
        assert isinstance(passed_chat, SlackThreadClient)

    async def test_dispatch_carries_retry_headers(
        self, slack_config: SlackConfig, relay: MagicMock
    ) -> None:
        """Test a signed redelivery reaching the handler with its retry metadata."""
        app = create_slack_app(slack_config, relay, process_before_response=True)
        body = json.dumps(
            {
                "token": "verification-token",
                "team_id": "T1",
                "api_app_id": "A1",
                "type": "event_callback",
                "event_id": "Ev1",
                "event_time": 1700000000,
                "event": {
                    "type": "app_mention",
                    "user": "U999",
                    "text": "<@UBOT123> be a pirate",
                    "ts": "1700000000.000100",
                    "channel": "C123",
                    "event_ts": "1700000000.000100",
                },
            }
        )
        request = _signed_request(
            body,
            slack_config.signing_secret,
            {"X-Slack-Retry-Num": "1", "X-Slack-Retry-Reason": "http_timeout"},
        )

        with patch.object(
            AsyncWebClient, "auth_test", new=AsyncMock(return_value=_auth_test_response())
        ):
            response = await app.async_dispatch(request)

        assert response.status == 200
        handler = relay.event_handlers[EventKind.APP_MENTION]
        handler.assert_awaited_once()
        passed_event, passed_context, _ = handler.await_args.args
        assert passed_event["channel"] == "C123"
        assert passed_context.bot_user_id == "UBOT123"
        assert passed_context.retry_num == 1
        assert passed_context.retry_reason == "http_timeout"
        assert passed_context.is_retry
        relay.event_handlers[EventKind.MESSAGE].assert_not_awaited()


class TestHandleError:
    """Test the Bolt error handler."""

    async def test_acknowledges(self) -> None:
        """Test that escaped failures are still acknowledged with 200."""
        response = await _handle_error(
            SendError("boom"), {"event": {"type": "message", "channel": "C123"}}
        )

        assert response.status == 200

    async def test_missing_event(self) -> None:
        """Test bodies without an event."""
        response = await _handle_error(RuntimeError("boom"), {})
        assert response.status == 200
