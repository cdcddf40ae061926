"""AWS Lambda host behind an API Gateway proxy integration.

Slack posts events to the gateway, which invokes ``handler``. Lambda may
freeze the process as soon as a response is returned, so the Bolt app runs
listeners before acknowledging (``process_before_response``). A slow
completion therefore exceeds Slack's three second ack window and Slack
retries with ``http_timeout``; the event gate drops those retries.

Configuration comes from flat environment variables (see
``config.loader.load_config_from_env``), read once per cold start.
"""

from __future__ import annotations

import asyncio
import base64
import functools
import os
from typing import TYPE_CHECKING, Any

import structlog
from slack_bolt.request.async_request import AsyncBoltRequest

from ...adapters.chat.slack import create_slack_app

if TYPE_CHECKING:
    from slack_bolt.app.async_app import AsyncApp
    from slack_bolt.response import BoltResponse

    from ...config.schema import RelayConfig

log = structlog.get_logger()


def to_bolt_request(event: dict[str, Any]) -> AsyncBoltRequest:
    """Convert an API Gateway proxy event into a Bolt request."""
    body = event.get("body") or ""
    if event.get("isBase64Encoded") and body:
        body = base64.b64decode(body).decode("utf-8")

    return AsyncBoltRequest(
        body=body,
        query=event.get("queryStringParameters") or {},
        headers=event.get("headers") or {},
    )


def to_proxy_response(response: BoltResponse) -> dict[str, Any]:
    """Convert a Bolt response into an API Gateway proxy response."""
    return {
        "statusCode": response.status,
        "body": response.body,
        "headers": response.first_headers(),
    }


class LambdaHost:
    """Serves Slack HTTP deliveries through a Bolt app inside Lambda.

    The event loop is kept across warm invocations so SDK connection
    pools stay bound to a live loop.

    Example:
        host = LambdaHost(config)
        response = host.handle(api_gateway_event)
    """

    def __init__(self, config: RelayConfig, app: AsyncApp | None = None) -> None:
        """Initialize the host.

        Args:
            config: Application configuration
            app: Prebuilt Bolt app. If None, creates one from ``config``.
        """
        if app is None:
            from ...core.relay import create_relay

            app = create_slack_app(
                config.slack,
                create_relay(config),
                process_before_response=True,
            )

        self._app = app
        self._loop = asyncio.new_event_loop()

    async def dispatch(self, event: dict[str, Any]) -> dict[str, Any]:
        """Dispatch one gateway event through the Bolt app."""
        response = await self._app.async_dispatch(to_bolt_request(event))
        log.debug("lambda_request_dispatched", status=response.status)
        return to_proxy_response(response)

    def handle(self, event: dict[str, Any]) -> dict[str, Any]:
        """Synchronous entry point for the Lambda runtime."""
        return self._loop.run_until_complete(self.dispatch(event))


@functools.cache
def get_host() -> LambdaHost:
    """Build the host once per cold start from the environment.

    The deployment is HTTP by definition, so lambda mode is forced and
    ``SLACK_APP_TOKEN`` is never required.
    """
    from ...config.loader import load_config_from_env
    from ...utils.logging import configure_logging, register_secrets

    config = load_config_from_env({**os.environ, "SLACK_MODE": "lambda"})
    configure_logging(level=config.logging.level, log_format=config.logging.format)
    register_secrets(config.secret_values())

    log.info("lambda_host_created", provider=config.llm.provider)
    return LambdaHost(config)


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """AWS Lambda handler function."""
    return get_host().handle(event)
