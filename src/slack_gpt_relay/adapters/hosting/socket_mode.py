"""Socket Mode host: keeps a long-lived connection to Slack open.

The host:
- connects the Bolt app through ``AsyncSocketModeHandler``
- logs the models visible to the configured completion key
- blocks until SIGINT/SIGTERM, then closes the connection
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

import structlog
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler

from ...adapters.chat.slack import create_slack_app
from ...utils.errors import CompletionError

if TYPE_CHECKING:
    from slack_bolt.app.async_app import AsyncApp

    from ...config.schema import SlackConfig
    from ...core.relay import ChatRelay

log = structlog.get_logger()


class HostError(Exception):
    """Base exception for hosting errors."""


class StartupError(HostError):
    """Failed to start the host."""


class SocketModeHost:
    """Runs the relay over a Slack Socket Mode connection.

    Example:
        host = SocketModeHost(config.slack, relay)
        await host.start()  # Blocks until shutdown signal
    """

    def __init__(self, config: SlackConfig, relay: ChatRelay) -> None:
        """Initialize the host.

        Args:
            config: Slack-specific configuration (``app_token`` required)
            relay: Relay whose handlers serve the events
        """
        if not config.app_token:
            raise ValueError("Socket mode requires a Slack app token")

        self._config = config
        self._relay = relay
        self._app: AsyncApp = create_slack_app(config, relay)
        self._handler: AsyncSocketModeHandler | None = None
        self._shutdown_event: asyncio.Event | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Return True if the host is currently connected."""
        return self._running

    async def start(self) -> None:
        """Connect to Slack and serve events until shutdown is requested.

        Raises:
            StartupError: If the connection cannot be established
        """
        if self._running:
            log.warning("host_already_running")
            return

        self._shutdown_event = asyncio.Event()
        await self.log_available_models()

        try:
            self._handler = AsyncSocketModeHandler(
                app=self._app,
                app_token=self._config.app_token,
            )
            await self._handler.connect_async()  # type: ignore[no-untyped-call]
        except Exception as e:
            log.exception("slack_connection_failed", error=str(e))
            raise StartupError(f"Failed to connect to Slack: {e}") from e

        self._setup_signal_handlers()
        self._running = True
        log.info("slack_connected", model=self._relay.llm.model_name)

        await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Close the Socket Mode connection."""
        if not self._running:
            log.warning("host_not_running")
            return

        log.info("host_stopping")

        if self._handler:
            try:
                await self._handler.close_async()  # type: ignore[no-untyped-call]
            except Exception as e:
                log.warning("disconnect_error", error=str(e))

        self._running = False
        if self._shutdown_event:
            self._shutdown_event.set()
        log.info("slack_disconnected")

    async def log_available_models(self) -> None:
        """Log the model ids the completion key can use, best effort."""
        try:
            models = await self._relay.llm.list_models()
        except CompletionError as e:
            log.warning("model_listing_failed", error=str(e))
            return

        log.info("available_models", count=len(models), models=sorted(models))

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s: asyncio.create_task(self._handle_signal(s)),
                sig,
            )
            log.debug("signal_handler_registered", signal=sig.name)

    async def _handle_signal(self, sig: signal.Signals) -> None:
        log.info("received_signal", signal=sig.name)
        await self.stop()
