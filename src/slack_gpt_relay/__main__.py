"""Command line entry point: ``slack-gpt-relay``.

Runs the relay over a Socket Mode connection. Configuration comes from a
YAML file (``-c``) or, with ``--env``, from the same flat environment
variables the Lambda deployment uses.
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from slack_gpt_relay._version import __version__
from slack_gpt_relay.config.schema import RelayConfig

log = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="slack-gpt-relay",
        description="Answer Slack threads with a chat-completion model",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config/config.yaml"),
        help="YAML configuration file (default: config/config.yaml)",
    )
    source.add_argument(
        "--env",
        action="store_true",
        help="Read configuration from environment variables",
    )

    parser.add_argument("-d", "--debug", action="store_true", help="Log at DEBUG level")
    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default=None,
        help="Log output format (default: console, or the configured format once loaded)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the configuration and exit",
    )
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="Print the models available to the completion API key and exit",
    )

    return parser.parse_args(argv)


def load_relay_config(config_path: Path | None) -> RelayConfig:
    """Load configuration from ``config_path``, or the environment if None.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the configuration is invalid
    """
    from slack_gpt_relay.config.loader import load_config, load_config_from_env

    if config_path is None:
        return load_config_from_env()
    return load_config(config_path)


async def serve(config: RelayConfig, list_models: bool = False) -> int:
    """Build the relay and run the Socket Mode host until shutdown.

    Returns:
        Exit code
    """
    from slack_gpt_relay.core.relay import create_relay

    relay = create_relay(config)

    if list_models:
        for model_id in sorted(await relay.llm.list_models()):
            print(model_id)
        return 0

    if config.slack.mode != "socket":
        log.error(
            "unsupported_mode_for_cli",
            mode=config.slack.mode,
            hint="deploy the Lambda handler",
        )
        return 1

    from slack_gpt_relay.adapters.hosting.socket_mode import SocketModeHost

    await SocketModeHost(config.slack, relay).start()
    return 0


async def run_relay(
    config_path: Path | None,
    dry_run: bool = False,
    list_models: bool = False,
    debug: bool = False,
    log_format: str | None = None,
) -> int:
    """Load configuration, set up logging and serve.

    Args:
        config_path: Configuration file, or None to read the environment
        dry_run: Only validate the configuration
        list_models: Print available models and exit
        debug: Log at DEBUG regardless of the configured level
        log_format: Output format overriding the configured one

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    log.info(
        "starting_slack_gpt_relay",
        version=__version__,
        config_source=str(config_path) if config_path else "environment",
    )

    try:
        config = load_relay_config(config_path)
    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1

    from slack_gpt_relay.utils.logging import configure_logging, register_secrets

    register_secrets(config.secret_values())
    configure_logging(
        level="DEBUG" if debug else config.logging.level,
        log_format=log_format or config.logging.format,
        file_path=config.logging.file.path,
        file_enabled=config.logging.file.enabled,
    )
    log.info("configuration_loaded", mode=config.slack.mode, provider=config.llm.provider)

    if dry_run:
        log.info("dry_run_mode_config_valid")
        return 0

    try:
        return await serve(config, list_models=list_models)
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    from slack_gpt_relay.utils.logging import configure_logging

    configure_logging(level="DEBUG" if args.debug else "INFO", log_format=args.format or "console")

    try:
        return asyncio.run(
            run_relay(
                None if args.env else args.config,
                dry_run=args.dry_run,
                list_models=args.list_models,
                debug=args.debug,
                log_format=args.format,
            )
        )
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
