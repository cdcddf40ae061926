"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .schema import RelayConfig


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ValueError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(f"Environment variable {var_name} not found")
        return value

    return re.sub(r"\$\{([^}]+)\}", replacer, text)


def load_config(path: Path) -> RelayConfig:
    """
    Load configuration from YAML file with environment variable substitution.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated RelayConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If environment variables are missing or config is invalid
        ValidationError: If config doesn't match schema
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open() as f:
        raw_yaml = f.read()

    yaml_with_env = substitute_env_vars(raw_yaml)
    config_dict = yaml.safe_load(yaml_with_env) or {}

    config = RelayConfig.model_validate(config_dict)
    validate_config(config)

    return config


def load_config_from_env(environ: Mapping[str, str] | None = None) -> RelayConfig:
    """
    Build configuration from flat environment variables.

    This is how the Lambda deployment is configured, where no config file
    ships with the function.

    Args:
        environ: Variable mapping (defaults to ``os.environ``)

    Returns:
        Validated RelayConfig instance

    Raises:
        ValueError: If config is invalid
        ValidationError: If config doesn't match schema
    """
    env = os.environ if environ is None else environ

    def pick(*names: str) -> str | None:
        for name in names:
            value = env.get(name)
            if value:
                return value
        return None

    slack: dict[str, Any] = {
        "bot_token": pick("SLACK_BOT_TOKEN") or "",
        "signing_secret": pick("SLACK_SIGNING_SECRET"),
        "app_token": pick("SLACK_APP_TOKEN"),
    }
    if mode := pick("SLACK_MODE"):
        slack["mode"] = mode

    provider = pick("LLM_PROVIDER") or "openai"
    llm: dict[str, Any] = {"provider": provider}
    model_name = pick("CHAT_MODEL_NAME")

    openai_key = pick("OPEN_AI_API_KEY", "OPENAI_API_KEY")
    if openai_key:
        llm["openai"] = {"api_key": openai_key}
        if model_name and provider == "openai":
            llm["openai"]["model"] = model_name

    anthropic_key = pick("ANTHROPIC_API_KEY")
    if anthropic_key:
        llm["anthropic"] = {"api_key": anthropic_key}
        if model_name and provider == "anthropic":
            llm["anthropic"]["model"] = model_name

    config_dict: dict[str, Any] = {"slack": slack, "llm": llm}

    if max_turns := pick("MAX_HISTORY_TURNS"):
        config_dict["conversation"] = {"max_history_turns": max_turns}

    logging_dict: dict[str, Any] = {}
    if level := pick("LOG_LEVEL"):
        logging_dict["level"] = level.upper()
    if log_format := pick("LOG_FORMAT"):
        logging_dict["format"] = log_format.lower()
    if logging_dict:
        config_dict["logging"] = logging_dict

    config = RelayConfig.model_validate(config_dict)
    validate_config(config)

    return config


def validate_config(config: RelayConfig) -> None:
    """
    Perform additional cross-field validation.

    Ensures that provider-specific configuration is present when
    a provider is selected, and that the selected Slack transport has
    the credentials it needs.

    Args:
        config: Configuration to validate

    Raises:
        ValueError: If provider-specific config is missing
    """
    if config.llm.provider == "openai" and config.llm.openai is None:
        raise ValueError("OpenAI provider selected but openai config missing")
    elif config.llm.provider == "anthropic" and config.llm.anthropic is None:
        raise ValueError("Anthropic provider selected but anthropic config missing")

    if config.slack.mode == "socket" and not config.slack.app_token:
        raise ValueError("Socket mode selected but slack app_token missing")
    elif config.slack.mode == "lambda" and not config.slack.signing_secret:
        raise ValueError("Lambda mode selected but slack signing_secret missing")
