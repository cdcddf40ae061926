"""Configuration loading and validation."""

from .loader import load_config, load_config_from_env
from .schema import (
    AnthropicConfig,
    ConversationConfig,
    LLMConfig,
    LoggingConfig,
    OpenAIConfig,
    RelayConfig,
    SlackConfig,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_env",
    # Root config
    "RelayConfig",
    # Top-level configs
    "SlackConfig",
    "LLMConfig",
    "ConversationConfig",
    "LoggingConfig",
    # Provider-specific configs
    "OpenAIConfig",
    "AnthropicConfig",
]
