"""Concrete implementations of provider interfaces."""

from .chat.slack import SlackThreadClient, create_slack_app
from .llm.anthropic import AnthropicAdapter
from .llm.openai import OpenAIAdapter

__all__ = [
    "AnthropicAdapter",
    "OpenAIAdapter",
    "SlackThreadClient",
    "create_slack_app",
]
