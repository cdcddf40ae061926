"""Protocol definitions for pluggable adapters."""

from .chat import ThreadClient
from .llm import CompletionProvider

__all__ = ["CompletionProvider", "ThreadClient"]
