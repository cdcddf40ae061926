"""Slack GPT Relay: answers Slack threads with a chat-completion model."""
