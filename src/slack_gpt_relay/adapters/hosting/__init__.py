"""Process hosts that deliver Slack events to the relay."""
