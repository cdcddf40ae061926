"""Data models and transfer objects."""

from .conversation import ChatTurn, RawThreadMessage, Role
from .event import EventContext, EventKind, GateDecision, RelayOutcome, SkipReason, ThreadRef

__all__ = [
    # Conversation models
    "Role",
    "ChatTurn",
    "RawThreadMessage",
    # Event models
    "EventKind",
    "EventContext",
    "ThreadRef",
    "SkipReason",
    "GateDecision",
    "RelayOutcome",
]
