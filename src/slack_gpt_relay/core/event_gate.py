"""Decide whether an inbound Slack event should trigger a completion.

Slack redelivers an event when the first delivery was not acknowledged
within three seconds (``X-Slack-Retry-Reason: http_timeout``). In the
Lambda deployment the listener runs before the ack, so every slow
completion produces such a retry; answering it would post the reply twice.
"""

from __future__ import annotations

from typing import Any

import structlog

from slack_gpt_relay.core.transcript import contains_mention
from slack_gpt_relay.models.event import EventContext, EventKind, GateDecision, SkipReason

log = structlog.get_logger()

TIMEOUT_RETRY_REASON = "http_timeout"

PROCEED = GateDecision(proceed=True)


def is_timeout_retry(
    context: EventContext,
    timeout_reason: str = TIMEOUT_RETRY_REASON,
) -> bool:
    """Return True if this delivery repeats one already being handled."""
    if not context.is_retry or context.retry_reason != timeout_reason:
        if context.is_retry:
            log.debug(
                "slack_retry_received",
                retry_num=context.retry_num,
                retry_reason=context.retry_reason,
            )
        return False

    log.info(
        "timeout_retry_ignored",
        retry_num=context.retry_num,
        retry_reason=context.retry_reason,
    )
    return True


def should_process(
    kind: EventKind | str,
    event: dict[str, Any],
    context: EventContext,
    timeout_reason: str = TIMEOUT_RETRY_REASON,
) -> GateDecision:
    """Apply the event filtering rules.

    Args:
        kind: Slack event type
        event: The ``event`` payload
        context: Delivery metadata
        timeout_reason: Retry reason that marks a duplicate delivery

    Returns:
        GateDecision; falsy with a reason when the event is skipped
    """
    try:
        kind = EventKind(kind)
    except ValueError:
        return GateDecision(False, SkipReason.UNSUPPORTED_EVENT)

    if is_timeout_retry(context, timeout_reason):
        return GateDecision(False, SkipReason.TIMEOUT_RETRY)

    if kind is EventKind.APP_MENTION:
        return PROCEED

    # Plain message events from here on
    if event.get("subtype"):
        return GateDecision(False, SkipReason.HAS_SUBTYPE)

    if not event.get("thread_ts"):
        return GateDecision(False, SkipReason.NOT_IN_THREAD)

    # Slack also delivers an app_mention for this message
    if contains_mention(event.get("text"), context.bot_user_id):
        return GateDecision(False, SkipReason.MENTION_IN_MESSAGE)

    return PROCEED
