from __future__ import annotations

from collections.abc import Callable
import logging
import time
from typing import Any

from pydantic import ValidationError

from courier.core.errors import InfrastructureError
from courier.domain.results import (
    ActivityOutcome,
    Ok,
    PlanningInput,
    PlanNone,
    PlanResult,
    PlanSome,
)
from courier.services.activities.common import fatal, log_prefix, readable_report
from courier.services.activities.notification_factory import (
    create_notification_record,
    new_notification_id,
)
from courier.services.activities.planner import plan_channels
from courier.services.activities.sender_history import record_sender_contact
from courier.services.stores import NotificationStore, SenderHistoryStore
from courier.services.telemetry import record_activity


logger = logging.getLogger(__name__)

ACTIVITY_NAME = "CreateNotificationActivity"
_METRIC = "create_notification"


def _done(result: PlanResult, *, started: float) -> Ok[PlanResult]:
    record_activity(
        activity=_METRIC,
        outcome=result.kind,
        latency_ms=(time.monotonic() - started) * 1000.0,
    )
    return Ok(result)


async def run_planning_stage(
    raw_input: Any,
    *,
    sender_history_store: SenderHistoryStore,
    notification_store: NotificationStore,
    default_webhook_url: str,
    id_factory: Callable[[], str] = new_notification_id,
) -> ActivityOutcome[PlanResult]:
    """Record the sender contact, then plan and persist the notification.

    Undecodable input yields ``PlanNone``: nothing destructive has happened
    yet, so a quiet no-op is safe. A failed store write is ``Fatal``; the
    sender history upsert is idempotent, so re-running the stage after a
    partial success is harmless.
    """
    started = time.monotonic()
    try:
        planning_input = PlanningInput.model_validate(raw_input)
    except ValidationError as exc:
        logger.error("%s|Unable to parse PlanningInput|ERROR=%s", ACTIVITY_NAME, readable_report(exc))
        return _done(PlanNone(), started=started)

    event = planning_input.created_message_event
    storage_result = planning_input.storage_result
    prefix = log_prefix(ACTIVITY_NAME, message_id=event.id, recipient_id=event.recipient_id)
    logger.debug("%s|STARTING", prefix)

    try:
        await record_sender_contact(sender_history_store, event, log_prefix=prefix)
    except InfrastructureError as exc:
        return fatal(logger, prefix, step="sender_history", error=exc)

    channels = plan_channels(
        storage_result.profile,
        storage_result.blocked_inbox_or_channels,
        event.sender_metadata,
        default_webhook_url=default_webhook_url,
        log_prefix=prefix,
    )

    try:
        result = await create_notification_record(
            notification_store,
            event,
            channels,
            log_prefix=prefix,
            id_factory=id_factory,
        )
    except InfrastructureError as exc:
        return fatal(logger, prefix, step="notification_create", error=exc)

    if isinstance(result, PlanSome):
        logger.debug(
            "%s|HAS_EMAIL=%s|HAS_WEBHOOK=%s", prefix, result.has_email, result.has_webhook
        )
    return _done(result, started=started)
