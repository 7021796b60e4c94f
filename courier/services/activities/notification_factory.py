from __future__ import annotations

from collections.abc import Callable
import logging
from uuid import uuid4

from courier.domain.messages import (
    MessageEvent,
    Notification,
    NotificationChannels,
    NotificationEvent,
)
from courier.domain.results import PlanNone, PlanResult, PlanSome
from courier.services.stores import NotificationStore


logger = logging.getLogger(__name__)


def new_notification_id() -> str:
    return uuid4().hex


async def create_notification_record(
    store: NotificationStore,
    event: MessageEvent,
    channels: NotificationChannels | None,
    *,
    log_prefix: str,
    id_factory: Callable[[], str] = new_notification_id,
) -> PlanResult:
    if channels is None:
        # Nothing to deliver, so nothing to track.
        logger.warning("%s|RESULT=NO_CHANNELS_ENABLED", log_prefix)
        return PlanNone()

    notification = await store.create(
        Notification(
            id=id_factory(),
            recipient_id=event.recipient_id,
            message_id=event.id,
            channels=channels,
        ),
        partition_key=event.recipient_id,
    )
    notification_event = NotificationEvent(
        content=event.content,
        message=event.message_metadata(),
        sender_metadata=event.sender_metadata,
        notification_id=notification.id,
    )
    logger.debug("%s|NOTIFICATION_ID=%s|RESULT=SUCCESS", log_prefix, notification.id)
    return PlanSome(
        has_email=notification.channels.email is not None,
        has_webhook=notification.channels.webhook is not None,
        notification_event=notification_event,
    )
