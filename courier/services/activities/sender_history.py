from __future__ import annotations

import logging

from courier.domain.messages import MessageEvent
from courier.services.stores import SenderHistoryStore


logger = logging.getLogger(__name__)


async def record_sender_contact(
    store: SenderHistoryStore,
    event: MessageEvent,
    *,
    log_prefix: str,
) -> None:
    # Recorded for every message, whether or not any channel ends up notified.
    await store.upsert_version(event.recipient_id, event.sender_service_id, event.service_version)
    logger.debug(
        "%s|SENDER_SERVICE=%s|VERSION=%s|SENDER_HISTORY_RECORDED",
        log_prefix,
        event.sender_service_id,
        event.service_version,
    )
