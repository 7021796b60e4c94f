from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from courier.core.errors import InfrastructureError
from courier.domain.results import ActivityOutcome, Ok, StatusUpdateInput, StatusUpdateResult
from courier.services.activities.common import fatal, readable_report
from courier.services.stores import MessageStatusStore
from courier.services.telemetry import increment_counter


logger = logging.getLogger(__name__)

ACTIVITY_NAME = "MessageStatusUpdaterActivity"


async def run_status_update(
    raw_input: Any,
    *,
    status_store: MessageStatusStore,
) -> ActivityOutcome[StatusUpdateResult]:
    try:
        update = StatusUpdateInput.model_validate(raw_input)
    except ValidationError as exc:
        logger.error("%s|ERROR=%s", ACTIVITY_NAME, readable_report(exc))
        increment_counter("update_message_status.failure")
        return Ok(StatusUpdateResult(kind="FAILURE"))

    prefix = f"{ACTIVITY_NAME}|MESSAGE_ID={update.message_id}|STATUS={update.status.value}"
    try:
        await status_store.upsert_status(update.message_id, update.status)
    except InfrastructureError as exc:
        return fatal(logger, prefix, step="status_upsert", error=exc)

    logger.debug("%s|RESULT=SUCCESS", prefix)
    increment_counter("update_message_status.success")
    return Ok(StatusUpdateResult(kind="SUCCESS"))
