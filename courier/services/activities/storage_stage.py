from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import ValidationError

from courier.core.errors import InfrastructureError, PermanentStoreError
from courier.domain.messages import Channel, MessageEvent
from courier.domain.results import (
    ActivityOutcome,
    FailureReason,
    Ok,
    StageResult,
    StorageFailure,
    StorageSuccess,
)
from courier.services.activities.common import fatal, log_prefix, readable_report
from courier.services.activities.content import flip_visibility, store_content
from courier.services.activities.profile_gate import RecipientDenied, check_recipient
from courier.services.stores import ContentBlobStore, MessageRecordStore, ProfileStore
from courier.services.telemetry import record_activity


logger = logging.getLogger(__name__)

ACTIVITY_NAME = "StoreMessageContentActivity"
_METRIC = "store_message_content"


def _ordered(channels: frozenset[Channel]) -> list[Channel]:
    # Emit blocked channels in enum order so identical inputs serialize identically.
    return [channel for channel in Channel if channel in channels]


def _done(result: StageResult, *, started: float) -> Ok[StageResult]:
    outcome = "success" if isinstance(result, StorageSuccess) else f"failure.{result.reason.value.lower()}"
    record_activity(
        activity=_METRIC,
        outcome=outcome,
        latency_ms=(time.monotonic() - started) * 1000.0,
    )
    return Ok(result)


async def run_storage_stage(
    raw_input: Any,
    *,
    profile_store: ProfileStore,
    content_store: ContentBlobStore,
    message_store: MessageRecordStore,
) -> ActivityOutcome[StageResult]:
    """Persist a message's content and make it visible to its recipient.

    Returns ``Ok(StorageFailure)`` for undecodable input and for every profile
    policy denial, and ``PERMANENT_ERROR`` when a store rejects the message
    outright (bad blob key, no matching message record); those are final
    and must not be retried. Store faults come back as ``Fatal`` so the whole
    stage is re-run. Re-running is safe: the content write overwrites and the
    pending flag only ever moves to false.
    """
    started = time.monotonic()
    try:
        event = MessageEvent.model_validate(raw_input)
    except ValidationError as exc:
        logger.error("%s|Unable to parse MessageEvent|ERROR=%s", ACTIVITY_NAME, readable_report(exc))
        return _done(StorageFailure(reason=FailureReason.BAD_DATA), started=started)

    prefix = log_prefix(ACTIVITY_NAME, message_id=event.id, recipient_id=event.recipient_id)
    logger.debug("%s|STARTING", prefix)

    try:
        decision = await check_recipient(
            profile_store,
            recipient_id=event.recipient_id,
            sender_service_id=event.sender_service_id,
            log_prefix=prefix,
        )
    except InfrastructureError as exc:
        return fatal(logger, prefix, step="profile_lookup", error=exc)
    if isinstance(decision, RecipientDenied):
        return _done(StorageFailure(reason=decision.reason), started=started)

    try:
        await store_content(
            content_store,
            message_id=event.id,
            recipient_id=event.recipient_id,
            content=event.content,
            log_prefix=prefix,
        )
    except PermanentStoreError as exc:
        logger.error("%s|RESULT=%s|ERROR=%s", prefix, FailureReason.PERMANENT_ERROR.value, exc)
        return _done(StorageFailure(reason=FailureReason.PERMANENT_ERROR), started=started)
    except InfrastructureError as exc:
        return fatal(logger, prefix, step="content_store", error=exc)

    try:
        await flip_visibility(
            message_store,
            message_id=event.id,
            recipient_id=event.recipient_id,
            log_prefix=prefix,
        )
    except PermanentStoreError as exc:
        logger.error("%s|RESULT=%s|ERROR=%s", prefix, FailureReason.PERMANENT_ERROR.value, exc)
        return _done(StorageFailure(reason=FailureReason.PERMANENT_ERROR), started=started)
    except InfrastructureError as exc:
        return fatal(logger, prefix, step="visibility_flip", error=exc)

    logger.debug("%s|RESULT=SUCCESS", prefix)
    return _done(
        StorageSuccess(
            profile=decision.profile,
            blocked_inbox_or_channels=_ordered(decision.blocked_channels),
        ),
        started=started,
    )
