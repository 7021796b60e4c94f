from __future__ import annotations

import logging
from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

from courier.core.config import Settings, get_settings
from courier.domain.messages import MessageEvent, MessageStatusValue


logger = logging.getLogger(__name__)

STORE_MESSAGE_CONTENT_JOB = "store_message_content"
CREATE_NOTIFICATION_JOB = "create_notification"
UPDATE_MESSAGE_STATUS_JOB = "update_message_status"


async def create_redis_pool(settings: Settings | None = None) -> ArqRedis:
    # Callers own the pool and close it; the worker gets its own from arq.
    settings = settings or get_settings()
    return await create_pool(
        RedisSettings.from_dsn(settings.redis_url),
        default_queue_name=settings.activity_queue_name,
    )


def store_content_job_id(message_id: str) -> str:
    return f"store-message-content:{message_id}"


def create_notification_job_id(message_id: str) -> str:
    return f"create-notification:{message_id}"


def status_job_id(message_id: str, status: MessageStatusValue) -> str:
    return f"message-status:{message_id}:{status.value}"


async def _enqueue(redis: ArqRedis, function: str, payload: dict[str, Any], *, job_id: str) -> str:
    settings = get_settings()
    job = await redis.enqueue_job(
        function,
        payload,
        _job_id=job_id,
        _queue_name=settings.activity_queue_name,
    )
    if job is None:
        # arq refuses duplicate job ids while the first job (or its result) is still around.
        logger.debug("job %s already enqueued; skipping duplicate", job_id)
    return job_id


async def enqueue_created_message(redis: ArqRedis, event: MessageEvent) -> str:
    # Entry point for intake: the message record already exists with pending=true.
    return await _enqueue(
        redis,
        STORE_MESSAGE_CONTENT_JOB,
        event.model_dump(mode="json"),
        job_id=store_content_job_id(event.id),
    )


async def enqueue_create_notification(
    redis: ArqRedis,
    *,
    message_id: str,
    created_message_event: dict[str, Any],
    storage_result: dict[str, Any],
) -> str:
    return await _enqueue(
        redis,
        CREATE_NOTIFICATION_JOB,
        {"created_message_event": created_message_event, "storage_result": storage_result},
        job_id=create_notification_job_id(message_id),
    )


async def enqueue_status_update(redis: ArqRedis, *, message_id: str, status: MessageStatusValue) -> str:
    return await _enqueue(
        redis,
        UPDATE_MESSAGE_STATUS_JOB,
        {"message_id": message_id, "status": status.value},
        job_id=status_job_id(message_id, status),
    )
