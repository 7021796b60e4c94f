from __future__ import annotations

import logging
from typing import Any

from arq import Retry
from arq.connections import RedisSettings
from pydantic import ValidationError
from redis.exceptions import RedisError

from courier.core.config import get_settings
from courier.domain.messages import MessageEvent, MessageStatusValue
from courier.domain.results import (
    ActivityOutcome,
    Fatal,
    FailureReason,
    PlanningInput,
    StorageSuccess,
)
from courier.persistence.db import build_engine, build_session_factory
from courier.services.activities import (
    run_planning_stage,
    run_status_update,
    run_storage_stage,
)
from courier.services.queue import (
    CREATE_NOTIFICATION_JOB,
    STORE_MESSAGE_CONTENT_JOB,
    UPDATE_MESSAGE_STATUS_JOB,
    enqueue_create_notification,
    enqueue_status_update,
)
from courier.services.stores import Stores, build_sql_stores
from courier.services.telemetry import activity_stats, counters_snapshot


logger = logging.getLogger(__name__)


def _retry_defer_s(ctx: dict[str, Any]) -> int:
    # Linear backoff keyed on arq's attempt counter; arq caps attempts via max_tries.
    settings = ctx.get("settings") or get_settings()
    attempt = int(ctx.get("job_try") or 1)
    return max(0, int(settings.activity_retry_backoff_s)) * attempt


def _unwrap(ctx: dict[str, Any], outcome: ActivityOutcome[Any]) -> Any:
    # The only place a fatal signal becomes an exception: arq retries jobs that raise Retry.
    if isinstance(outcome, Fatal):
        raise Retry(defer=_retry_defer_s(ctx)) from outcome.error
    return outcome.value


async def _chain(ctx: dict[str, Any], enqueue) -> None:
    # The activity already succeeded and is idempotent; if the handoff fails, run it all again.
    try:
        await enqueue
    except (RedisError, OSError) as exc:
        logger.error("job chaining failed; retrying activity", exc_info=exc)
        raise Retry(defer=_retry_defer_s(ctx)) from exc


async def store_message_content(ctx: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    stores: Stores = ctx["stores"]
    result = _unwrap(
        ctx,
        await run_storage_stage(
            payload,
            profile_store=stores.profiles,
            content_store=stores.contents,
            message_store=stores.messages,
        ),
    )
    encoded = result.model_dump(mode="json")
    if isinstance(result, StorageSuccess):
        event = MessageEvent.model_validate(payload)
        await _chain(
            ctx,
            enqueue_create_notification(
                ctx["redis"],
                message_id=event.id,
                created_message_event=event.model_dump(mode="json"),
                storage_result=encoded,
            ),
        )
    elif result.reason is not FailureReason.BAD_DATA:
        event = MessageEvent.model_validate(payload)
        await _chain(
            ctx,
            enqueue_status_update(ctx["redis"], message_id=event.id, status=MessageStatusValue.REJECTED),
        )
    return encoded


async def create_notification(ctx: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    stores: Stores = ctx["stores"]
    settings = ctx.get("settings") or get_settings()
    result = _unwrap(
        ctx,
        await run_planning_stage(
            payload,
            sender_history_store=stores.sender_history,
            notification_store=stores.notifications,
            default_webhook_url=settings.default_webhook_url,
        ),
    )
    try:
        message_id = PlanningInput.model_validate(payload).created_message_event.id
    except ValidationError:
        # Already logged by the activity; there is no message to mark.
        message_id = None
    if message_id is not None:
        await _chain(
            ctx,
            enqueue_status_update(ctx["redis"], message_id=message_id, status=MessageStatusValue.PROCESSED),
        )
    return result.model_dump(mode="json")


async def update_message_status(ctx: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    stores: Stores = ctx["stores"]
    result = _unwrap(ctx, await run_status_update(payload, status_store=stores.statuses))
    return result.model_dump(mode="json")


async def _startup(ctx) -> None:
    # Build stores once per worker process; every job shares the same session factory.
    settings = get_settings()
    engine = build_engine(settings)
    ctx["settings"] = settings
    ctx["engine"] = engine
    ctx["stores"] = build_sql_stores(build_session_factory(engine), settings)
    logger.info(
        "activity worker started queue=%s functions=%s",
        settings.activity_queue_name,
        ",".join((STORE_MESSAGE_CONTENT_JOB, CREATE_NOTIFICATION_JOB, UPDATE_MESSAGE_STATUS_JOB)),
    )


async def _shutdown(ctx) -> None:
    logger.info(
        "activity worker stopping outcomes_1h=%s counters=%s",
        activity_stats(window_s=3600),
        counters_snapshot(),
    )
    ctx.pop("stores", None)
    engine = ctx.pop("engine", None)
    if engine is not None:
        await engine.dispose()


class WorkerSettings:
    # Keep worker configuration as class attributes for arq CLI compatibility.
    settings = get_settings()
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    queue_name = settings.activity_queue_name
    max_tries = max(1, int(settings.activity_max_tries))
    max_jobs = max(1, int(settings.activity_max_jobs))
    job_timeout = max(1, int(settings.activity_job_timeout_s))
    functions = [store_message_content, create_notification, update_message_status]
    on_startup = _startup
    on_shutdown = _shutdown
