from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest
from arq import Retry
from redis.exceptions import ConnectionError as RedisConnectionError

from courier.core.config import Settings
from courier.core.errors import ProfileStoreError
from courier.domain.messages import MessageStatusValue
from courier.services.queue import enqueue_created_message
from courier.services.stores import Stores
from courier.tests.utils.factories import event_payload, make_event, make_profile
from courier.tests.utils.fakes import (
    InMemoryContentBlobStore,
    InMemoryMessageRecordStore,
    InMemoryMessageStatusStore,
    InMemoryNotificationStore,
    InMemoryProfileStore,
    InMemorySenderHistoryStore,
)
from courier.workers import activity_worker


@dataclass
class _Job:
    job_id: str


class FakeArqRedis:
    def __init__(self) -> None:
        self.jobs: list[tuple[str, Any, str]] = []
        self.fail_with: Exception | None = None

    async def enqueue_job(self, function: str, *args: Any, _job_id: str, _queue_name: str | None = None):
        if self.fail_with is not None:
            raise self.fail_with
        if any(job_id == _job_id for _fn, _payload, job_id in self.jobs):
            return None
        self.jobs.append((function, args[0], _job_id))
        return _Job(job_id=_job_id)


def _ctx(*profiles, job_try: int = 1) -> dict[str, Any]:
    stores = Stores(
        profiles=InMemoryProfileStore(list(profiles)),
        contents=InMemoryContentBlobStore(),
        messages=InMemoryMessageRecordStore(),
        sender_history=InMemorySenderHistoryStore(),
        notifications=InMemoryNotificationStore(),
        statuses=InMemoryMessageStatusStore(),
    )
    return {
        "stores": stores,
        "settings": Settings(default_webhook_url="https://notify.example.test/hook", activity_retry_backoff_s=5),
        "redis": FakeArqRedis(),
        "job_try": job_try,
    }


@pytest.mark.asyncio
async def test_storage_success_chains_create_notification() -> None:
    ctx = _ctx(make_profile())
    payload = event_payload()

    result = await activity_worker.store_message_content(ctx, payload)

    assert result["kind"] == "SUCCESS"
    [(function, job_payload, job_id)] = ctx["redis"].jobs
    assert function == "create_notification"
    assert job_id == f"create-notification:{payload['id']}"
    assert job_payload["storage_result"] == result
    assert job_payload["created_message_event"]["id"] == payload["id"]


@pytest.mark.asyncio
async def test_chained_payload_drives_planning_and_marks_processed() -> None:
    ctx = _ctx(make_profile())
    payload = event_payload()
    await activity_worker.store_message_content(ctx, payload)
    _function, planning_payload, _job_id = ctx["redis"].jobs[0]

    result = await activity_worker.create_notification(ctx, planning_payload)

    assert result["kind"] == "some"
    assert result["has_email"] is True
    function, status_payload, job_id = ctx["redis"].jobs[-1]
    assert function == "update_message_status"
    assert status_payload == {"message_id": payload["id"], "status": "PROCESSED"}
    assert job_id == f"message-status:{payload['id']}:PROCESSED"


@pytest.mark.asyncio
async def test_storage_policy_failure_marks_rejected() -> None:
    ctx = _ctx()
    payload = event_payload()

    result = await activity_worker.store_message_content(ctx, payload)

    assert result == {"kind": "FAILURE", "reason": "PROFILE_NOT_FOUND"}
    [(function, status_payload, _job_id)] = ctx["redis"].jobs
    assert function == "update_message_status"
    assert status_payload["status"] == MessageStatusValue.REJECTED.value


@pytest.mark.asyncio
async def test_bad_data_is_returned_without_chaining() -> None:
    ctx = _ctx(make_profile())
    result = await activity_worker.store_message_content(ctx, {"id": "only-an-id"})
    assert result == {"kind": "FAILURE", "reason": "BAD_DATA"}
    assert ctx["redis"].jobs == []


@pytest.mark.asyncio
async def test_fatal_outcome_raises_retry_with_backoff() -> None:
    ctx = _ctx(make_profile(), job_try=3)
    ctx["stores"].profiles.fail_with = ProfileStoreError("unreachable")

    with pytest.raises(Retry) as excinfo:
        await activity_worker.store_message_content(ctx, event_payload())

    assert isinstance(excinfo.value.__cause__, ProfileStoreError)
    assert activity_worker._retry_defer_s(ctx) == 15
    assert ctx["redis"].jobs == []


@pytest.mark.asyncio
async def test_chaining_failure_retries_the_activity() -> None:
    ctx = _ctx(make_profile())
    ctx["redis"].fail_with = RedisConnectionError("redis down")
    with pytest.raises(Retry):
        await activity_worker.store_message_content(ctx, event_payload())


@pytest.mark.asyncio
async def test_undecodable_planning_input_returns_none_without_status() -> None:
    ctx = _ctx(make_profile())
    result = await activity_worker.create_notification(ctx, {"created_message_event": {}})
    assert result == {"kind": "none"}
    assert ctx["redis"].jobs == []


@pytest.mark.asyncio
async def test_update_message_status_job() -> None:
    ctx = _ctx()
    result = await activity_worker.update_message_status(ctx, {"message_id": "m-1", "status": "REJECTED"})
    assert result == {"kind": "SUCCESS"}
    assert ctx["stores"].statuses.statuses == {"m-1": MessageStatusValue.REJECTED}


@pytest.mark.asyncio
async def test_shutdown_disposes_engine_and_drops_stores() -> None:
    class _Engine:
        disposed = False

        async def dispose(self) -> None:
            self.disposed = True

    engine = _Engine()
    ctx = _ctx()
    ctx["engine"] = engine

    await activity_worker._shutdown(ctx)

    assert engine.disposed is True
    assert "stores" not in ctx


@pytest.mark.asyncio
async def test_status_handoff_failure_does_not_duplicate_notification() -> None:
    ctx = _ctx(make_profile())
    payload = event_payload()
    await activity_worker.store_message_content(ctx, payload)
    _function, planning_payload, _job_id = ctx["redis"].jobs[0]

    ctx["redis"].fail_with = RedisConnectionError("redis down")
    with pytest.raises(Retry):
        await activity_worker.create_notification(ctx, planning_payload)

    ctx["redis"].fail_with = None
    result = await activity_worker.create_notification(ctx, planning_payload)

    [stored] = ctx["stores"].notifications.all()
    assert result["notification_event"]["notification_id"] == stored.id
    assert ctx["redis"].jobs[-1][0] == "update_message_status"


@pytest.mark.asyncio
async def test_intake_enqueue_uses_deterministic_job_id() -> None:
    redis = FakeArqRedis()
    event = make_event()

    first = await enqueue_created_message(redis, event)
    second = await enqueue_created_message(redis, event)

    assert first == second == f"store-message-content:{event.id}"
    [(function, job_payload, _job_id)] = redis.jobs
    assert function == "store_message_content"
    assert job_payload["id"] == event.id
