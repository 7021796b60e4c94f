from __future__ import annotations

import pytest

from courier.core.errors import MessageStatusStoreError
from courier.domain.messages import MessageStatusValue
from courier.domain.results import Fatal, Ok, StatusUpdateResult
from courier.services.activities import run_status_update
from courier.tests.utils.fakes import InMemoryMessageStatusStore


@pytest.mark.asyncio
async def test_status_update_success() -> None:
    store = InMemoryMessageStatusStore()
    outcome = await run_status_update({"message_id": "m-1", "status": "PROCESSED"}, status_store=store)
    assert outcome == Ok(StatusUpdateResult(kind="SUCCESS"))
    assert store.statuses == {"m-1": MessageStatusValue.PROCESSED}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{}, {"message_id": "", "status": "PROCESSED"}, {"message_id": "m-1", "status": "DELIVERED"}],
)
async def test_status_update_rejects_bad_input(payload) -> None:
    store = InMemoryMessageStatusStore()
    outcome = await run_status_update(payload, status_store=store)
    assert outcome == Ok(StatusUpdateResult(kind="FAILURE"))
    assert store.statuses == {}


@pytest.mark.asyncio
async def test_status_store_failure_is_fatal() -> None:
    store = InMemoryMessageStatusStore()
    store.fail_with = MessageStatusStoreError("unreachable")
    outcome = await run_status_update({"message_id": "m-1", "status": "REJECTED"}, status_store=store)
    assert isinstance(outcome, Fatal)
    assert outcome.step == "status_upsert"
