from __future__ import annotations

from pathlib import Path

import pytest

from courier.core.config import Settings
from courier.domain.messages import MessageEvent, MessageStatusValue
from courier.domain.results import Ok, PlanSome, StorageFailure, StorageSuccess
from courier.persistence.repos import messages as messages_repo
from courier.persistence.repos import profiles as profiles_repo
from courier.services.activities import run_planning_stage, run_status_update, run_storage_stage
from courier.services.messages.reader import get_message_for_recipient
from courier.services.stores import build_sql_stores
from courier.tests.utils.factories import event_payload


RECIPIENT_ID = "AAABBB01C02D345E"
WEBHOOK_URL = "https://notify.example.test/hook"


async def _seed(session_factory, event: MessageEvent, **profile_fields) -> None:
    async with session_factory() as session:
        await profiles_repo.save_profile(session, RECIPIENT_ID, **profile_fields)
        await messages_repo.create_pending_message(session, event.message_metadata())
        await session.commit()


@pytest.mark.asyncio
async def test_message_becomes_visible_with_notification(session_factory, tmp_path: Path) -> None:
    settings = Settings(content_storage_dir=str(tmp_path / "content"), default_webhook_url=WEBHOOK_URL)
    stores = build_sql_stores(session_factory, settings)
    payload = event_payload()
    event = MessageEvent.model_validate(payload)
    await _seed(session_factory, event, is_inbox_enabled=True, email="x@y.it")

    async with session_factory() as session:
        hidden = await get_message_for_recipient(
            session, stores.contents, recipient_id=RECIPIENT_ID, message_id=event.id
        )
    assert hidden is not None
    assert hidden.is_pending is True
    assert hidden.content is None
    assert hidden.status == MessageStatusValue.ACCEPTED

    storage = await run_storage_stage(
        payload,
        profile_store=stores.profiles,
        content_store=stores.contents,
        message_store=stores.messages,
    )
    assert isinstance(storage, Ok)
    assert isinstance(storage.value, StorageSuccess)

    planning = await run_planning_stage(
        {"created_message_event": payload, "storage_result": storage.value.model_dump(mode="json")},
        sender_history_store=stores.sender_history,
        notification_store=stores.notifications,
        default_webhook_url=settings.default_webhook_url,
    )
    assert isinstance(planning.value, PlanSome)
    await run_status_update(
        {"message_id": event.id, "status": "PROCESSED"}, status_store=stores.statuses
    )

    async with session_factory() as session:
        view = await get_message_for_recipient(
            session, stores.contents, recipient_id=RECIPIENT_ID, message_id=event.id
        )
    assert view is not None
    assert view.is_pending is False
    assert view.content == event.content
    assert view.status == MessageStatusValue.PROCESSED
    assert view.notification is not None
    assert view.notification.id == planning.value.notification_event.notification_id
    assert view.notification.channels["email"]["to_address"] == "x@y.it"


@pytest.mark.asyncio
async def test_rejected_message_stays_hidden(session_factory, tmp_path: Path) -> None:
    settings = Settings(content_storage_dir=str(tmp_path / "content"))
    stores = build_sql_stores(session_factory, settings)
    payload = event_payload()
    event = MessageEvent.model_validate(payload)
    await _seed(
        session_factory,
        event,
        is_inbox_enabled=True,
        blocked_inbox_or_channels={"svc-tax": ["INBOX"]},
    )

    outcome = await run_storage_stage(
        payload,
        profile_store=stores.profiles,
        content_store=stores.contents,
        message_store=stores.messages,
    )

    assert outcome == Ok(StorageFailure(reason="SENDER_BLOCKED"))
    assert not (tmp_path / "content").exists()
    async with session_factory() as session:
        view = await get_message_for_recipient(
            session, stores.contents, recipient_id=RECIPIENT_ID, message_id=event.id
        )
    assert view.is_pending is True
    assert view.content is None


@pytest.mark.asyncio
async def test_reader_scopes_messages_to_recipient(session_factory, tmp_path: Path) -> None:
    stores = build_sql_stores(session_factory, Settings(content_storage_dir=str(tmp_path)))
    event = MessageEvent.model_validate(event_payload())
    await _seed(session_factory, event, is_inbox_enabled=True)

    async with session_factory() as session:
        view = await get_message_for_recipient(
            session, stores.contents, recipient_id="someone-else", message_id=event.id
        )
    assert view is None


@pytest.mark.asyncio
async def test_missing_message_record_is_a_permanent_failure(session_factory, tmp_path: Path) -> None:
    stores = build_sql_stores(session_factory, Settings(content_storage_dir=str(tmp_path)))
    async with session_factory() as session:
        await profiles_repo.save_profile(session, RECIPIENT_ID, is_inbox_enabled=True)
        await session.commit()

    outcome = await run_storage_stage(
        event_payload(),
        profile_store=stores.profiles,
        content_store=stores.contents,
        message_store=stores.messages,
    )

    assert outcome == Ok(StorageFailure(reason="PERMANENT_ERROR"))
