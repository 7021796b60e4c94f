from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courier.domain.models import Notification
from courier.persistence.dialects import insert_for


async def get_for_message(session: AsyncSession, recipient_id: str, message_id: str) -> Notification | None:
    result = await session.execute(
        select(Notification).where(
            Notification.recipient_id == recipient_id,
            Notification.message_id == message_id,
        )
    )
    return result.scalar_one_or_none()


async def add_notification_once(
    session: AsyncSession,
    *,
    notification_id: str,
    recipient_id: str,
    message_id: str,
    channels_json: dict[str, Any],
) -> Notification:
    """Insert the tracking record for a message unless one already exists.

    Returns the stored row, which carries the first writer's id and channels
    when a re-run activity finds an earlier record.
    """
    stmt = insert_for(session, Notification).values(
        id=notification_id,
        recipient_id=recipient_id,
        message_id=message_id,
        channels_json=channels_json,
    )
    stmt = stmt.on_conflict_do_nothing(
        index_elements=[Notification.recipient_id, Notification.message_id]
    )
    await session.execute(stmt)
    notification = await get_for_message(session, recipient_id, message_id)
    if notification is None:
        raise LookupError(f"notification for message {message_id} vanished after insert")
    return notification
