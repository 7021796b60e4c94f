from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from courier.domain.messages import MessageContent, MessageStatusValue
from courier.persistence.repos import message_statuses as message_statuses_repo
from courier.persistence.repos import messages as messages_repo
from courier.persistence.repos import notifications as notifications_repo
from courier.services.stores import ReadableContentBlobStore


logger = logging.getLogger(__name__)


class NotificationView(BaseModel):
    id: str
    channels: dict[str, Any]


class MessageView(BaseModel):
    id: str
    recipient_id: str
    sender_service_id: str | None = None
    time_to_live_seconds: int | None = None
    created_at: datetime | None = None
    is_pending: bool
    content: MessageContent | None = None
    notification: NotificationView | None = None
    status: MessageStatusValue


async def get_message_for_recipient(
    session: AsyncSession,
    content_store: ReadableContentBlobStore,
    *,
    recipient_id: str,
    message_id: str,
) -> MessageView | None:
    """Assemble the public view of one message for its recipient.

    Content is only read once the message left the pending state; a pending
    message is returned without content. A message without a status row is
    reported as ACCEPTED (received but not yet processed).
    """
    message = await messages_repo.get_message_for_recipient(session, recipient_id, message_id)
    if message is None:
        return None

    content = None
    if not message.is_pending:
        content = await content_store.get(message.id, message.recipient_id)
        if content is None:
            logger.warning("MessageReader|MESSAGE_ID=%s|CONTENT_MISSING", message.id)

    row = await notifications_repo.get_for_message(session, recipient_id, message_id)
    notification = None
    if row is not None:
        notification = NotificationView(id=row.id, channels=dict(row.channels_json or {}))

    status_row = await message_statuses_repo.get_status(session, message_id)
    status = (
        MessageStatusValue(status_row.status) if status_row is not None else MessageStatusValue.ACCEPTED
    )

    return MessageView(
        id=message.id,
        recipient_id=message.recipient_id,
        sender_service_id=message.sender_service_id,
        time_to_live_seconds=message.time_to_live_seconds,
        created_at=message.created_at,
        is_pending=message.is_pending,
        content=content,
        notification=notification,
        status=status,
    )
