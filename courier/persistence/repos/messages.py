from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from courier.domain.messages import MessageMetadata
from courier.domain.models import Message
from courier.persistence.dialects import insert_for


async def get_message_for_recipient(
    session: AsyncSession, recipient_id: str, message_id: str
) -> Message | None:
    result = await session.execute(
        select(Message).where(Message.id == message_id, Message.recipient_id == recipient_id)
    )
    return result.scalar_one_or_none()


async def create_pending_message(session: AsyncSession, metadata: MessageMetadata) -> Message:
    # Upstream intake creates the record hidden; a retried intake must not reset the flag.
    stmt = insert_for(session, Message).values(
        id=metadata.id,
        recipient_id=metadata.recipient_id,
        sender_service_id=metadata.sender_service_id,
        sender_user_id=metadata.sender_user_id,
        time_to_live_seconds=metadata.time_to_live_seconds,
        is_pending=True,
        created_at=metadata.created_at,
    )
    stmt = stmt.on_conflict_do_nothing(index_elements=[Message.id])
    await session.execute(stmt)
    message = await get_message_for_recipient(session, metadata.recipient_id, metadata.id)
    if message is None:
        raise LookupError(f"message {metadata.id} belongs to another recipient")
    return message


async def clear_pending(session: AsyncSession, message_id: str, recipient_id: str) -> bool:
    """Clear the pending flag on the recipient's message record.

    Returns False when no record matches (missing id, or an id owned by
    another recipient). Never inserts: the record, with its sender metadata,
    is created at intake. Matching an already visible record still counts,
    so re-running the update is a no-op that reports True.
    """
    result = await session.execute(
        update(Message)
        .where(Message.id == message_id, Message.recipient_id == recipient_id)
        .values(is_pending=False, updated_at=func.now())
    )
    return result.rowcount > 0


async def get_owner(session: AsyncSession, message_id: str) -> str | None:
    result = await session.execute(select(Message.recipient_id).where(Message.id == message_id))
    return result.scalar_one_or_none()
