from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courier.domain.models import MessageStatus
from courier.persistence.dialects import insert_for


async def get_status(session: AsyncSession, message_id: str) -> MessageStatus | None:
    result = await session.execute(select(MessageStatus).where(MessageStatus.message_id == message_id))
    return result.scalar_one_or_none()


async def upsert_status(session: AsyncSession, message_id: str, status: str) -> None:
    stmt = insert_for(session, MessageStatus).values(message_id=message_id, status=status, version=0)
    stmt = stmt.on_conflict_do_update(
        index_elements=[MessageStatus.message_id],
        set_={
            "status": stmt.excluded.status,
            "version": MessageStatus.version + 1,
            "updated_at": func.now(),
        },
    )
    await session.execute(stmt)
