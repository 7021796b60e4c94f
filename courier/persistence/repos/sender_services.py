from __future__ import annotations

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courier.domain.models import SenderService
from courier.persistence.dialects import insert_for


async def get_sender_service(
    session: AsyncSession, recipient_id: str, sender_service_id: str
) -> SenderService | None:
    result = await session.execute(
        select(SenderService).where(
            SenderService.recipient_id == recipient_id,
            SenderService.sender_service_id == sender_service_id,
        )
    )
    return result.scalar_one_or_none()


async def upsert_version(
    session: AsyncSession, recipient_id: str, sender_service_id: str, version: int
) -> None:
    stmt = insert_for(session, SenderService).values(
        recipient_id=recipient_id,
        sender_service_id=sender_service_id,
        version=version,
    )
    # Keep max(existing, incoming) so retries and out-of-order deliveries converge.
    stmt = stmt.on_conflict_do_update(
        index_elements=[SenderService.recipient_id, SenderService.sender_service_id],
        set_={
            "version": case(
                (SenderService.version < stmt.excluded.version, stmt.excluded.version),
                else_=SenderService.version,
            ),
            "last_contacted_at": func.now(),
        },
    )
    await session.execute(stmt)
