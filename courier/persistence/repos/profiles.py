from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courier.domain.models import Profile


async def get_profile(session: AsyncSession, recipient_id: str) -> Profile | None:
    result = await session.execute(select(Profile).where(Profile.recipient_id == recipient_id))
    return result.scalar_one_or_none()


async def save_profile(session: AsyncSession, recipient_id: str, **fields: Any) -> Profile:
    # Profiles are owned upstream; this exists for seeding and tests.
    profile = await get_profile(session, recipient_id)
    if profile is None:
        profile = Profile(recipient_id=recipient_id, **fields)
        session.add(profile)
        return profile
    for key, value in fields.items():
        setattr(profile, key, value)
    profile.version = int(profile.version or 0) + 1
    return profile
