from __future__ import annotations

from pathlib import Path

import pytest

from courier.core.config import Settings
from courier.domain.models import Base
from courier.persistence.db import build_engine, build_session_factory
from courier.services import telemetry


@pytest.fixture(autouse=True)
def reset_telemetry() -> None:
    # Counters are process-global; isolate them per test.
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
async def session_factory(tmp_path: Path):
    # File-backed SQLite so every session sees the same database without a server.
    engine = build_engine(Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'courier.db'}"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()
