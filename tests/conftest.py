import os

os.environ.setdefault("NAV_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("NAV_AUTH_MODE", "dev")
os.environ.setdefault("NAV_ENABLE_CALENDAR", "false")
os.environ.setdefault("NAV_ENABLE_SCHEDULER", "false")
os.environ.setdefault("NAV_REDIS_URL", "")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from interview_navigator.models import Base


@pytest.fixture()
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(async_engine):
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session
        await session.rollback()
