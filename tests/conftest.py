"""
Shared fixtures.

Tests run against an in-memory SQLite database (aiosqlite) and the
in-process event bus; no Postgres or Redis is needed.
"""

import os

os.environ.setdefault("ENV_MODE", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from menucraft.database import get_db, init_db  # noqa: E402
from menucraft.main import app, get_events  # noqa: E402
from menucraft.services.realtime import InMemoryEventBus  # noqa: E402
from menucraft.services.restaurants import create_restaurant  # noqa: E402
from tests.helpers import RecordingSession  # noqa: E402


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def restaurant(session):
    return await create_restaurant(session, "Pizza Palace", tax_rate=Decimal("0.08"))


@pytest.fixture
async def other_restaurant(session):
    return await create_restaurant(session, "Burger Barn", tax_rate=Decimal("0.05"))


# ============================================================================
# REALTIME
# ============================================================================

@pytest.fixture
def event_bus():
    return InMemoryEventBus()


@pytest.fixture
async def kitchen(event_bus, restaurant):
    """A recording kitchen session joined to the restaurant's channel."""
    session = RecordingSession("kitchen-1")
    await event_bus.registry.join(restaurant.id, session)
    return session


# ============================================================================
# HTTP
# ============================================================================

@pytest.fixture
async def client(session_maker, event_bus):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_events] = lambda: event_bus

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
