import os

# Point the app at SQLite before any carebook module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PAYMENT_DELAY_SECONDS", "0")
os.environ.setdefault("LOG_FORMAT", "console")

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from carebook.core.redis_client import CacheManager
from carebook.core.security import create_access_token
from carebook.database import get_db
from carebook.dependencies import get_cache_manager, get_now, get_payment_processor
from carebook.main import app
from carebook.models import metadata
from carebook.models.availability_slots import availability_slots
from carebook.models.doctors import doctors
from carebook.models.patients import patients
from carebook.services.availability_service import build_slot_values
from carebook.services.payment_service import SimulatedPaymentProcessor

# Evaluation time shared by every test that depends on "now"
FIXED_NOW = datetime(2024, 7, 1, 8, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory bound to a fresh SQLite file.

    A file (not ``:memory:``) plus NullPool gives every session its own
    connection, so concurrent transactions really contend for the same rows.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'carebook_test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    await test_engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis stand-in that always misses."""
    redis_client = MagicMock()
    redis_client.get.return_value = None
    return redis_client


@pytest_asyncio.fixture
async def client(session_factory, mock_redis) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with the clock pinned to FIXED_NOW."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: FIXED_NOW
    app.dependency_overrides[get_cache_manager] = lambda: CacheManager(mock_redis)
    app.dependency_overrides[get_payment_processor] = lambda: SimulatedPaymentProcessor(0)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def doctor_id(db: AsyncSession) -> UUID:
    """Create a doctor profile."""
    new_id = uuid4()
    await db.execute(
        insert(doctors).values(
            id=new_id,
            name="Dr. Jane Smith",
            specialty="Cardiology",
            consultation_fee=Decimal("150.00"),
            location="Springfield",
        )
    )
    await db.commit()
    return new_id


async def _create_patient(db: AsyncSession, name: str, email: str) -> UUID:
    new_id = uuid4()
    await db.execute(insert(patients).values(id=new_id, display_name=name, email=email))
    await db.commit()
    return new_id


@pytest_asyncio.fixture
async def patient_a(db: AsyncSession) -> UUID:
    """First patient."""
    return await _create_patient(db, "Alice Walker", "alice@example.com")


@pytest_asyncio.fixture
async def patient_b(db: AsyncSession) -> UUID:
    """Second patient."""
    return await _create_patient(db, "Bob Stone", "bob@example.com")


@pytest.fixture
def make_slot(db: AsyncSession, doctor_id: UUID) -> Callable:
    """Insert an unbooked slot directly, bypassing the publisher."""

    async def _make_slot(
        day: date = date(2024, 7, 12),
        start: str = "09:00",
        owner: UUID | None = None,
    ) -> UUID:
        values = build_slot_values(owner or doctor_id, day, start, 30, UTC)
        result = await db.execute(
            insert(availability_slots).values(**values).returning(availability_slots.c.id)
        )
        slot_id = result.scalar_one()
        await db.commit()
        return slot_id

    return _make_slot


@pytest.fixture
def auth_headers() -> Callable[[UUID, str], dict]:
    """Build bearer headers for a user id and role."""

    def _headers(user_id: UUID, role: str) -> dict:
        token = create_access_token(
            data={"sub": str(user_id), "role": role},
            expires_delta=timedelta(minutes=30),
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
