"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  A single connection is shared through
``StaticPool`` and transactions are begun explicitly so SAVEPOINTs behave
as they do on PostgreSQL.  Redis publishing is replaced by an ``AsyncMock``.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.domain.entities import Principal
from src.domain.enums import TripStatus, UserRole, VehicleType
from src.infrastructure.database import Base
from src.infrastructure.models import (
    CompanyModel,
    DriverModel,
    TripModel,
    UserModel,
)
from src.services.notifications import discard_pending_events, publish_pending_events


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


def make_test_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


# ── Builders ──────────────────────────────────────────────────────────


@dataclass
class Account:
    user: UserModel
    profile: object
    principal: Principal


async def make_company(session: AsyncSession, name: str = "Sunline Tours") -> Account:
    user = UserModel(
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=UserRole.COMPANY,
        is_approved=True,
    )
    session.add(user)
    await session.flush()
    company = CompanyModel(user_id=user.id, company_name=name)
    session.add(company)
    await session.flush()
    return Account(user, company, Principal(user.id, UserRole.COMPANY))


async def make_driver(
    session: AsyncSession,
    first_name: str = "Sam",
    last_name: str = "Reyes",
    vehicle_type: VehicleType = VehicleType.SEDAN,
) -> Account:
    user = UserModel(
        email=f"{first_name}.{last_name}@example.com".lower(),
        role=UserRole.DRIVER,
        is_approved=True,
    )
    session.add(user)
    await session.flush()
    driver = DriverModel(
        user_id=user.id,
        first_name=first_name,
        last_name=last_name,
        vehicle_type=vehicle_type,
    )
    session.add(driver)
    await session.flush()
    return Account(user, driver, Principal(user.id, UserRole.DRIVER))


async def make_trip(
    session: AsyncSession,
    company: CompanyModel,
    *,
    driver: Optional[DriverModel] = None,
    status: TripStatus = TripStatus.PENDING,
    trip_date: date = date(2026, 11, 2),
    departure_time: time = time(9, 30),
    vehicle_type: VehicleType = VehicleType.SEDAN,
    visa_number: Optional[str] = None,
) -> TripModel:
    trip = TripModel(
        company_id=company.id,
        driver_id=driver.id if driver else None,
        pickup_location="Airport",
        destination="Old Town Hotel",
        trip_date=trip_date,
        departure_time=departure_time,
        passenger_count=2,
        vehicle_type=vehicle_type,
        visa_number=visa_number,
        status=status,
    )
    session.add(trip)
    await session.flush()
    return trip


TRIP_PAYLOAD = {
    "pickup_location": "Airport",
    "destination": "Old Town Hotel",
    "trip_date": "2026-11-02",
    "departure_time": "09:30:00",
    "passenger_count": 2,
    "vehicle_type": "sedan",
    "company_price": 120.0,
    "driver_price": 90.0,
}


def auth_headers(principal: Principal) -> dict[str, str]:
    return {"X-User-Id": str(principal.user_id), "X-User-Role": principal.role.value}


async def commit_and_publish(session: AsyncSession) -> None:
    """Finish the unit of work the way ``get_db`` does."""
    await session.commit()
    await publish_pending_events(session)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test: create tables, then dispose."""
    engine = make_test_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker,
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher() -> AsyncMock:
    mock = AsyncMock()
    mock.publish_created = AsyncMock(return_value=1)
    return mock


@pytest_asyncio.fixture
async def company(db_session: AsyncSession) -> Account:
    account = await make_company(db_session)
    await db_session.commit()
    return account


@pytest_asyncio.fixture
async def other_company(db_session: AsyncSession) -> Account:
    account = await make_company(db_session, "Blue Bay Travel")
    await db_session.commit()
    return account


@pytest_asyncio.fixture
async def driver(db_session: AsyncSession) -> Account:
    account = await make_driver(db_session)
    await db_session.commit()
    return account


@pytest_asyncio.fixture
async def other_driver(db_session: AsyncSession) -> Account:
    account = await make_driver(db_session, "Nina", "Berg")
    await db_session.commit()
    return account


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker, db_session: AsyncSession, publisher: AsyncMock
):
    """HTTP client wired to the test database and a mocked publisher.

    Each request gets its own session, committed or rolled back like
    production ``get_db``.
    """
    from src.api.app import create_app
    from src.api.dependencies import get_db, get_publisher
    from src.api.middleware import limiter

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                discard_pending_events(session)
                raise
            await publish_pending_events(session)

    async def _get_test_publisher():
        return publisher

    app = create_app()
    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_publisher] = _get_test_publisher
    limiter.reset()

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
