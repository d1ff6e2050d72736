"""Pytest configuration and fixtures for FreightBoard tests.

Each test gets a fresh in-memory SQLite database (aiosqlite) built from the
ORM metadata. The app's ``get_db`` dependency is overridden to hand out the
test session, with every request wrapped in a SAVEPOINT that is released on
success and rolled back on error, mirroring the commit/rollback of the real
dependency.
"""

from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from freightboard.auth.identity import identity_from_user
from freightboard.auth.jwt import create_access_token
from freightboard.database import Base, get_db
from freightboard.main import app
from freightboard.models import Load, LoadStatus, Offer, OfferStatus, User, UserRole
from freightboard.utils.clock import utcnow


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with working SAVEPOINT support."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database dependency."""

    async def override_get_db():
        savepoint = await db_session.begin_nested()
        try:
            yield db_session
        except Exception:
            await savepoint.rollback()
            raise
        else:
            await savepoint.commit()

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Users ────────────────────────────────────────────────────────

async def _make_user(db: AsyncSession, **fields) -> User:
    user = User(is_active=True, **fields)
    db.add(user)
    await db.flush()
    return user


@pytest_asyncio.fixture
async def shipper(db_session) -> User:
    return await _make_user(
        db_session,
        email="ops@acmefoods.test",
        full_name="Dana Shipper",
        role=UserRole.SHIPPER,
        company_name="Acme Foods",
    )


@pytest_asyncio.fixture
async def other_shipper(db_session) -> User:
    return await _make_user(
        db_session,
        email="dispatch@globex.test",
        full_name="Sam Other",
        role=UserRole.SHIPPER,
        company_name="Globex",
    )


@pytest_asyncio.fixture
async def carrier_a(db_session) -> User:
    return await _make_user(
        db_session,
        email="dispatch@roadrunner.test",
        full_name="Alex Carrier",
        role=UserRole.CARRIER,
        company_name="Roadrunner Freight",
        phone="+15550100",
        mc_number="MC123456",
    )


@pytest_asyncio.fixture
async def carrier_b(db_session) -> User:
    return await _make_user(
        db_session,
        email="loads@bluehaul.test",
        full_name="Blake Carrier",
        role=UserRole.CARRIER,
        company_name="Blue Haul",
        mc_number="MC654321",
    )


@pytest_asyncio.fixture
async def driver(db_session, carrier_a) -> User:
    return await _make_user(
        db_session,
        email="driver@roadrunner.test",
        full_name="Drew Driver",
        role=UserRole.DRIVER,
        carrier_id=carrier_a.id,
    )


@pytest_asyncio.fixture
async def admin(db_session) -> User:
    return await _make_user(
        db_session,
        email="admin@freightboard.test",
        full_name="Ari Admin",
        role=UserRole.ADMIN,
    )


def headers_for(user: User) -> dict:
    token = create_access_token(user_id=user.id, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def shipper_headers(shipper) -> dict:
    return headers_for(shipper)


@pytest.fixture
def other_shipper_headers(other_shipper) -> dict:
    return headers_for(other_shipper)


@pytest.fixture
def carrier_a_headers(carrier_a) -> dict:
    return headers_for(carrier_a)


@pytest.fixture
def carrier_b_headers(carrier_b) -> dict:
    return headers_for(carrier_b)


@pytest.fixture
def driver_headers(driver) -> dict:
    return headers_for(driver)


@pytest.fixture
def admin_headers(admin) -> dict:
    return headers_for(admin)


@pytest.fixture
def shipper_identity(shipper):
    return identity_from_user(shipper)


@pytest.fixture
def carrier_a_identity(carrier_a):
    return identity_from_user(carrier_a)


@pytest.fixture
def carrier_b_identity(carrier_b):
    return identity_from_user(carrier_b)


# ── Loads and offers ─────────────────────────────────────────────

CHICAGO = {
    "address": "2200 S Halsted St",
    "city": "Chicago",
    "state": "IL",
    "zip_code": "60608",
    "latitude": 41.8781,
    "longitude": -87.6298,
}
DALLAS = {
    "address": "1500 Marilla St",
    "city": "Dallas",
    "state": "TX",
    "zip_code": "75201",
    "latitude": 32.7767,
    "longitude": -96.7970,
}


@pytest.fixture
def load_payload() -> dict:
    today = utcnow().date()
    return {
        "reference_number": "PO-7781",
        "origin": dict(CHICAGO),
        "destination": dict(DALLAS),
        "load_type": "Full Truckload",
        "equipment_type": "Dry Van",
        "details": {"weight": 42000, "pieces": 24, "description": "Canned goods"},
        "pickup_date": (today + timedelta(days=2)).isoformat(),
        "delivery_date": (today + timedelta(days=4)).isoformat(),
        "pickup_time": "08:00-12:00",
        "rate": 1800.0,
        "contact_info": {"pickup": {"name": "Dock 4", "phone": "+15550111"}},
    }


@pytest_asyncio.fixture
async def posted_load(db_session, shipper) -> Load:
    today = utcnow().date()
    load = Load(
        load_number="LD100200ABCD",
        shipper_id=shipper.id,
        origin=dict(CHICAGO),
        destination=dict(DALLAS),
        distance_miles=800.0,
        load_type="Full Truckload",
        equipment_type="Dry Van",
        details={"weight": 42000},
        pickup_date=today + timedelta(days=2),
        delivery_date=today + timedelta(days=4),
        rate=1800.0,
        rate_per_mile=2.25,
        currency="USD",
        contact_info={},
        status=LoadStatus.POSTED,
        posted_at=utcnow(),
    )
    db_session.add(load)
    await db_session.flush()
    return load


async def make_offer(
    db: AsyncSession,
    load: Load,
    carrier: User,
    amount: float,
    status: OfferStatus = OfferStatus.PENDING,
    age_minutes: int = 0,
) -> Offer:
    stamp = utcnow() - timedelta(minutes=age_minutes)
    offer = Offer(
        load_id=load.id,
        carrier_id=carrier.id,
        amount=amount,
        status=status,
        created_at=stamp,
        updated_at=stamp,
    )
    db.add(offer)
    await db.flush()
    return offer


@pytest_asyncio.fixture
async def assigned_load(db_session, posted_load, carrier_a) -> Load:
    """A load already bound to carrier A at 1750."""
    await make_offer(db_session, posted_load, carrier_a, 1750.0, status=OfferStatus.ACCEPTED)
    posted_load.status = LoadStatus.ASSIGNED
    posted_load.carrier_id = carrier_a.id
    posted_load.rate = 1750.0
    posted_load.assigned_at = utcnow()
    await db_session.flush()
    return posted_load


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
