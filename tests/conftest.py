"""Test configuration and fixtures"""

import json
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

from contextlib import asynccontextmanager
from decimal import Decimal
from uuid import uuid4

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api.auth import create_access_token, get_password_hash
from app.cache import Cache, get_cache
from app.database import Base, get_db
from app.models import (
    Organization,
    User,
    UserRole,
    Category,
    Product,
    ProductStatus,
    ProductType,
    ProductModifier,
    ProductModifierGroup,
    ModifierOption,
    DiningTable,
)
from app.realtime.manager import ConnectionManager
from app.realtime.relay import RealtimeRelay, get_relay


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingRelay(RealtimeRelay):
    """Relay that keeps every emitted event and still delivers locally"""

    def __init__(self):
        super().__init__(ConnectionManager())
        self.events = []

    async def emit(self, room, event, data):
        self.events.append((room, event, data))
        await super().emit(room, event, data)

    def named(self, event):
        return [data for _, name, data in self.events if name == event]


class RecordingSocket:
    """Stands in for a websocket; keeps every decoded message"""

    def __init__(self):
        self.messages = []

    async def send_text(self, text):
        self.messages.append(json.loads(text))

    def events(self, name):
        return [message["data"] for message in self.messages if message["event"] == name]


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_cache():
    cache = Cache(fakeredis.aioredis.FakeRedis(decode_responses=True))
    yield cache
    await cache.client.flushall()


@pytest.fixture
def relay():
    return RecordingRelay()


@pytest.fixture
def session_factory(test_db):
    """Session factory handing out the test session"""
    @asynccontextmanager
    async def factory():
        yield test_db
    return factory


@pytest.fixture
async def organization(test_db):
    """Create a test organization (8% tax, 10% service charge)"""
    organization = Organization(
        id=uuid4(),
        name="The Penalty Box",
        timezone="America/New_York",
        tax_rate=Decimal("0.0800"),
        service_charge_rate=Decimal("0.1000"),
    )
    test_db.add(organization)
    await test_db.commit()
    return organization


@pytest.fixture
async def other_organization(test_db):
    organization = Organization(id=uuid4(), name="Across The Street", tax_rate=Decimal("0"))
    test_db.add(organization)
    await test_db.commit()
    return organization


@pytest.fixture
def make_user(test_db, organization):
    """Factory creating a user with the given role"""
    async def _make_user(role=UserRole.WAITER, organization_id=None, email=None, password="testpass123"):
        user = User(
            id=uuid4(),
            organization_id=organization_id or organization.id,
            email=email or f"{role.value}-{uuid4().hex[:8]}@example.com",
            hashed_password=get_password_hash(password),
            first_name="Test",
            last_name=role.value.title(),
            role=role,
            is_active=True,
        )
        test_db.add(user)
        await test_db.commit()
        return user
    return _make_user


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
async def manager(make_user):
    return await make_user(UserRole.MANAGER)


@pytest.fixture
async def waiter(make_user):
    return await make_user(UserRole.WAITER)


@pytest.fixture
async def cashier(make_user):
    return await make_user(UserRole.CASHIER)


@pytest.fixture
async def kitchen(make_user):
    return await make_user(UserRole.KITCHEN)


@pytest.fixture
def manager_headers(manager):
    return auth_headers(manager)


@pytest.fixture
def waiter_headers(waiter):
    return auth_headers(waiter)


@pytest.fixture
def cashier_headers(cashier):
    return auth_headers(cashier)


@pytest.fixture
def kitchen_headers(kitchen):
    return auth_headers(kitchen)


@pytest.fixture
async def catalog(test_db, organization):
    """Burger, Cola with an Ice modifier group, and a withdrawn product; returns ids"""
    category = Category(id=uuid4(), organization_id=organization.id, name="Mains", sort_order=0)
    ice = ProductModifier(
        id=uuid4(),
        organization_id=organization.id,
        name="Ice",
        options=[
            ModifierOption(id=uuid4(), name="Extra Ice", price_adjustment_cents=0, sort_order=0),
            ModifierOption(id=uuid4(), name="Lime", price_adjustment_cents=50, sort_order=1),
        ],
    )
    burger = Product(
        id=uuid4(),
        organization_id=organization.id,
        category_id=category.id,
        name="Burger",
        price_cents=1299,
        prep_time=20,
        sort_order=0,
    )
    cola = Product(
        id=uuid4(),
        organization_id=organization.id,
        category_id=category.id,
        name="Cola",
        type=ProductType.BEVERAGE,
        price_cents=299,
        sort_order=1,
    )
    cola.modifier_groups.append(ProductModifierGroup(modifier=ice, sort_order=0))
    nachos = Product(
        id=uuid4(),
        organization_id=organization.id,
        category_id=category.id,
        name="Nachos",
        price_cents=999,
        status=ProductStatus.WITHDRAWN,
        sort_order=2,
    )
    test_db.add_all([category, ice, burger, cola, nachos])
    await test_db.commit()

    return {
        "category": category.id,
        "burger": burger.id,
        "cola": cola.id,
        "nachos": nachos.id,
        "extra_ice": ice.options[0].id,
        "lime": ice.options[1].id,
        "ice": ice.id,
    }


@pytest.fixture
async def table(test_db, organization):
    table = DiningTable(id=uuid4(), organization_id=organization.id, number="5", name="Table 5", capacity=4)
    test_db.add(table)
    await test_db.commit()
    return table


@pytest.fixture
async def client(test_db, test_cache, relay):
    """Create test client with overridden database, cache and relay"""
    async def override_get_db():
        yield test_db

    async def override_get_cache():
        return test_cache

    async def override_get_relay():
        return relay

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = override_get_cache
    app.dependency_overrides[get_relay] = override_get_relay

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
