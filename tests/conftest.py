"""Test configuration and fixtures"""

import pytest
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

from jerktracker.config import Settings
from jerktracker.main import create_app
from jerktracker.security import create_access_token, get_password_hash
from jerktracker.storage import Entity, create_storage
from jerktracker.storage.keyvalue import RedisStorage


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and any .env file"""
    return Settings(
        _env_file=None,
        storage_backend="sql",
        database_url=TEST_DATABASE_URL,
        auto_create_tables=True,
        jwt_secret_key="test-secret",
        migration_backup_dir=str(tmp_path / "backups"),
        legacy_orders_path=None,
        log_format="console",
        log_level="WARNING",
    )


async def make_sql_storage(settings):
    storage = create_storage(settings)
    await storage.initialize()
    return storage


async def make_redis_storage(settings):
    storage = RedisStorage(
        FakeRedis(decode_responses=True),
        tables={
            Entity.USERS: settings.users_table,
            Entity.RESTAURANTS: settings.restaurants_table,
            Entity.ORDERS: settings.orders_table,
            Entity.ORDER_ITEMS: settings.order_items_table,
        },
        prefix=f"test-{id(settings)}",
    )
    await storage.client.flushall()
    await storage.initialize()
    return storage


@pytest.fixture(params=["sql", "redis"])
async def storage(request, settings):
    """Every test that touches storage runs against both backends"""
    factory = make_sql_storage if request.param == "sql" else make_redis_storage
    storage = await factory(settings)
    yield storage
    await storage.close()


@pytest.fixture
def app(settings, storage):
    return create_app(settings, storage=storage)


@pytest.fixture
async def client(app):
    """Create test client over the ASGI app"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def restaurant_a(storage):
    return await storage.create(
        Entity.RESTAURANTS,
        {"name": "Jerk Palace", "email": "palace@example.com", "city": "Kingston"},
    )


@pytest.fixture
async def restaurant_b(storage):
    return await storage.create(
        Entity.RESTAURANTS,
        {"name": "Island Grill", "email": "grill@example.com", "city": "Montego Bay"},
    )


async def create_user(storage, email, role, restaurant=None, password="password123"):
    return await storage.create(
        Entity.USERS,
        {
            "email": email,
            "hashed_password": get_password_hash(password),
            "name": email.split("@")[0].title(),
            "role": role,
            "restaurant_id": restaurant["id"] if restaurant else None,
        },
    )


@pytest.fixture
async def admin_user(storage):
    """Platform admin without a restaurant"""
    return await create_user(storage, "admin@example.com", "ADMIN")


@pytest.fixture
async def staff_a(storage, restaurant_a):
    return await create_user(storage, "staff.a@example.com", "STAFF", restaurant_a)


@pytest.fixture
async def staff_b(storage, restaurant_b):
    return await create_user(storage, "staff.b@example.com", "STAFF", restaurant_b)


@pytest.fixture
async def user_a(storage, restaurant_a):
    return await create_user(storage, "viewer.a@example.com", "USER", restaurant_a)


def bearer(user, settings):
    return {"Authorization": f"Bearer {create_access_token(user, settings)}"}


@pytest.fixture
def admin_headers(admin_user, settings):
    return bearer(admin_user, settings)


@pytest.fixture
def staff_a_headers(staff_a, settings):
    return bearer(staff_a, settings)


@pytest.fixture
def staff_b_headers(staff_b, settings):
    return bearer(staff_b, settings)


@pytest.fixture
def user_a_headers(user_a, settings):
    return bearer(user_a, settings)
