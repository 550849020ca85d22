import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_db
from main import app
from models import Base, User
from routers.auth.helpers import auth_helpers


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def users(session_factory):
    """One active account per role, plus a second supplier and manufacturer"""
    accounts = {
        "platform": User(
            name="平台运营", role="PLATFORM", phone="13800000001",
            password_hash=auth_helpers.hash_password("platform123"),
        ),
        "manager": User(name="总经理", role="GENERAL_MANAGER", phone="13800000002"),
        "supplier": User(
            name="华南包装供应商", role="SUPPLIER", phone="13800000003",
            email="supplier@example.com", address="广州市天河区",
        ),
        "other_supplier": User(
            name="华东包装供应商", role="SUPPLIER", phone="13800000004", address="上海市浦东新区",
        ),
        "manufacturer": User(
            name="食品制造厂", role="MANUFACTURER", phone="13800000005",
            email="factory@example.com", address="深圳市宝安区",
            password_hash=auth_helpers.hash_password("factory123"),
        ),
        "other_manufacturer": User(
            name="日化制造厂", role="MANUFACTURER", phone="13800000006", address="杭州市余杭区",
        ),
    }

    async with session_factory() as db:
        db.add_all(accounts.values())
        await db.commit()

    return accounts


@pytest.fixture
def headers(users):
    return {
        key: {"Authorization": f"Bearer {auth_helpers.create_access_token(user)}"}
        for key, user in users.items()
    }


@pytest.fixture
def create_product(client, headers, users):
    """Create an ACTIVE product through the platform endpoint"""
    async def _create(supplier_key="supplier", **overrides):
        payload = {
            "supplierId": str(users[supplier_key].id),
            "name": "软包装",
            "category": "袋类",
            "material": "PE",
            "spec": "20x30cm",
            "stock": 500,
            "unitPrice": 1.5,
        }
        payload.update(overrides)
        response = await client.post("/products", json=payload, headers=headers["platform"])
        assert response.status_code == 200, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def place_order(client, headers):
    async def _place(product_id, quantity=100, manufacturer_key="manufacturer", **overrides):
        payload = {
            "productId": product_id,
            "quantity": quantity,
            "requestDate": "2026-10-01",
            "expectedDate": "2026-10-20",
        }
        payload.update(overrides)
        response = await client.post("/orders", json=payload, headers=headers[manufacturer_key])
        assert response.status_code == 200, response.text
        return response.json()["data"]

    return _place
