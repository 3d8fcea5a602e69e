"""
Shared fixtures.

The app runs in-process over httpx's ASGITransport against a per-test SQLite
file; Redis is replaced by an AsyncMock so published events can be asserted.
"""
import os
import uuid

# Must be set before app.config is first imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-charide.db")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.database import Base, get_db
from app.dependencies import get_publisher
from app.main import app
from app.redis_client import get_redis
from app.services.notifications import RideEventPublisher


@pytest.fixture
def redis_mock():
    redis = AsyncMock()
    redis.get.return_value = None
    redis.publish.return_value = 1
    return redis


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'charide.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_factory, redis_mock):
    async def _get_db():
        async with session_factory() as session:
            yield session

    async def _get_redis():
        return redis_mock

    async def _get_publisher():
        return RideEventPublisher(redis_mock)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_redis] = _get_redis
    app.dependency_overrides[get_publisher] = _get_publisher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Sign up and log in a user of the given role; returns (user, headers)."""

    async def _make(role: str = "passenger", **fields):
        email = fields.pop("email", f"{role}-{uuid.uuid4().hex[:8]}@example.com")
        body = {"email": email, "password": "s3cret-pass", "full_name": fields.pop("full_name", f"Test {role}")}
        prefix = ""
        if role == "driver":
            prefix = "/driver"
            body.update({"vehicle_type": "Motorcycle", "vehicle_plate": "ABC-1234"})
        elif role == "admin":
            prefix = "/admin"
        body.update(fields)

        resp = await client.post(f"{prefix}/auth/signup", json=body)
        assert resp.status_code == 201, resp.text
        resp = await client.post(f"{prefix}/auth/login", json={"email": email, "password": "s3cret-pass"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _make


@pytest.fixture
def go_online(client):
    async def _go_online(headers, online: bool = True):
        resp = await client.put("/driver/status", headers=headers, json={"is_online": online})
        assert resp.status_code == 200, resp.text

    return _go_online


@pytest.fixture
def create_ride(client):
    async def _create(headers, **fields):
        body = {"pickup_location": "Mall A", "dropoff_location": "Office B", **fields}
        resp = await client.post("/rides", headers=headers, json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()["ride"]

    return _create
