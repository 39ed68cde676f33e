import pytest
import pytest_asyncio
from fastapi import HTTPException, Request
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

from social_service.api.dependencies import get_current_user, get_engine, get_optional_user
from social_service.api.schemas import User
from social_service.application.engine import build_memory_engine
from social_service.domain.models import Visibility
from social_service.infrastructure.cache import RedisCache
from social_service.infrastructure.memory import MemoryStore
from social_service.main import app


ALICE, BOB, CAROL, DAVE = 1, 2, 3, 4
PUBLIC_POST, PRIVATE_POST, BOB_POST = 100, 101, 200


@pytest.fixture
def store():
    """Alice and Carol are public, Bob and Dave are private"""
    store = MemoryStore()
    store.add_profile(ALICE, Visibility.PUBLIC)
    store.add_profile(BOB, Visibility.PRIVATE)
    store.add_profile(CAROL, Visibility.PUBLIC)
    store.add_profile(DAVE, Visibility.PRIVATE)
    store.add_content(PUBLIC_POST, ALICE, Visibility.PUBLIC)
    store.add_content(PRIVATE_POST, ALICE, Visibility.PRIVATE)
    store.add_content(BOB_POST, BOB, Visibility.PRIVATE)
    return store


@pytest.fixture
def engine(store):
    return build_memory_engine(store)


@pytest_asyncio.fixture
async def fake_redis():
    client = FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()


@pytest.fixture
def redis_cache(fake_redis):
    return RedisCache(client=fake_redis)


def _header_profile_id(request: Request):
    value = request.headers.get("X-Profile-Id")
    return int(value) if value else None


async def _current_user(request: Request) -> User:
    profile_id = _header_profile_id(request)
    if profile_id is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return User(id=profile_id)


async def _optional_user(request: Request):
    profile_id = _header_profile_id(request)
    return User(id=profile_id) if profile_id is not None else None


@pytest_asyncio.fixture
async def api_client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_current_user] = _current_user
    app.dependency_overrides[get_optional_user] = _optional_user

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def as_profile(profile_id: int) -> dict:
    return {"X-Profile-Id": str(profile_id)}
