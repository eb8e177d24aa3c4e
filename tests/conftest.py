import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

from linkedup.infra import store as store_module
from linkedup.infra.memory_store import MemoryDocumentStore
from linkedup.main import app
from linkedup.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from linkedup.infra.redis import redis_client, set_redis_client

	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest_asyncio.fixture(autouse=True)
async def memory_store():
	store = MemoryDocumentStore()
	store_module.set_store(store)
	try:
		yield store
	finally:
		await store.close()
		store_module.set_store(None)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API and socket tests authenticate via the X-User-Id header, which is only
	accepted in dev mode.
	"""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
