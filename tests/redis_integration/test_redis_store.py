import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from linkedup.infra.documents import SERVER_TIMESTAMP, DocumentNotFound, StoreError
from linkedup.infra.redis_store import RedisDocumentStore, decode_document, encode_document


def _store(client) -> RedisDocumentStore:
	return RedisDocumentStore(client, prefix="test:")


async def _next(subscription, timeout: float = 3.0):
	return await asyncio.wait_for(subscription.__anext__(), timeout)


def test_documents_keep_timestamps_through_json():
	stamp = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
	raw = encode_document({"text": "hi", "time": stamp, "meta": {"seen": stamp}})

	assert decode_document(raw) == {"text": "hi", "time": stamp, "meta": {"seen": stamp}}


@pytest.mark.asyncio
async def test_set_merge_update_and_delete(fake_redis):
	store = _store(fake_redis)
	await store.set("users/u1", {"name": "Ana", "major": "CS"})
	await store.set("users/u1", {"bio": "hi"}, merge=True)
	await store.update("users/u1", {"major": "Math"})

	assert await store.get("users/u1") == {"name": "Ana", "major": "Math", "bio": "hi"}
	assert await fake_redis.get("test:doc:users/u1") is not None

	await store.delete("users/u1")
	assert await store.get("users/u1") is None
	assert await store.list("users") == []


@pytest.mark.asyncio
async def test_update_missing_document_raises(fake_redis):
	store = _store(fake_redis)
	with pytest.raises(DocumentNotFound):
		await store.update("users/nobody", {"name": "x"})
	assert await store.get("users/nobody") is None


@pytest.mark.asyncio
async def test_list_keeps_insertion_order_across_rewrites(fake_redis):
	store = _store(fake_redis)
	await store.set("users/b", {"name": "B"})
	await store.set("users/a", {"name": "A"})
	await store.set("users/b", {"name": "B2"})

	docs = await store.list("users")
	assert [doc.id for doc in docs] == ["b", "a"]
	assert docs[0].get("name") == "B2"


@pytest.mark.asyncio
async def test_add_resolves_server_timestamps(fake_redis):
	store = _store(fake_redis)
	first = await store.add("chatRooms/a_b/messages", {"text": "1", "time": SERVER_TIMESTAMP})
	second = await store.add("chatRooms/a_b/messages", {"text": "2", "time": SERVER_TIMESTAMP})

	docs = await store.list("chatRooms/a_b/messages", order_by="time")
	assert [doc.id for doc in docs] == [first, second]
	assert isinstance(docs[0].get("time"), datetime)
	assert docs[0].get("time") <= docs[1].get("time")


@pytest.mark.asyncio
async def test_batch_writes_and_deletes_together(fake_redis):
	store = _store(fake_redis)
	await store.set("users/u1/interests/u3", {"uid": "u3"})

	batch = store.batch()
	batch.set("users/u1/matches/u2", {"uid": "u2"})
	batch.set("users/u2/matches/u1", {"uid": "u1"})
	batch.delete("users/u1/interests/u3")
	await batch.commit()

	assert [doc.id for doc in await store.list("users/u1/matches")] == ["u2"]
	assert [doc.id for doc in await store.list("users/u2/matches")] == ["u1"]
	assert await store.list("users/u1/interests") == []


@pytest.mark.asyncio
async def test_subscription_redelivers_collection_until_closed(fake_redis):
	store = _store(fake_redis)
	await store.set("users/u1", {"name": "Ana"})

	subscription = await store.subscribe("users")
	assert [doc.id for doc in await _next(subscription)] == ["u1"]

	await store.set("users/u2", {"name": "Ben"})
	assert [doc.id for doc in await _next(subscription)] == ["u1", "u2"]

	await subscription.close()
	assert subscription.closed


@pytest.mark.asyncio
async def test_close_releases_every_subscription(fake_redis):
	store = _store(fake_redis)
	first = await store.subscribe("users")
	second = await store.subscribe("users/u1/matches")

	await store.close()

	assert first.closed and second.closed


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [RedisConnectionError("down"), TypeError("bad order field")])
async def test_broken_refresh_fails_the_subscription(fake_redis, monkeypatch, failure):
	store = _store(fake_redis)
	await store.set("users/u1", {"name": "Ana"})
	subscription = await store.subscribe("users")
	assert [doc.id for doc in await _next(subscription)] == ["u1"]

	monkeypatch.setattr(fake_redis, "zrange", AsyncMock(side_effect=failure))
	await fake_redis.publish(store.channel("users"), "u1")

	with pytest.raises(StoreError):
		await _next(subscription)
	await subscription.close()


@pytest.mark.asyncio
async def test_redis_failures_surface_as_store_errors():
	client = MagicMock()
	client.get = AsyncMock(side_effect=RedisConnectionError("down"))
	store = _store(client)

	with pytest.raises(StoreError):
		await store.get("users/u1")


@pytest.mark.asyncio
async def test_proxy_reports_health_of_installed_client(fake_redis):
	from linkedup.infra.redis import redis_client

	assert redis_client.client is fake_redis
	assert await redis_client.healthy() is True
