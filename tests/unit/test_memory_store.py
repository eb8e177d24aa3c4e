import asyncio
from datetime import datetime

import pytest

from linkedup.infra.documents import SERVER_TIMESTAMP, DocumentNotFound
from linkedup.infra.memory_store import MemoryDocumentStore


@pytest.mark.asyncio
async def test_set_merge_and_update():
	store = MemoryDocumentStore()
	await store.set("users/u1", {"name": "Ana", "major": "CS"})
	await store.set("users/u1", {"bio": "hi"}, merge=True)
	await store.update("users/u1", {"major": "Math"})

	assert await store.get("users/u1") == {"name": "Ana", "major": "Math", "bio": "hi"}

	await store.set("users/u1", {"name": "Ana"})
	assert await store.get("users/u1") == {"name": "Ana"}


@pytest.mark.asyncio
async def test_update_missing_document_raises():
	store = MemoryDocumentStore()
	with pytest.raises(DocumentNotFound):
		await store.update("users/nobody", {"name": "x"})


@pytest.mark.asyncio
async def test_delete_missing_document_is_silent():
	store = MemoryDocumentStore()
	await store.delete("users/nobody")
	assert await store.get("users/nobody") is None


@pytest.mark.asyncio
async def test_reads_are_copies():
	store = MemoryDocumentStore()
	await store.set("users/u1", {"interests": ["AI"]})
	record = await store.get("users/u1")
	record["interests"].append("Java")

	assert await store.get("users/u1") == {"interests": ["AI"]}


@pytest.mark.asyncio
async def test_add_assigns_server_timestamps_in_order():
	store = MemoryDocumentStore()
	first = await store.add("chatRooms/a_b/messages", {"text": "1", "time": SERVER_TIMESTAMP})
	second = await store.add("chatRooms/a_b/messages", {"text": "2", "time": SERVER_TIMESTAMP})

	docs = await store.list("chatRooms/a_b/messages", order_by="time")
	assert [doc.id for doc in docs] == [first, second]
	assert isinstance(docs[0].get("time"), datetime)
	assert docs[0].get("time") < docs[1].get("time")


@pytest.mark.asyncio
async def test_batch_applies_all_writes_together():
	store = MemoryDocumentStore()
	await store.set("users/a/interests/b", {"liked": True})
	subscription = await store.subscribe("users/a/interests")
	assert [doc.id for doc in await subscription.__anext__()] == ["b"]

	batch = store.batch()
	batch.delete("users/a/interests/b")
	batch.set("users/a/interests/c", {"liked": True})
	await batch.commit()

	assert [doc.id for doc in await subscription.__anext__()] == ["c"]
	await subscription.close()


@pytest.mark.asyncio
async def test_subscription_emits_current_state_then_changes():
	store = MemoryDocumentStore()
	await store.set("users/u1", {"name": "Ana"})
	subscription = await store.subscribe("users")

	initial = await subscription.__anext__()
	assert [doc.id for doc in initial] == ["u1"]

	await store.set("users/u2", {"name": "Ben"})
	update = await asyncio.wait_for(subscription.__anext__(), timeout=1)
	assert [doc.id for doc in update] == ["u1", "u2"]
	await subscription.close()


@pytest.mark.asyncio
async def test_closing_subscription_releases_listener():
	store = MemoryDocumentStore()
	subscription = await store.subscribe("users")
	assert store.listener_count("users") == 1

	await subscription.close()
	await subscription.close()

	assert store.listener_count("users") == 0
	await store.set("users/u1", {"name": "Ana"})
	with pytest.raises(StopAsyncIteration):
		await subscription.__anext__()


@pytest.mark.asyncio
async def test_store_close_ends_every_subscription():
	store = MemoryDocumentStore()
	first = await store.subscribe("users")
	second = await store.subscribe("chatRooms/a_b/messages")

	await store.close()

	assert first.closed and second.closed
	assert store.listener_count() == 0
