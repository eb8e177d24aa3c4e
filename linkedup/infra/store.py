"""Process-wide document store handle."""

from __future__ import annotations

from typing import Optional

from linkedup.infra.documents import DocumentStore
from linkedup.obs import logging as obs_logging
from linkedup.settings import settings

_store: Optional[DocumentStore] = None


def _build_store() -> DocumentStore:
	if settings.store_backend == "redis":
		from linkedup.infra.redis_store import RedisDocumentStore

		return RedisDocumentStore()
	from linkedup.infra.memory_store import MemoryDocumentStore

	return MemoryDocumentStore()


def init_store() -> DocumentStore:
	global _store
	if _store is None:
		_store = _build_store()
		obs_logging.get_logger().info("store_initialised", extra={"backend": settings.store_backend})
	return _store


def set_store(store: Optional[DocumentStore]) -> None:
	global _store
	_store = store


def get_store() -> DocumentStore:
	return _store if _store is not None else init_store()


async def close_store() -> None:
	global _store
	if _store is None:
		return
	store, _store = _store, None
	await store.close()
	if settings.store_backend == "redis":
		from linkedup.infra.redis import close_redis

		await close_redis()
