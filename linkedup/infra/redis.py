"""Shared redis client for the redis document store.

`redis_client` is a single proxy imported everywhere; tests swap the client
behind it for fakeredis via `set_redis_client`.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from linkedup.settings import settings

logger = logging.getLogger(__name__)


class RedisProxy:
	"""Forwards attribute access to whichever client is currently installed."""

	def __init__(self, client: redis.Redis):
		self._client: redis.Redis = client

	def set_client(self, client: redis.Redis) -> None:
		self._client = client

	@property
	def client(self) -> redis.Redis:
		return self._client

	async def healthy(self) -> bool:
		try:
			return bool(await self._client.ping())
		except RedisError:
			logger.warning("redis_ping_failed", exc_info=True)
			return False

	def __getattr__(self, item):
		return getattr(self._client, item)


redis_client: RedisProxy = RedisProxy(redis.from_url(settings.redis_url, decode_responses=True))


def set_redis_client(client: redis.Redis) -> None:
	redis_client.set_client(client)


async def close_redis() -> None:
	await redis_client.client.aclose()
