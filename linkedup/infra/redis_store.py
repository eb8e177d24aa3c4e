"""Redis-backed document store.

Layout (all keys carry ``settings.store_key_prefix``):

- ``doc:{path}``: JSON encoded document body.
- ``col:{collection}``: sorted set of document ids scored by insertion order.
- ``seq``: global insertion counter feeding the sorted-set scores.
- ``changes:{collection}``: pub/sub channel notified after every write.

Writes run inside MULTI/EXEC so a batch is applied all-or-nothing; merges use
WATCH so concurrent updates of the same document never lose fields.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Set

import ulid
from redis.exceptions import RedisError, WatchError

from linkedup.infra.documents import (
	BatchOp,
	Document,
	DocumentNotFound,
	SetOp,
	Snapshot,
	StoreError,
	Subscription,
	WriteBatch,
	check_collection,
	has_server_timestamp,
	resolve_server_timestamps,
	sort_snapshot,
	split_path,
)
from linkedup.infra.redis import redis_client
from linkedup.settings import settings

logger = logging.getLogger(__name__)

_TS_TAG = "$ts"
_POLL_SECONDS = 1.0


def _json_default(value: Any) -> Any:
	if isinstance(value, datetime):
		return {_TS_TAG: value.isoformat()}
	raise TypeError(f"unsupported document value: {type(value).__name__}")


def _object_hook(obj: Dict[str, Any]) -> Any:
	if len(obj) == 1 and _TS_TAG in obj:
		return datetime.fromisoformat(obj[_TS_TAG])
	return obj


def encode_document(data: Mapping[str, Any]) -> str:
	return json.dumps(dict(data), default=_json_default, separators=(",", ":"))


def decode_document(raw: str | bytes) -> Dict[str, Any]:
	return json.loads(raw, object_hook=_object_hook)


def _text(value: str | bytes) -> str:
	return value.decode() if isinstance(value, bytes) else str(value)


@asynccontextmanager
async def _redis_errors(operation: str) -> AsyncIterator[None]:
	try:
		yield
	except RedisError as exc:
		raise StoreError(f"{operation} failed: {exc}") from exc


class RedisDocumentStore:
	"""Document store persisted in redis; safe to share between processes."""

	def __init__(self, client: Any = None, *, prefix: Optional[str] = None) -> None:
		self._client = client if client is not None else redis_client
		self._prefix = settings.store_key_prefix if prefix is None else prefix
		self._subscriptions: Set[Subscription] = set()

	def _doc_key(self, path: str) -> str:
		return f"{self._prefix}doc:{path}"

	def _col_key(self, collection: str) -> str:
		return f"{self._prefix}col:{collection}"

	def _seq_key(self) -> str:
		return f"{self._prefix}seq"

	def channel(self, collection: str) -> str:
		return f"{self._prefix}changes:{collection}"

	async def _server_now(self) -> datetime:
		seconds, micros = await self._client.time()
		return datetime.fromtimestamp(int(seconds), tz=timezone.utc).replace(microsecond=int(micros))

	async def _resolve(self, data: Mapping[str, Any]) -> Dict[str, Any]:
		if has_server_timestamp(data):
			return resolve_server_timestamps(data, await self._server_now())
		return dict(data)

	async def get(self, path: str) -> Optional[Dict[str, Any]]:
		split_path(path)
		async with _redis_errors("get"):
			raw = await self._client.get(self._doc_key(path))
		return decode_document(raw) if raw is not None else None

	async def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
		collection, doc_id = split_path(path)
		async with _redis_errors("set"):
			resolved = await self._resolve(data)
			if merge:
				await self._merge(path, resolved, must_exist=False)
				return
			seq = await self._client.incr(self._seq_key())
			async with self._client.pipeline(transaction=True) as pipe:
				pipe.set(self._doc_key(path), encode_document(resolved))
				pipe.zadd(self._col_key(collection), {doc_id: seq}, nx=True)
				pipe.publish(self.channel(collection), doc_id)
				await pipe.execute()

	async def update(self, path: str, fields: Mapping[str, Any]) -> None:
		split_path(path)
		async with _redis_errors("update"):
			await self._merge(path, await self._resolve(fields), must_exist=True)

	async def _merge(self, path: str, fields: Dict[str, Any], *, must_exist: bool) -> None:
		collection, doc_id = split_path(path)
		key = self._doc_key(path)
		async with self._client.pipeline(transaction=True) as pipe:
			while True:
				try:
					await pipe.watch(key)
					raw = await pipe.get(key)
					if raw is None and must_exist:
						raise DocumentNotFound(path)
					current = decode_document(raw) if raw is not None else {}
					current.update(fields)
					seq = await pipe.incr(self._seq_key())
					pipe.multi()
					pipe.set(key, encode_document(current))
					pipe.zadd(self._col_key(collection), {doc_id: seq}, nx=True)
					pipe.publish(self.channel(collection), doc_id)
					await pipe.execute()
					return
				except WatchError:
					logger.debug("document_merge_retry", extra={"collection": collection})
					continue

	async def delete(self, path: str) -> None:
		collection, doc_id = split_path(path)
		async with _redis_errors("delete"):
			async with self._client.pipeline(transaction=True) as pipe:
				pipe.delete(self._doc_key(path))
				pipe.zrem(self._col_key(collection), doc_id)
				pipe.publish(self.channel(collection), doc_id)
				await pipe.execute()

	async def add(self, collection: str, data: Mapping[str, Any]) -> str:
		check_collection(collection)
		doc_id = str(ulid.new())
		await self.set(f"{collection}/{doc_id}", data)
		return doc_id

	async def list(self, collection: str, *, order_by: Optional[str] = None) -> Snapshot:
		check_collection(collection)
		async with _redis_errors("list"):
			ids = [_text(member) for member in await self._client.zrange(self._col_key(collection), 0, -1)]
			if not ids:
				return []
			raws = await self._client.mget([self._doc_key(f"{collection}/{doc_id}") for doc_id in ids])
		documents: List[Document] = []
		for doc_id, raw in zip(ids, raws):
			if raw is None:
				continue
			documents.append(Document(id=doc_id, path=f"{collection}/{doc_id}", data=decode_document(raw)))
		return sort_snapshot(documents, order_by)

	def batch(self) -> WriteBatch:
		return WriteBatch(self._apply_batch)

	async def _apply_batch(self, ops: Sequence[BatchOp]) -> None:
		async with _redis_errors("batch"):
			now = None
			if any(isinstance(op, SetOp) and has_server_timestamp(op.data) for op in ops):
				now = await self._server_now()
			last_seq = await self._client.incrby(self._seq_key(), len(ops))
			first_seq = last_seq - len(ops) + 1
			touched: List[str] = []
			async with self._client.pipeline(transaction=True) as pipe:
				for index, op in enumerate(ops):
					collection, doc_id = split_path(op.path)
					if collection not in touched:
						touched.append(collection)
					if isinstance(op, SetOp):
						data = resolve_server_timestamps(op.data, now) if now is not None else op.data
						pipe.set(self._doc_key(op.path), encode_document(data))
						pipe.zadd(self._col_key(collection), {doc_id: first_seq + index}, nx=True)
					else:
						pipe.delete(self._doc_key(op.path))
						pipe.zrem(self._col_key(collection), doc_id)
				for collection in touched:
					pipe.publish(self.channel(collection), "batch")
				await pipe.execute()

	async def subscribe(self, collection: str, *, order_by: Optional[str] = None) -> Subscription[Snapshot]:
		check_collection(collection)
		pubsub = self._client.pubsub()
		async with _redis_errors("subscribe"):
			await pubsub.subscribe(self.channel(collection))
		pump: Optional[asyncio.Task] = None

		async def _release() -> None:
			self._subscriptions.discard(subscription)
			if pump is not None and not pump.done():
				pump.cancel()
				try:
					await pump
				except asyncio.CancelledError:
					pass
			try:
				await pubsub.unsubscribe()
				await pubsub.aclose()
			except RedisError:
				logger.warning("pubsub_release_failed", extra={"collection": collection}, exc_info=True)

		subscription: Subscription[Snapshot] = Subscription(on_close=_release)
		try:
			subscription.push(await self.list(collection, order_by=order_by))
		except StoreError:
			await subscription.close()
			raise
		pump = asyncio.create_task(
			self._pump(pubsub, subscription, collection, order_by),
			name=f"store-subscription:{collection}",
		)
		self._subscriptions.add(subscription)
		return subscription

	async def _pump(self, pubsub: Any, subscription: Subscription, collection: str, order_by: Optional[str]) -> None:
		try:
			while not subscription.closed:
				message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=_POLL_SECONDS)
				if message is None or message.get("type") != "message":
					continue
				subscription.push(await self.list(collection, order_by=order_by))
		except StoreError as exc:
			subscription.fail(exc)
		except RedisError as exc:
			subscription.fail(StoreError(f"subscription failed: {exc}"))
		except Exception as exc:
			logger.exception("store_subscription_failed", extra={"collection": collection})
			subscription.fail(StoreError(f"subscription failed: {exc}"))

	async def close(self) -> None:
		for subscription in list(self._subscriptions):
			await subscription.close()
