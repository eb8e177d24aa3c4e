"""Process-local document store used by tests and single-process deployments."""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import ulid

from linkedup.infra.documents import (
	BatchOp,
	Document,
	DocumentNotFound,
	SetOp,
	Snapshot,
	Subscription,
	WriteBatch,
	check_collection,
	has_server_timestamp,
	resolve_server_timestamps,
	sort_snapshot,
	split_path,
)

_Listener = Tuple[Subscription, Optional[str]]


class MemoryDocumentStore:
	"""Dictionary-backed store with synchronous listener fan-out."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
		self._listeners: Dict[str, List[_Listener]] = {}
		self._last_ts: Optional[datetime] = None

	def _server_now(self) -> datetime:
		now = datetime.now(timezone.utc)
		if self._last_ts is not None and now <= self._last_ts:
			now = self._last_ts + timedelta(microseconds=1)
		self._last_ts = now
		return now

	def _prepare(self, data: Mapping[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
		if has_server_timestamp(data):
			data = resolve_server_timestamps(data, now or self._server_now())
		return copy.deepcopy(dict(data))

	def _snapshot(self, collection: str, order_by: Optional[str]) -> Snapshot:
		documents = [
			Document(id=doc_id, path=f"{collection}/{doc_id}", data=copy.deepcopy(data))
			for doc_id, data in self._collections.get(collection, {}).items()
		]
		return sort_snapshot(documents, order_by)

	def _notify(self, collections: Sequence[str]) -> None:
		for collection in collections:
			for subscription, order_by in list(self._listeners.get(collection, [])):
				subscription.push(self._snapshot(collection, order_by))

	async def get(self, path: str) -> Optional[Dict[str, Any]]:
		collection, doc_id = split_path(path)
		async with self._lock:
			data = self._collections.get(collection, {}).get(doc_id)
			return copy.deepcopy(data) if data is not None else None

	async def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
		collection, doc_id = split_path(path)
		async with self._lock:
			documents = self._collections.setdefault(collection, {})
			prepared = self._prepare(data)
			existing = documents.get(doc_id)
			if merge and existing is not None:
				existing.update(prepared)
			else:
				documents[doc_id] = prepared
			self._notify([collection])

	async def update(self, path: str, fields: Mapping[str, Any]) -> None:
		collection, doc_id = split_path(path)
		async with self._lock:
			existing = self._collections.get(collection, {}).get(doc_id)
			if existing is None:
				raise DocumentNotFound(path)
			existing.update(self._prepare(fields))
			self._notify([collection])

	async def delete(self, path: str) -> None:
		collection, doc_id = split_path(path)
		async with self._lock:
			removed = self._collections.get(collection, {}).pop(doc_id, None)
			if removed is not None:
				self._notify([collection])

	async def add(self, collection: str, data: Mapping[str, Any]) -> str:
		check_collection(collection)
		doc_id = str(ulid.new())
		await self.set(f"{collection}/{doc_id}", data)
		return doc_id

	async def list(self, collection: str, *, order_by: Optional[str] = None) -> Snapshot:
		check_collection(collection)
		async with self._lock:
			return self._snapshot(collection, order_by)

	def batch(self) -> WriteBatch:
		return WriteBatch(self._apply_batch)

	async def _apply_batch(self, ops: Sequence[BatchOp]) -> None:
		async with self._lock:
			now = self._server_now()
			touched: List[str] = []
			for op in ops:
				collection, doc_id = split_path(op.path)
				if collection not in touched:
					touched.append(collection)
				if isinstance(op, SetOp):
					self._collections.setdefault(collection, {})[doc_id] = self._prepare(op.data, now)
				else:
					self._collections.get(collection, {}).pop(doc_id, None)
			self._notify(touched)

	async def subscribe(self, collection: str, *, order_by: Optional[str] = None) -> Subscription[Snapshot]:
		check_collection(collection)
		listener: List[_Listener] = []

		async def _release() -> None:
			async with self._lock:
				registered = self._listeners.get(collection, [])
				for entry in listener:
					if entry in registered:
						registered.remove(entry)
				if not registered:
					self._listeners.pop(collection, None)

		subscription: Subscription[Snapshot] = Subscription(on_close=_release)
		async with self._lock:
			entry = (subscription, order_by)
			listener.append(entry)
			self._listeners.setdefault(collection, []).append(entry)
			subscription.push(self._snapshot(collection, order_by))
		return subscription

	def listener_count(self, collection: Optional[str] = None) -> int:
		if collection is not None:
			return len(self._listeners.get(collection, []))
		return sum(len(entries) for entries in self._listeners.values())

	async def close(self) -> None:
		subscriptions = [sub for entries in self._listeners.values() for sub, _ in entries]
		for subscription in subscriptions:
			await subscription.close()
