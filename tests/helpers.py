import asyncio
from typing import Any, Dict, Mapping, Optional

from linkedup.infra.documents import StoreError, WriteBatch
from linkedup.infra.memory_store import MemoryDocumentStore


async def drain(rounds: int = 5) -> None:
	"""Let background pump tasks observe pushed snapshots."""
	for _ in range(rounds):
		await asyncio.sleep(0)


async def seed_user(
	store: MemoryDocumentStore,
	uid: str,
	*,
	name: Optional[str] = "",
	location: Optional[Dict[str, float]] = None,
	**fields: Any,
) -> None:
	record: Dict[str, Any] = {"name": name}
	if location is not None:
		record["location"] = location
	record.update(fields)
	await store.set(f"users/{uid}", record)


class FlakyStore:
	"""Delegates to a memory store but fails the Nth batch commit (1-based) and every one after."""

	def __init__(self, inner: MemoryDocumentStore, *, fail_from_commit: int = 1) -> None:
		self.inner = inner
		self.fail_from_commit = fail_from_commit
		self.commits = 0

	async def get(self, path: str) -> Optional[Dict[str, Any]]:
		return await self.inner.get(path)

	async def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
		await self.inner.set(path, data, merge=merge)

	async def update(self, path: str, fields: Mapping[str, Any]) -> None:
		await self.inner.update(path, fields)

	async def delete(self, path: str) -> None:
		await self.inner.delete(path)

	async def add(self, collection: str, data: Mapping[str, Any]) -> str:
		return await self.inner.add(collection, data)

	async def list(self, collection: str, *, order_by: Optional[str] = None):
		return await self.inner.list(collection, order_by=order_by)

	def batch(self) -> WriteBatch:
		async def _commit(ops):
			self.commits += 1
			if self.commits >= self.fail_from_commit:
				raise StoreError("simulated outage")
			await self.inner._apply_batch(ops)

		return WriteBatch(_commit)

	async def subscribe(self, collection: str, *, order_by: Optional[str] = None):
		return await self.inner.subscribe(collection, order_by=order_by)

	async def close(self) -> None:
		await self.inner.close()
