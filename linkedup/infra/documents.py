"""Document store abstraction shared by every domain repository.

The store models a schema-less, hierarchical key space: a document lives at
``collection/id`` and collections may nest under documents
(``users/{uid}/interests/{target}``). Backends provide single-document reads
and writes, all-or-nothing batches, and live queries that re-deliver the full
collection on every change.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import (
	Any,
	Awaitable,
	Callable,
	Dict,
	Generic,
	List,
	Mapping,
	Optional,
	Protocol,
	Sequence,
	Tuple,
	TypeVar,
	Union,
)

T = TypeVar("T")
U = TypeVar("U")


class StoreError(Exception):
	"""Raised by store backends for any failure talking to the underlying database."""


class DocumentNotFound(StoreError):
	def __init__(self, path: str) -> None:
		super().__init__(f"document not found: {path}")
		self.path = path


class InvalidPath(StoreError):
	def __init__(self, path: str) -> None:
		super().__init__(f"invalid document path: {path!r}")
		self.path = path


class _ServerTimestamp:
	"""Placeholder replaced by the store's own clock when a write is applied."""

	_instance: Optional["_ServerTimestamp"] = None

	def __new__(cls) -> "_ServerTimestamp":
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __repr__(self) -> str:
		return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True, slots=True)
class Document:
	id: str
	path: str
	data: Dict[str, Any] = field(default_factory=dict)

	def get(self, key: str, default: Any = None) -> Any:
		return self.data.get(key, default)


Snapshot = List[Document]


def split_path(path: str) -> Tuple[str, str]:
	"""Split a document path into ``(collection, document_id)``."""
	parts = str(path).split("/")
	if len(parts) < 2 or len(parts) % 2 != 0 or any(not part for part in parts):
		raise InvalidPath(path)
	return "/".join(parts[:-1]), parts[-1]


def check_collection(collection: str) -> str:
	parts = str(collection).split("/")
	if len(parts) % 2 != 1 or any(not part for part in parts):
		raise InvalidPath(collection)
	return collection


def has_server_timestamp(data: Mapping[str, Any]) -> bool:
	return any(value is SERVER_TIMESTAMP for value in data.values())


def resolve_server_timestamps(data: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
	return {key: (now if value is SERVER_TIMESTAMP else value) for key, value in data.items()}


def _order_key(field_name: str) -> Callable[[Document], tuple]:
	def key(doc: Document) -> tuple:
		value = doc.data.get(field_name)
		if value is None:
			return (0, 0)
		return (1, value)

	return key


def sort_snapshot(documents: Sequence[Document], order_by: Optional[str]) -> Snapshot:
	"""Order documents by a field ascending; ties keep insertion order."""
	if not order_by:
		return list(documents)
	return sorted(documents, key=_order_key(order_by))


# --- batches -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SetOp:
	path: str
	data: Dict[str, Any]


@dataclass(frozen=True, slots=True)
class DeleteOp:
	path: str


BatchOp = Union[SetOp, DeleteOp]


class WriteBatch:
	"""Collects writes that the owning store applies all-or-nothing on commit."""

	def __init__(self, commit: Callable[[Sequence[BatchOp]], Awaitable[None]]) -> None:
		self._commit = commit
		self._ops: List[BatchOp] = []
		self._committed = False

	def set(self, path: str, data: Mapping[str, Any]) -> "WriteBatch":
		split_path(path)
		self._ops.append(SetOp(path=path, data=dict(data)))
		return self

	def delete(self, path: str) -> "WriteBatch":
		split_path(path)
		self._ops.append(DeleteOp(path=path))
		return self

	@property
	def ops(self) -> Tuple[BatchOp, ...]:
		return tuple(self._ops)

	def __len__(self) -> int:
		return len(self._ops)

	async def commit(self) -> None:
		if self._committed:
			raise StoreError("batch already committed")
		self._committed = True
		if not self._ops:
			return
		await self._commit(tuple(self._ops))


# --- live subscriptions ------------------------------------------------------

_EMPTY = object()


class Subscription(Generic[T]):
	"""Cancellable async stream of complete snapshots.

	Producers call :meth:`push` with the latest full result and :meth:`fail` when
	the backing listener breaks. Only the most recent undelivered snapshot is
	kept, so a slow consumer always observes the newest state. :meth:`close` is
	idempotent and runs the release callback exactly once.
	"""

	def __init__(self, *, on_close: Optional[Callable[[], Awaitable[None]]] = None) -> None:
		self._on_close = on_close
		self._pending: Any = _EMPTY
		self._error: Optional[BaseException] = None
		self._closed = False
		self._wakeup = asyncio.Event()

	@property
	def closed(self) -> bool:
		return self._closed

	def push(self, snapshot: T) -> None:
		if self._closed or self._error is not None:
			return
		self._pending = snapshot
		self._wakeup.set()

	def fail(self, error: BaseException) -> None:
		if self._closed or self._error is not None:
			return
		self._error = error
		self._wakeup.set()

	async def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		self._pending = _EMPTY
		self._wakeup.set()
		callback, self._on_close = self._on_close, None
		if callback is not None:
			await callback()

	def __aiter__(self) -> "Subscription[T]":
		return self

	async def __anext__(self) -> T:
		while True:
			if self._closed:
				raise StopAsyncIteration
			if self._pending is not _EMPTY:
				snapshot, self._pending = self._pending, _EMPTY
				return snapshot
			if self._error is not None:
				error = self._error
				await self.close()
				raise error
			self._wakeup.clear()
			await self._wakeup.wait()

	async def __aenter__(self) -> "Subscription[T]":
		return self

	async def __aexit__(self, _exc_type, _exc, _tb) -> bool:
		await self.close()
		return False

	def map(self, transform: Callable[[T], U], *, on_close: Optional[Callable[[], None]] = None) -> "MappedSubscription[U]":
		return MappedSubscription(self, transform, on_close=on_close)


class MappedSubscription(Generic[U]):
	"""View over another subscription that transforms every snapshot.

	``on_close`` runs once, either when the view is closed or when the source
	stream ends (normally or with an error).
	"""

	def __init__(
		self,
		source: Any,
		transform: Callable[[Any], U],
		*,
		on_close: Optional[Callable[[], None]] = None,
	) -> None:
		self._source = source
		self._transform = transform
		self._on_close = on_close

	@property
	def closed(self) -> bool:
		return self._source.closed

	def _finish(self) -> None:
		callback, self._on_close = self._on_close, None
		if callback is not None:
			callback()

	async def close(self) -> None:
		try:
			await self._source.close()
		finally:
			self._finish()

	def __aiter__(self) -> "MappedSubscription[U]":
		return self

	async def __anext__(self) -> U:
		try:
			snapshot = await self._source.__anext__()
		except Exception:
			self._finish()
			raise
		return self._transform(snapshot)

	async def __aenter__(self) -> "MappedSubscription[U]":
		return self

	async def __aexit__(self, _exc_type, _exc, _tb) -> bool:
		await self.close()
		return False

	def map(self, transform: Callable[[U], Any], *, on_close: Optional[Callable[[], None]] = None) -> "MappedSubscription[Any]":
		return MappedSubscription(self, transform, on_close=on_close)


class DocumentStore(Protocol):
	"""Operations every backend provides; repositories depend only on this."""

	async def get(self, path: str) -> Optional[Dict[str, Any]]: ...

	async def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None: ...

	async def update(self, path: str, fields: Mapping[str, Any]) -> None: ...

	async def delete(self, path: str) -> None: ...

	async def add(self, collection: str, data: Mapping[str, Any]) -> str: ...

	async def list(self, collection: str, *, order_by: Optional[str] = None) -> Snapshot: ...

	def batch(self) -> WriteBatch: ...

	async def subscribe(self, collection: str, *, order_by: Optional[str] = None) -> Subscription[Snapshot]: ...

	async def close(self) -> None: ...
