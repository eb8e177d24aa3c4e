"""Socket.IO namespace streaming the caller's nearby feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import socketio

from linkedup.domain.common.exceptions import InvalidRadius, LinkedUpError
from linkedup.domain.discovery.service import DiscoveryFeed, NearbyView, validate_radius
from linkedup.infra.auth import AuthenticatedUser, socket_user
from linkedup.infra.documents import StoreError
from linkedup.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


def view_payload(view: NearbyView) -> dict:
	return {
		"origin": view.origin.to_dict() if view.origin else None,
		"radius_km": view.radius_km,
		"candidates": [candidate.to_payload() for candidate in view.candidates],
	}


class DiscoveryNamespace(socketio.AsyncNamespace):
	"""Each connection owns one live radius feed until it disconnects."""

	def __init__(self, feed: DiscoveryFeed | None = None) -> None:
		super().__init__("/discovery")
		self._feed = feed or DiscoveryFeed()
		self._sessions: Dict[str, AuthenticatedUser] = {}
		self._streams: Dict[str, Tuple[Any, asyncio.Task]] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		try:
			user = socket_user(environ, auth)
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		self._sessions[sid] = user
		radius = (auth or {}).get("radiusKm")
		try:
			await self._start(sid, user, radius)
		except LinkedUpError as exc:
			self._sessions.pop(sid, None)
			obs_metrics.socket_disconnected(self.namespace)
			raise ConnectionRefusedError(exc.reason) from None

	async def on_disconnect(self, sid: str) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		self._sessions.pop(sid, None)
		await self._stop(sid)

	async def on_set_radius(self, sid: str, payload: dict | None = None) -> dict:
		"""Restart the caller's feed with a new radius (None falls back to their saved radius).

		An invalid radius leaves the running feed untouched.
		"""
		obs_metrics.socket_event(self.namespace, "set_radius")
		user = self._sessions.get(sid)
		if not user:
			raise ConnectionRefusedError("unauthenticated")
		radius = (payload or {}).get("radius_km")
		try:
			validate_radius(radius)
		except InvalidRadius as exc:
			return {"ok": False, "detail": exc.reason}
		await self._stop(sid)
		try:
			started = await self._start(sid, user, radius)
		except LinkedUpError as exc:
			return {"ok": False, "detail": exc.reason}
		if not started:
			return {"ok": False, "detail": "disconnected"}
		return {"ok": True}

	async def _start(self, sid: str, user: AuthenticatedUser, radius_km: Optional[float]) -> bool:
		stream = await self._feed.subscribe_within_radius(user.id, radius_km)
		# the client may have disconnected while the subscription was opening
		if sid not in self._sessions:
			await stream.close()
			return False
		previous = self._streams.pop(sid, None)
		task = asyncio.create_task(self._pump(sid, stream), name=f"discovery-feed:{sid}")
		self._streams[sid] = (stream, task)
		if previous is not None:
			await self._release(previous)
		return True

	async def _stop(self, sid: str) -> None:
		entry = self._streams.pop(sid, None)
		if entry is not None:
			await self._release(entry)

	@staticmethod
	async def _release(entry: Tuple[Any, asyncio.Task]) -> None:
		stream, task = entry
		await stream.close()
		if not task.done():
			task.cancel()
			try:
				await task
			except asyncio.CancelledError:
				pass

	async def _pump(self, sid: str, stream: Any) -> None:
		try:
			async for view in stream:
				obs_metrics.socket_event(self.namespace, "nearby:snapshot")
				await self.emit("nearby:snapshot", view_payload(view), room=sid)
		except StoreError:
			logger.warning("discovery_feed_failed", extra={"sid": sid}, exc_info=True)
			await self.emit("nearby:error", {"detail": "repository_unavailable"}, room=sid)

	def active_streams(self) -> int:
		return len(self._streams)
