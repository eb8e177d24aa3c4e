"""Socket.IO namespace for match notifications."""

from __future__ import annotations

from typing import Optional

import socketio

from linkedup.infra.auth import AuthenticatedUser, socket_user
from linkedup.obs import metrics as obs_metrics

_namespace: Optional["SocialNamespace"] = None


class SocialNamespace(socketio.AsyncNamespace):
	"""Namespace that keeps each client in their personal room."""

	def __init__(self) -> None:
		super().__init__("/social")
		self._sessions: dict[str, AuthenticatedUser] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		try:
			user = socket_user(environ, auth)
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		self._sessions[sid] = user
		await self.enter_room(sid, self.user_room(user.id))
		await self.emit("social:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		user = self._sessions.pop(sid, None)
		if user:
			await self.leave_room(sid, self.user_room(user.id))

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"


def set_namespace(ns: SocialNamespace | None) -> None:
	global _namespace
	_namespace = ns


async def emit_match_new(user_id: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, "match:new")
	await _namespace.emit("match:new", payload, room=SocialNamespace.user_room(user_id))


async def emit_match_removed(user_id: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, "match:removed")
	await _namespace.emit("match:removed", payload, room=SocialNamespace.user_room(user_id))
