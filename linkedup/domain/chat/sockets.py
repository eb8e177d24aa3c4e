"""Socket.IO namespace for chat transport."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import socketio

from linkedup.domain.chat.models import room_id as derive_room_id
from linkedup.domain.chat.service import MessagingChannel
from linkedup.domain.common.exceptions import LinkedUpError, NotMatched
from linkedup.domain.identity.service import ProfileService
from linkedup.domain.social.service import RelationshipRepository
from linkedup.infra.auth import AuthenticatedUser, socket_user
from linkedup.infra.documents import StoreError
from linkedup.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class ChatNamespace(socketio.AsyncNamespace):
	"""Streams a matched pair's room to each client that joined it."""

	def __init__(
		self,
		channel: MessagingChannel | None = None,
		relationships: RelationshipRepository | None = None,
		profiles: ProfileService | None = None,
	) -> None:
		super().__init__("/chat")
		self._channel = channel or MessagingChannel()
		self._relationships = relationships or RelationshipRepository()
		self._profiles = profiles or ProfileService()
		self._sessions: Dict[str, AuthenticatedUser] = {}
		# sid -> room id -> (subscription, pump task)
		self._rooms: Dict[str, Dict[str, Tuple[Any, asyncio.Task]]] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		try:
			user = socket_user(environ, auth)
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		self._sessions[sid] = user
		self._rooms[sid] = {}
		await self.emit("chat:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		self._sessions.pop(sid, None)
		for room in list(self._rooms.get(sid, {})):
			await self._leave(sid, room)
		self._rooms.pop(sid, None)

	async def on_room_join(self, sid: str, payload: dict | None = None) -> dict:
		obs_metrics.socket_event(self.namespace, "room_join")
		user = self._user(sid)
		try:
			room = await self._matched_room(user, payload)
			if room in self._rooms.get(sid, {}):
				return {"ok": True, "room_id": room}
			stream = await self._channel.subscribe_messages(room)
		except LinkedUpError as exc:
			return {"ok": False, "detail": exc.reason}
		rooms = self._rooms.get(sid)
		# disconnect or a concurrent join of the same room may have won the race
		if sid not in self._sessions or rooms is None:
			await stream.close()
			return {"ok": False, "detail": "disconnected"}
		if room in rooms:
			await stream.close()
			return {"ok": True, "room_id": room}
		task = asyncio.create_task(self._pump(sid, room, stream), name=f"chat-room:{room}:{sid}")
		rooms[room] = (stream, task)
		return {"ok": True, "room_id": room}

	async def on_room_leave(self, sid: str, payload: dict | None = None) -> dict:
		obs_metrics.socket_event(self.namespace, "room_leave")
		user = self._user(sid)
		peer_id = str((payload or {}).get("peer_id") or "")
		if not peer_id:
			return {"ok": False, "detail": "invalid_argument"}
		room = derive_room_id(user.id, peer_id)
		await self._leave(sid, room)
		return {"ok": True, "room_id": room}

	async def on_send_message(self, sid: str, payload: dict | None = None) -> dict:
		obs_metrics.socket_event(self.namespace, "send_message")
		user = self._user(sid)
		try:
			room = await self._matched_room(user, payload)
			sender_name = await self._profiles.display_name(user.id, fallback=user.display_name)
			message_id = await self._channel.send_message(room, user.id, sender_name, str((payload or {}).get("text") or ""))
		except LinkedUpError as exc:
			return {"ok": False, "detail": exc.reason}
		return {"ok": True, "id": message_id, "room_id": room}

	def _user(self, sid: str) -> AuthenticatedUser:
		user = self._sessions.get(sid)
		if not user:
			raise ConnectionRefusedError("unauthenticated")
		return user

	async def _matched_room(self, user: AuthenticatedUser, payload: dict | None) -> str:
		peer_id = str((payload or {}).get("peer_id") or "")
		if not await self._relationships.is_matched(user.id, peer_id):
			raise NotMatched()
		return derive_room_id(user.id, peer_id)

	async def _leave(self, sid: str, room: str) -> None:
		entry = self._rooms.get(sid, {}).pop(room, None)
		if entry is None:
			return
		stream, task = entry
		await stream.close()
		if not task.done():
			task.cancel()
			try:
				await task
			except asyncio.CancelledError:
				pass

	async def _pump(self, sid: str, room: str, stream: Any) -> None:
		try:
			async for messages in stream:
				obs_metrics.socket_event(self.namespace, "chat:messages")
				await self.emit(
					"chat:messages",
					{"room_id": room, "messages": [message.to_payload() for message in messages]},
					room=sid,
				)
		except StoreError:
			logger.warning("chat_room_feed_failed", extra={"room_id": room}, exc_info=True)
			await self.emit("chat:error", {"room_id": room, "detail": "repository_unavailable"}, room=sid)

	def joined_rooms(self, sid: str) -> list[str]:
		return sorted(self._rooms.get(sid, {}))
