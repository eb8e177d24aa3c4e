"""Messaging channel: append-only message log per room, ordered by server time."""

from __future__ import annotations

import logging
from typing import List

from linkedup.domain.chat.models import ChatMessage
from linkedup.domain.common import keys
from linkedup.domain.common.exceptions import (
	EmptyMessage,
	InvalidArgument,
	MessageTooLong,
	NotAuthenticated,
	translate_store_errors,
)
from linkedup.infra.documents import SERVER_TIMESTAMP, DocumentStore, MappedSubscription, Snapshot
from linkedup.infra.store import get_store
from linkedup.obs import metrics as obs_metrics
from linkedup.settings import settings

logger = logging.getLogger(__name__)

ORDER_FIELD = "time"
FEED_CHAT = "chat"


def _check_room(value: str) -> str:
	text = (value or "").strip()
	if not text or "/" in text:
		raise InvalidArgument("invalid_room_id")
	return text


def _messages(snapshot: Snapshot) -> List[ChatMessage]:
	return [ChatMessage.from_document(doc) for doc in snapshot]


class MessagingChannel:
	def __init__(self, store: DocumentStore | None = None) -> None:
		self._store = store

	@property
	def store(self) -> DocumentStore:
		return self._store if self._store is not None else get_store()

	async def send_message(self, room_id: str, sender_id: str, sender_name: str, text: str) -> str:
		"""Append a message stamped with the store's clock and return its id."""
		room = _check_room(room_id)
		if not sender_id:
			raise NotAuthenticated()
		if text is None or not text.strip():
			raise EmptyMessage()
		if len(text) > settings.chat_message_max_length:
			raise MessageTooLong()
		record = {
			"roomId": room,
			"senderId": sender_id,
			"senderName": sender_name or "",
			"text": text,
			ORDER_FIELD: SERVER_TIMESTAMP,
		}
		with translate_store_errors("send_message"):
			message_id = await self.store.add(keys.messages_collection(room), record)
		obs_metrics.inc_chat_send()
		logger.info("chat_message_sent", extra={"room_id": room, "sender": sender_id, "message_id": message_id})
		return message_id

	async def subscribe_messages(self, room_id: str) -> MappedSubscription[List[ChatMessage]]:
		room = _check_room(room_id)
		with translate_store_errors("subscribe_messages"):
			source = await self.store.subscribe(keys.messages_collection(room), order_by=ORDER_FIELD)
		obs_metrics.subscription_opened(FEED_CHAT)
		return source.map(_messages, on_close=lambda: obs_metrics.subscription_closed(FEED_CHAT))

	async def list_messages(self, room_id: str) -> List[ChatMessage]:
		room = _check_room(room_id)
		with translate_store_errors("list_messages"):
			snapshot = await self.store.list(keys.messages_collection(room), order_by=ORDER_FIELD)
		return _messages(snapshot)
