"""Domain models for chat rooms and messages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from linkedup.infra.documents import Document

ROOM_SEPARATOR = "_"


def room_id(a: str, b: str) -> str:
	"""Deterministic room for a pair: the lexicographically smaller id first."""
	first, second = sorted((a, b))
	return f"{first}{ROOM_SEPARATOR}{second}"


@dataclass(slots=True, frozen=True)
class ChatMessage:
	"""Message as stored under ``chatRooms/{room_id}/messages``."""

	id: str
	room_id: str
	sender_id: str
	sender_name: str
	text: str
	time: Optional[datetime]

	@classmethod
	def from_document(cls, doc: Document) -> "ChatMessage":
		time = doc.get("time")
		return cls(
			id=doc.id,
			room_id=str(doc.get("roomId") or ""),
			sender_id=str(doc.get("senderId") or ""),
			sender_name=str(doc.get("senderName") or ""),
			text=str(doc.get("text") or ""),
			time=time if isinstance(time, datetime) else None,
		)

	def to_payload(self) -> dict:
		return {
			"id": self.id,
			"room_id": self.room_id,
			"sender_id": self.sender_id,
			"sender_name": self.sender_name,
			"text": self.text,
			"time": self.time.isoformat() if self.time else None,
		}
