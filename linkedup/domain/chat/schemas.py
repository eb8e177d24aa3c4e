"""Pydantic schemas for chat."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
	text: str = Field(..., description="Message body; must not be blank")


class SendMessageResponse(BaseModel):
	id: str
	room_id: str


class MessageOut(BaseModel):
	id: str
	room_id: str
	sender_id: str
	sender_name: str
	text: str
	time: Optional[datetime] = None


class MessageListResponse(BaseModel):
	room_id: str
	messages: List[MessageOut]


class RoomResponse(BaseModel):
	room_id: str
	peer_id: str
