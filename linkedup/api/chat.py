"""REST API surface for matched-pair chat rooms."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from linkedup.domain.chat.models import room_id as derive_room_id
from linkedup.domain.chat.schemas import (
	MessageListResponse,
	MessageOut,
	RoomResponse,
	SendMessageRequest,
	SendMessageResponse,
)
from linkedup.domain.chat.service import MessagingChannel
from linkedup.domain.common.exceptions import NotMatched
from linkedup.domain.identity.service import ProfileService
from linkedup.domain.social.service import RelationshipRepository
from linkedup.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["chat"])
_channel = MessagingChannel()
_relationships = RelationshipRepository()
_profiles = ProfileService()


async def room_for(auth_user: AuthenticatedUser, peer_id: str) -> str:
	if not await _relationships.is_matched(auth_user.id, peer_id):
		raise NotMatched()
	return derive_room_id(auth_user.id, peer_id)


@router.get("/chat/rooms/{peer_id}", response_model=RoomResponse)
async def get_room(
	peer_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RoomResponse:
	return RoomResponse(room_id=await room_for(auth_user, peer_id), peer_id=peer_id)


@router.get("/chat/{peer_id}/messages", response_model=MessageListResponse)
async def list_messages(
	peer_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MessageListResponse:
	room = await room_for(auth_user, peer_id)
	messages = await _channel.list_messages(room)
	return MessageListResponse(
		room_id=room,
		messages=[MessageOut(**message.to_payload()) for message in messages],
	)


@router.post("/chat/{peer_id}/messages", response_model=SendMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
	peer_id: str,
	payload: SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> SendMessageResponse:
	room = await room_for(auth_user, peer_id)
	sender_name = await _profiles.display_name(auth_user.id, fallback=auth_user.display_name)
	message_id = await _channel.send_message(room, auth_user.id, sender_name, payload.text)
	return SendMessageResponse(id=message_id, room_id=room)
