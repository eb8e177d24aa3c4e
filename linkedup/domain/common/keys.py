"""Document paths used by every domain repository.

users/{uid}                          profile record
users/{uid}/interests/{target}       one-sided interest edge
users/{uid}/matches/{target}         one half of a match edge
chatRooms/{room_id}/messages/{id}    chat message
"""

from __future__ import annotations

from linkedup.domain.common.exceptions import InvalidArgument

USERS = "users"
INTERESTS = "interests"
MATCHES = "matches"
CHAT_ROOMS = "chatRooms"
MESSAGES = "messages"


def user_path(uid: str) -> str:
    return f"{USERS}/{uid}"


def interests_collection(uid: str) -> str:
    return f"{USERS}/{uid}/{INTERESTS}"


def matches_collection(uid: str) -> str:
    return f"{USERS}/{uid}/{MATCHES}"


def interest_path(owner: str, target: str) -> str:
    return f"{interests_collection(owner)}/{target}"


def match_path(owner: str, target: str) -> str:
    return f"{matches_collection(owner)}/{target}"


def messages_collection(room_id: str) -> str:
    return f"{CHAT_ROOMS}/{room_id}/{MESSAGES}"


def check_uid(value: str | None) -> str:
    """Reject ids that are blank or would escape their collection."""
    text = (value or "").strip()
    if not text or "/" in text:
        raise InvalidArgument("invalid_user_id")
    return text
