"""Chat domain exports."""

from .models import ChatMessage, room_id
from .service import MessagingChannel

__all__ = [
	"ChatMessage",
	"MessagingChannel",
	"room_id",
]
