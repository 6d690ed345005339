"""Realtime channel: presence, room fan-out and the WebSocket gateway."""

from .hub import Connection, RealtimeHub, chat_room, user_room
from .presence import PresenceRegistry

__all__ = ["Connection", "RealtimeHub", "PresenceRegistry", "chat_room", "user_room"]
