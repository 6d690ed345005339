"""
Room-based fan-out over WebSocket connections.

Each connection owns an asyncio queue drained by a writer task on the event
loop. ``Connection.push`` only enqueues, through ``call_soon_threadsafe`` when
called off the loop, so services running in the threadpool can emit without
awaiting anything.
"""

import asyncio
import logging
import threading
import uuid
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

_CLOSE = object()


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


def chat_room(chat_id: int) -> str:
    return f"chat:{chat_id}"


class Connection:
    """One authenticated WebSocket plus its outbound queue."""

    def __init__(self, websocket: WebSocket, user_id: int, *, name: str = "", loop=None):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user_id = user_id
        self.name = name
        self.loop = loop or asyncio.get_running_loop()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.rooms: Set[str] = set()
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def _enqueue(self, item: Any) -> bool:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        try:
            if running is self.loop:
                self.queue.put_nowait(item)
            else:
                self.loop.call_soon_threadsafe(self.queue.put_nowait, item)
        except RuntimeError:
            # Event loop already closed.
            self._alive = False
            return False
        return True

    def push(self, event: str, data: Any) -> bool:
        """Queue a frame for this connection; False once it is closed."""
        if not self._alive:
            return False
        return self._enqueue({"event": event, "data": data})

    async def writer(self) -> None:
        """Drain the queue to the socket until closed or the peer goes away."""
        while True:
            frame = await self.queue.get()
            if frame is _CLOSE:
                break
            try:
                await self.websocket.send_json(frame)
            except (WebSocketDisconnect, RuntimeError):
                self._alive = False
                logger.info("Connection %s for user %s dropped while sending", self.id, self.user_id)
                break

    def close(self) -> None:
        if self._alive:
            self._alive = False
            self._enqueue(_CLOSE)

    def __repr__(self) -> str:
        return f"<Connection {self.id} user={self.user_id}>"


class RealtimeHub:
    """Tracks room membership and fans events out to member connections."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rooms: Dict[str, Set[Connection]] = {}

    def join(self, room: str, connection: Connection) -> None:
        with self._lock:
            self._rooms.setdefault(room, set()).add(connection)
            connection.rooms.add(room)

    def leave(self, room: str, connection: Connection) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(connection)
                if not members:
                    del self._rooms[room]
            connection.rooms.discard(room)

    def leave_all(self, connection: Connection) -> None:
        for room in list(connection.rooms):
            self.leave(room, connection)

    def members(self, room: str) -> Set[Connection]:
        with self._lock:
            return set(self._rooms.get(room, ()))

    def emit(self, room: str, event: str, data: Any, exclude: Optional[Connection] = None) -> int:
        """
        Push ``event`` to every connection in ``room``.

        Returns how many connections it was queued for. Never raises: a room
        with no members simply drops the event.
        """
        reached = 0
        for connection in self.members(room):
            if connection is exclude:
                continue
            try:
                if connection.push(event, data):
                    reached += 1
            except Exception:
                logger.exception("Failed to push %s to %r", event, connection)
        if not reached:
            logger.debug("No live connection in %s for %s", room, event)
        return reached

    def clear(self) -> None:
        with self._lock:
            for members in self._rooms.values():
                for connection in members:
                    connection.rooms.clear()
            self._rooms.clear()
