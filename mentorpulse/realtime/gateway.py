# mentorpulse/realtime/gateway.py
"""
WebSocket gateway for chat events.

Frames in both directions are JSON objects ``{"event": name, "data": payload}``.
Handlers touch the database, so each one runs in the threadpool with its own
session; anything they emit is queued onto connection writers on the loop.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Optional, Tuple

from fastapi import WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from mentorpulse.crud import user as user_crud
from mentorpulse.database import SessionLocal
from mentorpulse.exceptions import AuthenticationError, MentorPulseError, ValidationError
from mentorpulse.realtime.hub import Connection, RealtimeHub, chat_room, user_room
from mentorpulse.realtime.presence import PresenceRegistry
from mentorpulse.utils.security import authenticate_token

logger = logging.getLogger(__name__)

AUTH_FAILURE_CLOSE_CODE = 4401


def _extract_token(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def _chat_id_from(data: Any) -> int:
    """Clients send either a bare chat id or ``{"chatId": ...}``."""
    if isinstance(data, dict):
        data = data.get("chatId", data.get("chat_id"))
    try:
        return int(data)
    except (TypeError, ValueError):
        raise ValidationError("Chat ID is required")


class ChatGateway:
    """Authenticates sockets, tracks presence and dispatches client events."""

    _HANDLERS = {
        "join-chat": "handle_join_chat",
        "leave-chat": "handle_leave_chat",
        "typing-start": "handle_typing_start",
        "typing-stop": "handle_typing_stop",
        "send-message": "handle_send_message",
        "message-received": "handle_message_received",
        "user-online": "handle_user_online",
    }

    def __init__(
        self,
        presence: PresenceRegistry,
        hub: RealtimeHub,
        engine,
        session_factory: Callable = SessionLocal,
    ):
        self.presence = presence
        self.hub = hub
        self.engine = engine
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _authenticate(self, token: Optional[str]) -> Tuple[int, str]:
        db = self.session_factory()
        try:
            user = authenticate_token(db, token)
            return user.id, user.name
        finally:
            db.close()

    def _run_with_db(self, connection: Connection, func: Callable, data: Any):
        db = self.session_factory()
        try:
            user = user_crud.get_user(db, connection.user_id)
            if user is None or not user.is_active:
                raise AuthenticationError("Authentication error: User not found")
            return func(db, user, data)
        finally:
            db.close()

    async def _in_threadpool(self, connection: Connection, func: Callable, data: Any):
        return await run_in_threadpool(self._run_with_db, connection, func, data)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def handle_join_chat(self, connection: Connection, data: Any) -> None:
        chat_id = _chat_id_from(data)
        await self._in_threadpool(
            connection,
            lambda db, user, _: self.engine.get_chat_for_participant(db, chat_id, user),
            data,
        )
        self.hub.join(chat_room(chat_id), connection)
        logger.info("User %s joined chat %s", connection.user_id, chat_id)

    async def handle_leave_chat(self, connection: Connection, data: Any) -> None:
        chat_id = _chat_id_from(data)
        self.hub.leave(chat_room(chat_id), connection)
        logger.info("User %s left chat %s", connection.user_id, chat_id)

    def _relay_typing(self, connection: Connection, data: Any, is_typing: bool) -> None:
        chat_id = _chat_id_from(data)
        self.hub.emit(
            chat_room(chat_id),
            "user-typing",
            {"userId": connection.user_id, "name": connection.name, "isTyping": is_typing},
            exclude=connection,
        )

    async def handle_typing_start(self, connection: Connection, data: Any) -> None:
        self._relay_typing(connection, data, True)

    async def handle_typing_stop(self, connection: Connection, data: Any) -> None:
        self._relay_typing(connection, data, False)

    def _send_message(self, db, user, data):
        data = data if isinstance(data, dict) else {}
        chat = self.engine.get_chat_for_participant(db, _chat_id_from(data), user)
        return self.engine.send_message(
            db,
            chat,
            user,
            data.get("content"),
            data.get("messageType") or data.get("message_type") or "text",
        )

    async def handle_send_message(self, connection: Connection, data: Any) -> None:
        await self._in_threadpool(connection, self._send_message, data)

    def _message_received(self, db, user, data):
        data = data if isinstance(data, dict) else {}
        message_id = data.get("messageId") or data.get("message_id")
        if message_id is None:
            raise ValidationError("Message ID is required")
        chat = self.engine.get_chat_for_participant(db, _chat_id_from(data), user)
        return self.engine.mark_seen(db, chat, user, [int(message_id)])

    async def handle_message_received(self, connection: Connection, data: Any) -> None:
        await self._in_threadpool(connection, self._message_received, data)

    async def handle_user_online(self, connection: Connection, data: Any) -> None:
        await self._in_threadpool(
            connection,
            lambda db, user, _: self.engine.reconcile_pending_deliveries(db, user),
            data,
        )

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def _dispatch(self, connection: Connection, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Malformed JSON from user %s: %s", connection.user_id, e)
            connection.push("error", {"message": "Invalid message format"})
            return

        event = frame.get("event") if isinstance(frame, dict) else None
        handler_name = self._HANDLERS.get(event)
        if not handler_name:
            connection.push("error", {"message": f"Unknown event: {event}"})
            return

        try:
            await getattr(self, handler_name)(connection, frame.get("data"))
        except MentorPulseError as exc:
            connection.push("error", {"message": exc.message})
        except Exception:
            logger.exception("Unexpected error handling event=%s for user %s", event, connection.user_id)
            connection.push("error", {"message": f"Failed to process {event}"})

    async def handle(self, websocket: WebSocket) -> None:
        """Serve one WebSocket connection until the peer disconnects."""
        await websocket.accept()

        try:
            user_id, name = await run_in_threadpool(self._authenticate, _extract_token(websocket))
        except AuthenticationError as exc:
            logger.info("Rejected WebSocket connection: %s", exc.message)
            await websocket.send_json({
                "event": "error",
                "data": {"type": "authentication_error", "message": exc.message},
            })
            await websocket.close(code=AUTH_FAILURE_CLOSE_CODE)
            return

        connection = Connection(websocket, user_id, name=name)
        self.presence.record(user_id, connection)
        self.hub.join(user_room(user_id), connection)
        writer_task = asyncio.create_task(connection.writer())
        logger.info("User connected: %s (%s)", user_id, connection.id)

        try:
            while True:
                raw = await websocket.receive_text()
                await self._dispatch(connection, raw)
        except (WebSocketDisconnect, RuntimeError):
            pass
        finally:
            self.hub.leave_all(connection)
            self.presence.remove(user_id, connection)
            connection.close()
            try:
                await asyncio.wait_for(writer_task, timeout=1.0)
            except asyncio.TimeoutError:
                writer_task.cancel()
            logger.info("User disconnected: %s (%s)", user_id, connection.id)
