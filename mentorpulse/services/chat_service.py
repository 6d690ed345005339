# mentorpulse/services/chat_service.py
"""
Chat delivery engine.

A message moves through sent -> delivered -> seen. ``is_delivered`` and
``is_seen`` only ever flip False -> True, and each flip is a conditional
write so that exactly one caller observes it and emits the matching event.
Pushes go through the realtime hub and never raise back into the engine.
"""

import logging
import math
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mentorpulse import models
from mentorpulse.config import settings
from mentorpulse.crud import chat as chat_crud
from mentorpulse.crud import message as message_crud
from mentorpulse.crud import user as user_crud
from mentorpulse.crud.base import commit
from mentorpulse.exceptions import ConflictError, MentorPulseError, NotFoundError, ValidationError
from mentorpulse.models.chat import MESSAGE_TYPES
from mentorpulse.realtime.hub import RealtimeHub, chat_room, user_room
from mentorpulse.realtime.presence import PresenceRegistry
from mentorpulse.schemas.chat import MessageOut
from mentorpulse.utils.clock import utcnow

logger = logging.getLogger(__name__)


def message_payload(message: models.Message) -> dict:
    return MessageOut.model_validate(message).model_dump(mode="json", by_alias=True)


class ChatDeliveryEngine:
    def __init__(self, presence: PresenceRegistry, hub: RealtimeHub):
        self.presence = presence
        self.hub = hub

    # ======================
    # CHATS
    # ======================
    def get_or_create_chat(self, db: Session, current_user: models.User, other_user_id: Optional[int]) -> models.Chat:
        if other_user_id is None:
            raise ValidationError("Participant ID is required")
        if other_user_id == current_user.id:
            raise ValidationError("Cannot start a chat with yourself")
        if not user_crud.get_user(db, other_user_id):
            raise ValidationError("Participant not found")

        chat = chat_crud.get_active_chat_for_pair(db, current_user.id, other_user_id)
        if chat:
            return chat

        try:
            chat_crud.create_chat(db, current_user.id, other_user_id)
            commit(db, "create chat")
        except (ConflictError, IntegrityError):
            db.rollback()
            # Another request created the same pair first.
            logger.info("Chat for users %s/%s created concurrently, re-fetching", current_user.id, other_user_id)
            chat = chat_crud.get_active_chat_for_pair(db, current_user.id, other_user_id)
            if chat is None:
                raise ConflictError("Chat could not be created, please retry")
            return chat

        chat = chat_crud.get_active_chat_for_pair(db, current_user.id, other_user_id)
        logger.info("Chat %s created for users %s/%s", chat.id, current_user.id, other_user_id)
        return chat

    def get_chat_for_participant(self, db: Session, chat_id: int, user: models.User) -> models.Chat:
        chat = chat_crud.get_active_chat_for_participant(db, chat_id, user.id)
        if not chat:
            raise NotFoundError("Chat not found")
        return chat

    def list_user_chats(self, db: Session, user: models.User) -> List[dict]:
        results = []
        for chat in chat_crud.list_active_chats_for_user(db, user.id):
            other_id = chat.other_participant_id(user.id)
            other = chat.participant_a if chat.participant_a_id == other_id else chat.participant_b
            results.append({
                "chat": chat,
                "other_participant": other,
                "unread_count": message_crud.count_unread(db, chat.id, user.id),
            })
        return results

    # ======================
    # MESSAGES
    # ======================
    def send_message(
        self,
        db: Session,
        chat: models.Chat,
        sender: models.User,
        content: Optional[str],
        message_type: str = "text",
    ) -> models.Message:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Message content is required")
        if len(content) > settings.MESSAGE_MAX_LENGTH:
            raise ValidationError(f"Message cannot exceed {settings.MESSAGE_MAX_LENGTH} characters")
        message_type = message_type or "text"
        if message_type not in MESSAGE_TYPES:
            raise ValidationError(f"Invalid message type. Must be one of: {', '.join(MESSAGE_TYPES)}")
        if not chat.is_active:
            raise ValidationError("Chat is no longer active")
        if not chat.has_participant(sender.id):
            raise ValidationError("Not authorized to send messages in this chat")

        now = utcnow()
        message = message_crud.create_message(
            db,
            chat_id=chat.id,
            sender_id=sender.id,
            content=content,
            message_type=message_type,
            created_at=now,
        )
        chat.last_message_id = message.id
        chat.updated_at = now
        commit(db, "send message")

        message = message_crud.get_message(db, message.id)
        payload = {
            "success": True,
            "message": message_payload(message),
            "chatId": chat.id,
            "isDelivered": False,
        }
        self.hub.emit(chat_room(chat.id), "new-message", payload)
        self.hub.emit(user_room(sender.id), "message-sent", payload)

        recipient_id = chat.other_participant_id(sender.id)
        if self.presence.is_online(recipient_id):
            self._deliver(db, message.id, chat.id, sender.id)
            db.refresh(message)

        logger.info("Message %s sent in chat %s by user %s", message.id, chat.id, sender.id)
        return message

    def _deliver(self, db: Session, message_id: int, chat_id: int, sender_id: int) -> bool:
        """Flip is_delivered and notify the sender; False when nothing flipped."""
        try:
            flipped = message_crud.mark_delivered(db, message_id)
            commit(db, "mark message delivered")
        except (MentorPulseError, SQLAlchemyError):
            logger.exception("Failed to mark message %s delivered", message_id)
            db.rollback()
            return False
        if flipped:
            self.hub.emit(user_room(sender_id), "message-delivered", {
                "success": True,
                "messageId": message_id,
                "chatId": chat_id,
                "isDelivered": True,
                "deliveredAt": utcnow().isoformat(),
            })
        return flipped

    def mark_seen(
        self,
        db: Session,
        chat: models.Chat,
        reader: models.User,
        message_ids: Optional[Iterable[int]] = None,
    ) -> List[int]:
        """
        Add ``reader``'s receipt to every unread message from the other party.

        Each receipt insert is guarded by the (message, reader) unique key, so
        a receipt written concurrently elsewhere produces no second event.
        """
        candidates = message_crud.unread_messages(db, chat.id, reader.id, message_ids)
        if not candidates:
            return []

        # A read message has necessarily been received; flip delivery first so
        # the sender still gets message-delivered.
        undelivered = [(m.id, m.sender_id) for m in candidates if not m.is_delivered]
        for message_id, sender_id in undelivered:
            self._deliver(db, message_id, chat.id, sender_id)

        now = utcnow()
        newly_seen = []
        for message in candidates:
            if message_crud.add_read_receipt(db, message_id=message.id, user_id=reader.id, read_at=now):
                newly_seen.append((message.id, message.sender_id))

        message_crud.mark_seen(db, [message_id for message_id, _ in newly_seen])
        commit(db, "mark messages seen")

        for message_id, sender_id in newly_seen:
            self.hub.emit(user_room(sender_id), "message-seen", {
                "success": True,
                "messageId": message_id,
                "chatId": chat.id,
                "seenBy": reader.id,
                "seenAt": now.isoformat(),
            })
        if newly_seen:
            logger.info("User %s read %s message(s) in chat %s", reader.id, len(newly_seen), chat.id)
        return [message_id for message_id, _ in newly_seen]

    def reconcile_pending_deliveries(self, db: Session, user: models.User) -> List[int]:
        """Deliver everything addressed to ``user`` while they were offline."""
        chat_ids = chat_crud.list_chat_ids_for_user(db, user.id)
        return self._deliver_pending(db, chat_ids, user.id)

    def _deliver_pending(self, db: Session, chat_ids: List[int], recipient_id: int) -> List[int]:
        flipped = []
        for message in message_crud.pending_deliveries(db, chat_ids, recipient_id):
            if self._deliver(db, message.id, message.chat_id, message.sender_id):
                flipped.append(message.id)
        if flipped:
            logger.info("Delivered %s pending message(s) to user %s", len(flipped), recipient_id)
        return flipped

    def list_messages(
        self,
        db: Session,
        chat: models.Chat,
        user: models.User,
        *,
        page: int = 1,
        limit: int = 50,
    ) -> dict:
        """
        One page of history, oldest first within the page.

        Fetching history counts as receipt: undelivered messages addressed to
        ``user`` are delivered and unread ones are marked seen.
        """
        page = max(page or 1, 1)
        limit = min(max(limit or 50, 1), 100)

        self._deliver_pending(db, [chat.id], user.id)
        self.mark_seen(db, chat, user)

        total = message_crud.count_messages(db, chat.id)
        messages = message_crud.list_messages(db, chat.id, offset=(page - 1) * limit, limit=limit)
        return {
            "messages": messages,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }
