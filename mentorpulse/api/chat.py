# mentorpulse/api/chat.py
"""HTTP fallback for the chat channel; shares the engine with the WebSocket gateway."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from mentorpulse.api.deps import get_chat_engine
from mentorpulse.database import get_db
from mentorpulse.models.user import User
from mentorpulse.schemas import (
    ChatCreate,
    ChatOut,
    ChatSummary,
    MarkReadRequest,
    MessageCreate,
    MessageOut,
    MessagePage,
    UserSummary,
    success,
)
from mentorpulse.services.chat_service import ChatDeliveryEngine
from mentorpulse.utils.security import get_current_user

router = APIRouter(prefix="/chat", tags=["chat"])


# ======================
# CHATS
# ======================
@router.post("/get-or-create")
def get_or_create_chat(
    payload: ChatCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    engine: ChatDeliveryEngine = Depends(get_chat_engine),
):
    chat = engine.get_or_create_chat(db, current_user, payload.participant_id)
    return success(ChatOut.model_validate(chat))


@router.get("/user/chats")
def list_user_chats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    engine: ChatDeliveryEngine = Depends(get_chat_engine),
):
    chats = []
    for item in engine.list_user_chats(db, current_user):
        chat = ChatOut.model_validate(item["chat"])
        chats.append(ChatSummary(
            **chat.model_dump(),
            other_participant=UserSummary.model_validate(item["other_participant"]),
            unread_count=item["unread_count"],
        ))
    return success(chats)


# ======================
# MESSAGES
# ======================
@router.get("/{chat_id}/messages")
def get_chat_messages(
    chat_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    engine: ChatDeliveryEngine = Depends(get_chat_engine),
):
    """Message history; fetching it marks the returned conversation as read."""
    chat = engine.get_chat_for_participant(db, chat_id, current_user)
    result = engine.list_messages(db, chat, current_user, page=page, limit=limit)
    return success(MessagePage.model_validate(result))


@router.post("/{chat_id}/messages", status_code=status.HTTP_201_CREATED)
def send_message(
    chat_id: int,
    payload: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    engine: ChatDeliveryEngine = Depends(get_chat_engine),
):
    chat = engine.get_chat_for_participant(db, chat_id, current_user)
    message = engine.send_message(db, chat, current_user, payload.content, payload.message_type)
    return success(MessageOut.model_validate(message))


@router.patch("/{chat_id}/read")
def mark_as_read(
    chat_id: int,
    payload: Optional[MarkReadRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    engine: ChatDeliveryEngine = Depends(get_chat_engine),
):
    chat = engine.get_chat_for_participant(db, chat_id, current_user)
    message_ids = payload.message_ids if payload else None
    marked = engine.mark_seen(db, chat, current_user, message_ids)
    return success({"messageIds": marked}, message="Messages marked as read")
