from datetime import datetime
from typing import List, Optional

from pydantic import Field

from mentorpulse.schemas.common import CamelModel, Pagination
from mentorpulse.schemas.user import UserSummary

# ======================
# CHAT REQUEST MODELS
# ======================

class ChatCreate(CamelModel):
    participant_id: Optional[int] = None


class MessageCreate(CamelModel):
    content: str = ""
    message_type: str = "text"


class MarkReadRequest(CamelModel):
    message_ids: Optional[List[int]] = None


# ======================
# CHAT RESPONSE MODELS
# ======================

class ReadReceiptOut(CamelModel):
    user_id: int
    read_at: datetime


class MessageOut(CamelModel):
    id: int
    chat_id: int
    sender_id: int
    sender: Optional[UserSummary] = None
    content: str
    message_type: str
    file_url: Optional[str] = ""
    is_delivered: bool
    is_seen: bool
    read_by: List[ReadReceiptOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LastMessageOut(CamelModel):
    id: int
    sender_id: int
    content: str
    message_type: str
    is_delivered: bool
    is_seen: bool
    created_at: Optional[datetime] = None


class ChatOut(CamelModel):
    id: int
    participants: List[UserSummary]
    last_message: Optional[LastMessageOut] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChatSummary(ChatOut):
    other_participant: Optional[UserSummary] = None
    unread_count: int = 0


class MessagePage(CamelModel):
    messages: List[MessageOut]
    pagination: Pagination
