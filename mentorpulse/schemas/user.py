from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from mentorpulse.schemas.common import CamelModel


# ======================
# USER SCHEMAS
# ======================

class UserBase(BaseModel):
    email: EmailStr
    role: str = "mentee"


class UserCreate(UserBase):
    name: str
    password: str


class User(UserBase):
    id: int
    name: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserSummary(CamelModel):
    """Participant card embedded in chats, messages and sessions."""
    id: int
    name: str
    email: str
    role: str
    avatar: Optional[str] = ""
