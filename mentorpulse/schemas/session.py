from datetime import date, datetime
from typing import List, Optional

from pydantic import AliasChoices, Field

from mentorpulse.schemas.common import CamelModel
from mentorpulse.schemas.skill import SkillClaim
from mentorpulse.schemas.user import UserSummary

# ======================
# SESSION REQUEST MODELS
# ======================

class SessionBook(CamelModel):
    mentor_id: int
    mentee_id: Optional[int] = None
    session_date: date
    start_time: str
    end_time: str
    session_type: str
    price: float = 0
    duration: int = 60
    notes: Optional[str] = None


class InitiateCompletionRequest(CamelModel):
    notes: Optional[str] = None
    skills: List[SkillClaim] = Field(default_factory=list)


class ApprovalRequest(CamelModel):
    approved: bool = True
    notes: Optional[str] = None
    actual_duration: Optional[int] = None


class CompleteRequest(CamelModel):
    notes: Optional[str] = None
    skills: List[SkillClaim] = Field(default_factory=list)
    actual_duration: Optional[int] = None


class CancelRequest(CamelModel):
    reason: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("reason", "cancellationReason", "cancellation_reason"),
    )


class SessionStatusUpdate(CamelModel):
    status: str
    reason: Optional[str] = None
    notes: Optional[str] = None


class MeetLinkUpdate(CamelModel):
    meet_link: Optional[str] = None


class ReviewCreate(CamelModel):
    rating: int
    feedback: Optional[str] = None


# ======================
# SESSION RESPONSE MODELS
# ======================

class ApprovalOut(CamelModel):
    approved: bool
    approved_at: Optional[datetime] = None
    notes: str = ""


class SessionOut(CamelModel):
    id: int
    mentor_id: int
    mentee_id: int
    mentor: Optional[UserSummary] = None
    mentee: Optional[UserSummary] = None
    session_date: date
    start_time: str
    end_time: str
    session_type: str
    price: float = 0
    duration: int = 60
    status: str
    verification_status: str
    notes: Optional[str] = None
    meet_link: Optional[str] = None
    rating: Optional[int] = None
    feedback: Optional[str] = None
    cancellation_reason: Optional[str] = None
    mentor_approval: ApprovalOut
    mentee_approval: ApprovalOut
    actual_duration: Optional[int] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SessionGroups(CamelModel):
    upcoming: List[SessionOut]
    completed: List[SessionOut]
    cancelled: List[SessionOut]
    total: int
