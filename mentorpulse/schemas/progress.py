from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from mentorpulse.schemas.common import CamelModel
from mentorpulse.schemas.skill import SkillClaim

# ======================
# GOAL MODELS
# ======================

class GoalCreate(CamelModel):
    title: str
    description: str
    target_date: date
    category: str = "technical"
    priority: str = "medium"
    skills: List[SkillClaim] = Field(default_factory=list)
    estimated_hours: Optional[float] = None


class GoalProgressUpdate(CamelModel):
    progress: Optional[int] = None
    status: Optional[str] = None
    actual_hours: Optional[float] = None
    skills: Optional[List[SkillClaim]] = None


class GoalOut(CamelModel):
    id: int
    title: str
    description: str
    category: Optional[str] = None
    priority: Optional[str] = None
    target_date: date
    progress: int
    status: str
    skills: List[SkillClaim] = Field(default_factory=list)
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ======================
# PROGRESS LEDGER
# ======================

class ProgressOut(CamelModel):
    id: int
    type: str
    title: str
    description: str
    value: int
    metrics: dict = Field(default_factory=dict)
    skills: list = Field(default_factory=list)
    related_session_id: Optional[int] = None
    related_goal_id: Optional[int] = None
    created_at: Optional[datetime] = None
