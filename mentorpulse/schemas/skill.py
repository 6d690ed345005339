from datetime import datetime
from typing import Optional

from mentorpulse.schemas.common import CamelModel


class SkillClaim(CamelModel):
    """A skill the mentee practised, as submitted with a session or goal."""
    name: str
    category: Optional[str] = "technical"
    proficiency: Optional[str] = "beginner"
    description: Optional[str] = None


class SkillOut(CamelModel):
    id: int
    name: str
    category: Optional[str] = None
    proficiency: Optional[str] = None
    description: Optional[str] = None
    progress: int
    status: str
    acquired_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
