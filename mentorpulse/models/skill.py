from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship
from mentorpulse.database import Base

SKILL_CATEGORIES = ("technical", "soft-skills", "tools", "frameworks", "languages", "other")
PROFICIENCY_LEVELS = ("beginner", "intermediate", "advanced", "expert")

skill_sessions = Table(
    "skill_sessions",
    Base.metadata,
    Column("skill_id", Integer, ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
    Column("session_id", Integer, ForeignKey("sessions.id", ondelete="CASCADE"), primary_key=True),
)

skill_goals = Table(
    "skill_goals",
    Base.metadata,
    Column("skill_id", Integer, ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
    Column("goal_id", Integer, ForeignKey("goals.id", ondelete="CASCADE"), primary_key=True),
)


# mentorpulse/models/skill.py
class Skill(Base):
    __tablename__ = "skills"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    # Lower-cased name; one skill record per user and name.
    name_key = Column(String(100), nullable=False)
    category = Column(String(50), default="technical")
    proficiency = Column(String(20), default="beginner")
    description = Column(Text)
    progress = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="learning", nullable=False)
    acquired_at = Column(TIMESTAMP)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "name_key", name="uq_skills_user_name"),
    )

    user = relationship("User", back_populates="skills")
    sessions = relationship("Session", secondary=skill_sessions, back_populates="skills")
    goals = relationship("Goal", secondary=skill_goals, back_populates="skill_links")
