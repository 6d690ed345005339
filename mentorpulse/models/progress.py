from sqlalchemy import Column, Date, Float, ForeignKey, Integer, JSON, String, Text, TIMESTAMP, func
from sqlalchemy.orm import relationship
from mentorpulse.database import Base

PROGRESS_TYPES = ("session_completed", "skill_acquired", "goal_achieved", "milestone_reached")
GOAL_STATUSES = ("not-started", "in-progress", "completed", "cancelled")


class Progress(Base):
    """
    Ledger entry for one contribution event.

    Rows are written once and never updated; authoritative state lives on
    Skill, Goal and Session.
    """

    __tablename__ = "progress_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(30), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    value = Column(Integer, default=0)
    metrics = Column(JSON, default=dict)
    skills = Column(JSON, default=list)
    related_session_id = Column(Integer, ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True)
    related_goal_id = Column(Integer, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    user = relationship("User")
    related_session = relationship("Session")
    related_goal = relationship("Goal")


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(30), default="technical")
    priority = Column(String(10), default="medium")
    target_date = Column(Date, nullable=False)
    progress = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="not-started", nullable=False)
    skills = Column(JSON, default=list)
    estimated_hours = Column(Float)
    actual_hours = Column(Float, default=0)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="goals")
    skill_links = relationship("Skill", secondary="skill_goals", back_populates="goals")
