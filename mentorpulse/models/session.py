# mentorpulse/models/session.py
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    TIMESTAMP,
    func,
)
from sqlalchemy.orm import relationship
from mentorpulse.database import Base


class Session(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    mentor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    mentee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    session_date = Column(Date, nullable=False)
    start_time = Column(String(10), nullable=False)
    end_time = Column(String(10), nullable=False)
    session_type = Column(String(100), nullable=False)
    price = Column(Float, default=0)
    duration = Column(Integer, default=60)  # minutes
    status = Column(String(30), nullable=False, default="upcoming", index=True)
    verification_status = Column(String(30), nullable=False, default="not_started")
    notes = Column(Text)
    meet_link = Column(String(500))
    rating = Column(Integer)
    feedback = Column(Text)
    cancellation_reason = Column(String(500))

    # Approval sub-records. approved_at is None until that party has acted.
    mentor_approved = Column(Boolean, default=False, nullable=False)
    mentor_approved_at = Column(TIMESTAMP)
    mentor_approval_notes = Column(Text, default="")
    mentee_approved = Column(Boolean, default=False, nullable=False)
    mentee_approved_at = Column(TIMESTAMP)
    mentee_approval_notes = Column(Text, default="")

    # Claims held until completion when SKILL_CREDIT_TIMING == "completion"
    skill_claims = Column(JSON, default=list)
    actual_duration = Column(Integer)
    completed_at = Column(TIMESTAMP)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    # Relationships
    mentor = relationship("User", foreign_keys=[mentor_id], back_populates="mentor_sessions")
    mentee = relationship("User", foreign_keys=[mentee_id], back_populates="mentee_sessions")
    skills = relationship("Skill", secondary="skill_sessions", back_populates="sessions")

    @property
    def mentor_approval(self) -> dict:
        return {
            "approved": bool(self.mentor_approved),
            "approved_at": self.mentor_approved_at,
            "notes": self.mentor_approval_notes or "",
        }

    @property
    def mentee_approval(self) -> dict:
        return {
            "approved": bool(self.mentee_approved),
            "approved_at": self.mentee_approved_at,
            "notes": self.mentee_approval_notes or "",
        }

    def role_of(self, user_id: int):
        """Return "mentor", "mentee" or None for the given user."""
        if self.mentor_id == user_id:
            return "mentor"
        if self.mentee_id == user_id:
            return "mentee"
        return None
