from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, func
from sqlalchemy.orm import relationship
from mentorpulse.database import Base

USER_ROLES = ("mentee", "mentor", "admin")


# ---------------- USER (AUTH TABLE) ----------------
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    # Role is fixed at registration; only an admin may change it.
    role = Column(String(20), nullable=False, default="mentee")
    avatar = Column(String(255), default="")
    bio = Column(String(500), default="")
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    mentor_sessions = relationship("Session", foreign_keys="Session.mentor_id", back_populates="mentor")
    mentee_sessions = relationship("Session", foreign_keys="Session.mentee_id", back_populates="mentee")
    skills = relationship("Skill", back_populates="user", cascade="all, delete-orphan")
    goals = relationship("Goal", back_populates="user", cascade="all, delete-orphan")
