# mentorpulse/models/__init__.py
# Import models in dependency order
from .user import User
from .chat import Chat, Message, MessageRead
from .skill import Skill, skill_sessions, skill_goals
from .progress import Progress, Goal
from .session import Session  # Import Session LAST

__all__ = [
    "User",
    "Chat",
    "Message",
    "MessageRead",
    "Skill",
    "skill_sessions",
    "skill_goals",
    "Progress",
    "Goal",
    "Session",
]
