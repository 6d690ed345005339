# mentorpulse/api/__init__.py

from . import auth
from . import chat
from . import progress
from . import realtime
from . import session

__all__ = [
    "auth",
    "chat",
    "progress",
    "realtime",
    "session",
]
