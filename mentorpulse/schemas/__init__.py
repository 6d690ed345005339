# mentorpulse/schemas/__init__.py

from .common import CamelModel, Pagination, success

# User / auth schemas
from .user import User, UserCreate, UserBase, UserSummary
from .auth import Token, TokenData, RegisterRequest, LoginRequest

# Chat schemas
from .chat import (
    ChatCreate,
    ChatOut,
    ChatSummary,
    MarkReadRequest,
    MessageCreate,
    MessageOut,
    MessagePage,
)

# Session schemas
from .session import (
    ApprovalRequest,
    CancelRequest,
    CompleteRequest,
    InitiateCompletionRequest,
    MeetLinkUpdate,
    ReviewCreate,
    SessionBook,
    SessionGroups,
    SessionOut,
    SessionStatusUpdate,
)

# Skill / progress schemas
from .skill import SkillClaim, SkillOut
from .progress import GoalCreate, GoalOut, GoalProgressUpdate, ProgressOut

__all__ = [
    "CamelModel",
    "Pagination",
    "success",
    "User",
    "UserCreate",
    "UserBase",
    "UserSummary",
    "Token",
    "TokenData",
    "RegisterRequest",
    "LoginRequest",
    "ChatCreate",
    "ChatOut",
    "ChatSummary",
    "MarkReadRequest",
    "MessageCreate",
    "MessageOut",
    "MessagePage",
    "ApprovalRequest",
    "CancelRequest",
    "CompleteRequest",
    "InitiateCompletionRequest",
    "MeetLinkUpdate",
    "ReviewCreate",
    "SessionBook",
    "SessionGroups",
    "SessionOut",
    "SessionStatusUpdate",
    "SkillClaim",
    "SkillOut",
    "GoalCreate",
    "GoalOut",
    "GoalProgressUpdate",
    "ProgressOut",
]
