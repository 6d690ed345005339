# mentorpulse/api/session.py
"""
Session Management API
Booking, dual-approval completion, cancellation and reviews.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from mentorpulse.database import get_db
from mentorpulse.models.user import User
from mentorpulse.schemas import (
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
    SkillOut,
    success,
)
from mentorpulse.services import session_service
from mentorpulse.utils.security import get_current_user

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _out(session) -> SessionOut:
    return SessionOut.model_validate(session)


# ======================
# BOOK & LIST
# ======================
@router.post("/book", status_code=status.HTTP_201_CREATED)
def book_session(
    payload: SessionBook,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = session_service.book_session(
        db,
        current_user,
        mentor_id=payload.mentor_id,
        mentee_id=payload.mentee_id,
        session_date=payload.session_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        session_type=payload.session_type,
        price=payload.price,
        duration=payload.duration,
        notes=payload.notes,
    )
    return success(_out(session), message="Session booked successfully")


@router.get("/user-sessions")
def get_user_sessions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    groups = session_service.list_user_sessions(db, current_user)
    return success(SessionGroups(
        upcoming=[_out(s) for s in groups["upcoming"]],
        completed=[_out(s) for s in groups["completed"]],
        cancelled=[_out(s) for s in groups["cancelled"]],
        total=len(groups["total"]),
    ))


# ======================
# COMPLETION
# ======================
@router.patch("/{session_id}/initiate-completion")
def initiate_session_completion(
    session_id: int,
    payload: Optional[InitiateCompletionRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mentor marks the session done; both parties must then approve."""
    payload = payload or InitiateCompletionRequest()
    session = session_service.initiate_completion(
        db,
        session_id,
        current_user,
        notes=payload.notes,
        skill_claims=payload.skills,
    )
    return success(
        _out(session),
        message="Session completion initiated. Waiting for mentee approval.",
    )


@router.patch("/{session_id}/approve")
def approve_session_completion(
    session_id: int,
    payload: Optional[ApprovalRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payload = payload or ApprovalRequest()
    result = session_service.approve_completion(
        db,
        session_id,
        current_user,
        approved=payload.approved,
        notes=payload.notes,
        actual_duration=payload.actual_duration,
    )
    return success(
        {
            "session": _out(result["session"]),
            "completed": result["completed"],
            "awaiting": result["awaiting"],
        },
        message=result["message"],
    )


@router.patch("/{session_id}/complete")
def complete_session(
    session_id: int,
    payload: Optional[CompleteRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mentor completes the session without the approval round."""
    payload = payload or CompleteRequest()
    result = session_service.complete_directly(
        db,
        session_id,
        current_user,
        notes=payload.notes,
        skill_claims=payload.skills,
        actual_duration=payload.actual_duration,
    )
    return success(
        {"session": _out(result["session"]), "skillsAdded": result["skills_added"]},
        message="Session completed successfully!",
    )


# ======================
# CANCEL & STATUS
# ======================
@router.patch("/{session_id}/cancel")
def cancel_session(
    session_id: int,
    payload: Optional[CancelRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    reason = payload.reason if payload else None
    session = session_service.cancel_session(db, session_id, current_user, reason=reason)
    return success(_out(session), message="Session cancelled successfully")


@router.patch("/{session_id}/status")
def update_session_status(
    session_id: int,
    payload: SessionStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = session_service.update_status(
        db,
        session_id,
        current_user,
        status=payload.status,
        reason=payload.reason,
        notes=payload.notes,
    )
    return success(_out(session), message=f"Session {payload.status} successfully")


# ======================
# DETAILS
# ======================
@router.patch("/{session_id}/meet-link")
def update_meet_link(
    session_id: int,
    payload: MeetLinkUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = session_service.update_meet_link(db, session_id, current_user, payload.meet_link)
    message = "Meeting link updated successfully" if session.meet_link else "Meeting link removed"
    return success(_out(session), message=message)


@router.post("/{session_id}/review")
def add_review(
    session_id: int,
    payload: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = session_service.add_review(
        db,
        session_id,
        current_user,
        rating=payload.rating,
        feedback=payload.feedback,
    )
    return success(_out(session), message="Review added successfully")


@router.get("/{session_id}/skills")
def get_session_skills(
    session_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    skills = session_service.get_session_skills(db, session_id, current_user)
    return success([SkillOut.model_validate(skill) for skill in skills])
