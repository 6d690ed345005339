# mentorpulse/services/session_service.py
"""
Session lifecycle: booking, completion verification and cancellation.

Status changes are written with guarded conditional updates
(``crud.session.guarded_update``) so that the state-machine check and the
write happen in one statement. The dual-approval path relies on this: the
"both approved" transition and the completed_at stamp are applied by a single
UPDATE that only matches while the session is still pending verification.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from mentorpulse import models
from mentorpulse.config import settings
from mentorpulse.crud import progress as progress_crud
from mentorpulse.crud import session as session_crud
from mentorpulse.crud import skill as skill_crud
from mentorpulse.crud import user as user_crud
from mentorpulse.crud.base import commit
from mentorpulse.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from mentorpulse.services import skill_service
from mentorpulse.services.session_state import (
    SessionStatus,
    VerificationStatus,
    awaiting_party,
    derive_verification,
    ensure_transition,
    sources_for,
)
from mentorpulse.utils.clock import utcnow

logger = logging.getLogger(__name__)

SESSION_PROGRESS_VALUE = 10


# ======================
# HELPER FUNCTIONS
# ======================
def _get_session(db: Session, session_id: int) -> models.Session:
    session = session_crud.get_session(db, session_id)
    if not session:
        raise NotFoundError("Session not found")
    return session


def _require_mentor(session: models.Session, actor: models.User, message: str) -> None:
    if session.mentor_id != actor.id:
        raise AuthorizationError(message)


def _require_participant(session: models.Session, actor: models.User, *, allow_admin: bool = False) -> Optional[str]:
    role = session.role_of(actor.id)
    if role is None and not (allow_admin and actor.role == "admin"):
        raise AuthorizationError("Not authorized for this session")
    return role


def _credit_timing(override: Optional[str]) -> str:
    return override or settings.SKILL_CREDIT_TIMING


def _apply_status_update(
    db: Session,
    session: models.Session,
    target: str,
    values: Dict[str, Any],
    *,
    extra_criteria: Iterable = (),
) -> None:
    ensure_transition(session.status, target)
    values = dict(values, status=target)
    if not session_crud.guarded_update(
        db,
        session.id,
        values,
        statuses=sources_for(target),
        extra_criteria=extra_criteria,
    ):
        db.rollback()
        raise ConflictError("Session was modified concurrently, please retry")


def _record_session_progress(
    db: Session,
    session: models.Session,
    claims: List[dict],
    hours_spent: float,
) -> models.Progress:
    return progress_crud.create_progress_entry(
        db,
        user_id=session.mentee_id,
        type="session_completed",
        title=f"Session Completed: {session.session_type}",
        description=f"Completed {session.session_type} session with mentor",
        value=SESSION_PROGRESS_VALUE,
        metrics={
            "sessions_completed": 1,
            "hours_spent": hours_spent,
            "skills_learned": len(claims),
            "goals_achieved": 0,
        },
        skills=claims,
        related_session_id=session.id,
    )


def _credit_session(db: Session, session: models.Session, claims: List[dict], actual_duration: Optional[int]) -> int:
    """Credit mentee skills and write the ledger entry; returns skills credited."""
    credited = skill_service.credit_skills(
        db,
        session.mentee_id,
        claims,
        skill_service.SESSION_CREDIT,
        session_id=session.id,
    )
    minutes = actual_duration or session.actual_duration or session.duration or 0
    _record_session_progress(db, session, claims, round(minutes / 60, 2))
    return len(credited)


# ======================
# BOOKING & LISTING
# ======================
def book_session(
    db: Session,
    actor: models.User,
    *,
    mentor_id: int,
    mentee_id: Optional[int],
    session_date: date,
    start_time: str,
    end_time: str,
    session_type: str,
    price: float = 0,
    duration: int = 60,
    notes: Optional[str] = None,
) -> models.Session:
    """Create a confirmed session between a mentor and a mentee."""
    mentee_id = mentee_id or actor.id
    required = {
        "start_time": start_time,
        "end_time": end_time,
        "session_type": session_type,
    }
    missing = [field for field, value in required.items() if not (value or "").strip()]
    if session_date is None:
        missing.insert(0, "session_date")
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if mentor_id == mentee_id:
        raise ValidationError("Mentor and mentee must be different users")
    if actor.id not in (mentor_id, mentee_id) and actor.role != "admin":
        raise AuthorizationError("You can only book sessions you take part in")
    if price is not None and price < 0:
        raise ValidationError("Price cannot be negative")

    mentor = user_crud.get_user(db, mentor_id)
    if not mentor:
        raise NotFoundError("Mentor not found")
    if not user_crud.get_user(db, mentee_id):
        raise NotFoundError("Mentee not found")

    session = session_crud.create_session(
        db,
        mentor_id=mentor_id,
        mentee_id=mentee_id,
        session_date=session_date,
        start_time=start_time.strip(),
        end_time=end_time.strip(),
        session_type=session_type.strip(),
        price=price or 0,
        duration=duration or 60,
        notes=notes,
        status=SessionStatus.CONFIRMED,
        verification_status=VerificationStatus.NOT_STARTED,
        skill_claims=[],
    )
    commit(db, "book session")
    db.refresh(session)
    logger.info("Session %s booked: mentor=%s mentee=%s", session.id, mentor_id, mentee_id)
    return session


def list_user_sessions(db: Session, user: models.User) -> Dict[str, List[models.Session]]:
    sessions = session_crud.list_user_sessions(db, user.id)
    return {
        "upcoming": [s for s in sessions if s.status in SessionStatus.ACTIVE],
        "completed": [s for s in sessions if s.status == SessionStatus.COMPLETED],
        "cancelled": [s for s in sessions if s.status == SessionStatus.CANCELLED],
        "total": sessions,
    }


def get_session_for_participant(db: Session, session_id: int, actor: models.User) -> models.Session:
    session = _get_session(db, session_id)
    _require_participant(session, actor, allow_admin=True)
    return session


# ======================
# COMPLETION
# ======================
def initiate_completion(
    db: Session,
    session_id: int,
    actor: models.User,
    *,
    notes: Optional[str] = None,
    skill_claims: Optional[Iterable[Any]] = None,
    credit_timing: Optional[str] = None,
) -> models.Session:
    """
    Mentor moves the session into verification.

    Approval sub-records are reset. Skill claims are credited now, or held on
    the session until it completes when crediting is deferred.
    """
    session = _get_session(db, session_id)
    _require_mentor(session, actor, "Only mentor can initiate session completion")

    claims = skill_service.normalize_claims(skill_claims)
    defer_credit = _credit_timing(credit_timing) == "completion"
    values = {
        "verification_status": VerificationStatus.NOT_STARTED,
        "mentor_approved": False,
        "mentor_approved_at": None,
        "mentor_approval_notes": "",
        "mentee_approved": False,
        "mentee_approved_at": None,
        "mentee_approval_notes": "",
        "skill_claims": claims if defer_credit else [],
    }
    if notes and notes.strip():
        values["notes"] = notes.strip()

    _apply_status_update(db, session, SessionStatus.PENDING_VERIFICATION, values)

    if not defer_credit:
        _credit_session(db, session, claims, None)

    commit(db, "initiate session completion")
    db.refresh(session)
    logger.info(
        "Session %s moved to verification by mentor %s (%s skill claims, credit=%s)",
        session.id,
        actor.id,
        len(claims),
        "deferred" if defer_credit else "applied",
    )
    return session


def approve_completion(
    db: Session,
    session_id: int,
    actor: models.User,
    *,
    approved: bool = True,
    notes: Optional[str] = None,
    actual_duration: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Record one party's approval and complete the session once both agree.

    The approval write is guarded on pending_verification. The completion
    write is a second guarded UPDATE that also requires both approval flags,
    so of two concurrent approvals exactly one performs the transition and
    stamps completed_at.
    """
    session = _get_session(db, session_id)
    role = _require_participant(session, actor)

    now = utcnow()
    values = {
        f"{role}_approved": bool(approved),
        f"{role}_approved_at": now,
        f"{role}_approval_notes": notes or "",
    }
    if actual_duration:
        values["actual_duration"] = actual_duration

    if not session_crud.guarded_update(
        db, session.id, values, statuses=(SessionStatus.PENDING_VERIFICATION,)
    ):
        db.rollback()
        raise ConflictError("Session is not awaiting completion approval")

    held_claims = db.query(models.Session.skill_claims).filter(models.Session.id == session.id).scalar() or []

    completed = session_crud.guarded_update(
        db,
        session.id,
        {
            "status": SessionStatus.COMPLETED,
            "verification_status": VerificationStatus.BOTH_APPROVED,
            "completed_at": now,
            "skill_claims": [],
        },
        statuses=(SessionStatus.PENDING_VERIFICATION,),
        extra_criteria=(
            models.Session.mentor_approved.is_(True),
            models.Session.mentee_approved.is_(True),
        ),
    )

    if completed:
        if held_claims:
            _credit_session(db, session, held_claims, actual_duration)
        awaiting = None
    else:
        row = db.query(
            models.Session.mentor_approved,
            models.Session.mentor_approved_at,
            models.Session.mentee_approved,
            models.Session.mentee_approved_at,
        ).filter(models.Session.id == session.id).one()
        verification = derive_verification(
            bool(row.mentor_approved),
            row.mentor_approved_at is not None,
            bool(row.mentee_approved),
            row.mentee_approved_at is not None,
        )
        session_crud.guarded_update(
            db,
            session.id,
            {"verification_status": verification},
            statuses=(SessionStatus.PENDING_VERIFICATION,),
        )
        awaiting = awaiting_party(bool(row.mentor_approved), bool(row.mentee_approved))

    commit(db, "approve session completion")
    db.refresh(session)

    if completed:
        logger.info("Session %s completed after both parties approved", session.id)
        message = "Session completed successfully!"
    else:
        logger.info(
            "Session %s %s by %s; verification=%s",
            session.id,
            "approved" if approved else "rejected",
            role,
            session.verification_status,
        )
        message = f"Session {'approved' if approved else 'rejected'}. Waiting for other party."

    return {
        "session": session,
        "completed": completed,
        "awaiting": awaiting,
        "message": message,
    }


def complete_directly(
    db: Session,
    session_id: int,
    actor: models.User,
    *,
    notes: Optional[str] = None,
    skill_claims: Optional[Iterable[Any]] = None,
    actual_duration: Optional[int] = None,
) -> Dict[str, Any]:
    """Mentor completes the session without the dual-approval round."""
    session = _get_session(db, session_id)
    _require_mentor(session, actor, "Only mentor can complete sessions")

    claims = list(session.skill_claims or []) + skill_service.normalize_claims(skill_claims)
    values = {
        "verification_status": VerificationStatus.DIRECT_COMPLETION,
        "completed_at": utcnow(),
        "skill_claims": [],
    }
    if notes and notes.strip():
        values["notes"] = notes.strip()
    if actual_duration:
        values["actual_duration"] = actual_duration

    _apply_status_update(db, session, SessionStatus.COMPLETED, values)
    skills_added = _credit_session(db, session, claims, actual_duration)

    commit(db, "complete session")
    db.refresh(session)
    logger.info("Session %s completed directly by mentor %s", session.id, actor.id)
    return {"session": session, "skills_added": skills_added}


# ======================
# CANCELLATION & STATUS
# ======================
def cancel_session(
    db: Session,
    session_id: int,
    actor: models.User,
    *,
    reason: Optional[str] = None,
) -> models.Session:
    session = _get_session(db, session_id)
    _require_participant(session, actor, allow_admin=True)

    _apply_status_update(
        db,
        session,
        SessionStatus.CANCELLED,
        {"cancellation_reason": (reason or "").strip() or "Cancelled by user"},
    )
    commit(db, "cancel session")
    db.refresh(session)
    logger.info("Session %s cancelled by user %s", session.id, actor.id)
    return session


def update_status(
    db: Session,
    session_id: int,
    actor: models.User,
    *,
    status: str,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> models.Session:
    """General purpose status change, routed through the lifecycle operations."""
    if status == SessionStatus.CANCELLED:
        return cancel_session(db, session_id, actor, reason=reason)
    if status == SessionStatus.PENDING_VERIFICATION:
        return initiate_completion(db, session_id, actor, notes=notes)
    if status == SessionStatus.COMPLETED:
        return complete_directly(db, session_id, actor, notes=notes)["session"]

    session = _get_session(db, session_id)
    _require_participant(session, actor, allow_admin=True)
    values = {}
    if notes:
        values["notes"] = notes
    _apply_status_update(db, session, status, values)
    commit(db, "update session status")
    db.refresh(session)
    return session


# ======================
# SESSION DETAILS
# ======================
def update_meet_link(db: Session, session_id: int, actor: models.User, meet_link: Optional[str]) -> models.Session:
    session = _get_session(db, session_id)
    _require_participant(session, actor)
    meet_link = (meet_link or "").strip()
    if meet_link and not meet_link.startswith("http"):
        raise ValidationError("Please provide a valid URL starting with http:// or https://")
    session.meet_link = meet_link
    commit(db, "update meeting link")
    db.refresh(session)
    return session


def add_review(
    db: Session,
    session_id: int,
    actor: models.User,
    *,
    rating: int,
    feedback: Optional[str] = None,
) -> models.Session:
    session = _get_session(db, session_id)
    if session.mentee_id != actor.id:
        raise AuthorizationError("Only the mentee can review this session")
    if session.status != SessionStatus.COMPLETED:
        raise ConflictError("Only completed sessions can be reviewed")
    if rating is None or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    session.rating = rating
    session.feedback = feedback
    commit(db, "add session review")
    db.refresh(session)
    return session


def get_session_skills(db: Session, session_id: int, actor: models.User) -> List[models.Skill]:
    session = get_session_for_participant(db, session_id, actor)
    return skill_crud.list_session_skills(db, session.mentee_id, session.id)
