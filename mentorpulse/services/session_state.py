"""
Session status state machine.

Every status change goes through ``ensure_transition`` so that, for example,
a completed session can never be pushed back to pending_verification.
"""

from typing import Optional

from mentorpulse.exceptions import ConflictError, ValidationError


class SessionStatus:
    UPCOMING = "upcoming"
    CONFIRMED = "confirmed"
    PENDING_VERIFICATION = "pending_verification"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    MISSED = "missed"

    ALL = (UPCOMING, CONFIRMED, PENDING_VERIFICATION, COMPLETED, CANCELLED, MISSED)
    TERMINAL = (COMPLETED, CANCELLED, MISSED)
    ACTIVE = (UPCOMING, CONFIRMED, PENDING_VERIFICATION)


class VerificationStatus:
    NOT_STARTED = "not_started"
    MENTOR_APPROVED = "mentor_approved"
    MENTEE_APPROVED = "mentee_approved"
    BOTH_APPROVED = "both_approved"
    DISPUTED = "disputed"
    DIRECT_COMPLETION = "direct_completion"

    ALL = (
        NOT_STARTED,
        MENTOR_APPROVED,
        MENTEE_APPROVED,
        BOTH_APPROVED,
        DISPUTED,
        DIRECT_COMPLETION,
    )


TRANSITIONS = {
    SessionStatus.UPCOMING: {
        SessionStatus.CONFIRMED,
        SessionStatus.PENDING_VERIFICATION,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.MISSED,
    },
    SessionStatus.CONFIRMED: {
        SessionStatus.UPCOMING,
        SessionStatus.PENDING_VERIFICATION,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
        SessionStatus.MISSED,
    },
    # Re-initiating completion restarts verification.
    SessionStatus.PENDING_VERIFICATION: {
        SessionStatus.PENDING_VERIFICATION,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
    },
    SessionStatus.COMPLETED: set(),
    SessionStatus.CANCELLED: set(),
    SessionStatus.MISSED: set(),
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def sources_for(target: str) -> tuple:
    """Statuses from which ``target`` may be entered."""
    return tuple(status for status, targets in TRANSITIONS.items() if target in targets)


def ensure_transition(current: str, target: str) -> None:
    if target not in SessionStatus.ALL:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(SessionStatus.ALL)}"
        )
    if current == SessionStatus.CANCELLED and target == SessionStatus.CANCELLED:
        raise ConflictError("Session already cancelled")
    if not can_transition(current, target):
        raise ConflictError(f"Cannot move session from '{current}' to '{target}'")


def derive_verification(
    mentor_approved: bool,
    mentor_acted: bool,
    mentee_approved: bool,
    mentee_acted: bool,
) -> str:
    """
    Verification sub-state from the two approval sub-records.

    A party "acted" once its approved_at is stamped; a recorded rejection from
    either side marks the session disputed until that side approves.
    """
    if (mentor_acted and not mentor_approved) or (mentee_acted and not mentee_approved):
        return VerificationStatus.DISPUTED
    if mentor_approved and mentee_approved:
        return VerificationStatus.BOTH_APPROVED
    if mentor_approved:
        return VerificationStatus.MENTOR_APPROVED
    if mentee_approved:
        return VerificationStatus.MENTEE_APPROVED
    return VerificationStatus.NOT_STARTED


def awaiting_party(mentor_approved: bool, mentee_approved: bool) -> Optional[str]:
    """"mentor", "mentee" or "both" still to approve; None once both have."""
    if mentor_approved and not mentee_approved:
        return "mentee"
    if mentee_approved and not mentor_approved:
        return "mentor"
    if not mentor_approved and not mentee_approved:
        return "both"
    return None
