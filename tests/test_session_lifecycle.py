# tests/test_session_lifecycle.py
"""
Session lifecycle: booking, dual-approval completion, direct completion,
cancellation and the state machine behind them.
"""

from datetime import date
import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from conftest import create_session, create_user
from mentorpulse.database import Base
from mentorpulse.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from mentorpulse.models.progress import Progress
from mentorpulse.models.session import Session
from mentorpulse.models.skill import Skill
from mentorpulse.models.user import User
from mentorpulse.services import session_service
from mentorpulse.services.session_state import (
    SessionStatus,
    can_transition,
    derive_verification,
    ensure_transition,
    sources_for,
)


def _skills_by_name(db, user_id):
    return {skill.name: skill for skill in db.query(Skill).filter(Skill.user_id == user_id).all()}


# ======================
# STATE MACHINE
# ======================

def test_terminal_statuses_have_no_exits():
    for terminal in SessionStatus.TERMINAL:
        for target in SessionStatus.ALL:
            assert can_transition(terminal, target) is False


def test_completed_cannot_return_to_verification():
    with pytest.raises(ConflictError):
        ensure_transition(SessionStatus.COMPLETED, SessionStatus.PENDING_VERIFICATION)


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError, match="Invalid status"):
        ensure_transition(SessionStatus.CONFIRMED, "archived")


def test_sources_for_completed():
    assert set(sources_for(SessionStatus.COMPLETED)) == {
        SessionStatus.UPCOMING,
        SessionStatus.CONFIRMED,
        SessionStatus.PENDING_VERIFICATION,
    }


@pytest.mark.parametrize(
    "mentor_approved, mentor_acted, mentee_approved, mentee_acted, expected",
    [
        (False, False, False, False, "not_started"),
        (True, True, False, False, "mentor_approved"),
        (False, False, True, True, "mentee_approved"),
        (True, True, True, True, "both_approved"),
        (True, True, False, True, "disputed"),
    ],
)
def test_derive_verification(mentor_approved, mentor_acted, mentee_approved, mentee_acted, expected):
    assert derive_verification(mentor_approved, mentor_acted, mentee_approved, mentee_acted) == expected


# ======================
# BOOKING
# ======================

def test_book_session_creates_confirmed_session(db_session, mentor, mentee):
    session = session_service.book_session(
        db_session,
        mentee,
        mentor_id=mentor.id,
        mentee_id=None,
        session_date=date(2026, 2, 1),
        start_time="09:00",
        end_time="10:00",
        session_type="Career chat",
        price=25,
    )

    assert session.id is not None
    assert session.status == "confirmed"
    assert session.verification_status == "not_started"
    assert session.mentee_id == mentee.id
    assert session.mentor.name == "Mentor"


def test_book_session_validation(db_session, mentor, mentee):
    base = dict(
        mentor_id=mentor.id,
        mentee_id=mentee.id,
        session_date=date(2026, 2, 1),
        start_time="09:00",
        end_time="10:00",
        session_type="Career chat",
    )

    with pytest.raises(ValidationError, match="start_time"):
        session_service.book_session(db_session, mentee, **dict(base, start_time=" "))

    with pytest.raises(ValidationError, match="different users"):
        session_service.book_session(db_session, mentee, **dict(base, mentor_id=mentee.id))

    with pytest.raises(NotFoundError, match="Mentor not found"):
        session_service.book_session(db_session, mentee, **dict(base, mentor_id=9999))

    outsider = create_user(db_session, email="outsider@test.com", name="Outsider")
    with pytest.raises(AuthorizationError):
        session_service.book_session(db_session, outsider, **base)

    assert db_session.query(Session).count() == 0


def test_list_user_sessions_groups_by_status(db_session, mentor, mentee):
    create_session(db_session, mentor, mentee, status="confirmed")
    create_session(db_session, mentor, mentee, status="pending_verification")
    create_session(db_session, mentor, mentee, status="completed")
    create_session(db_session, mentor, mentee, status="cancelled")

    groups = session_service.list_user_sessions(db_session, mentee)

    assert len(groups["upcoming"]) == 2
    assert len(groups["completed"]) == 1
    assert len(groups["cancelled"]) == 1
    assert len(groups["total"]) == 4


# ======================
# COMPLETION INITIATION
# ======================

def test_initiate_completion_credits_new_skill_and_again_on_repeat(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    updated = session_service.initiate_completion(
        db_session, session.id, mentor, notes="Covered hooks", skill_claims=[{"name": "React"}],
        credit_timing="initiation",
    )

    assert updated.status == "pending_verification"
    assert updated.verification_status == "not_started"
    assert updated.notes == "Covered hooks"
    react = _skills_by_name(db_session, mentee.id)["React"]
    assert react.progress == 10
    assert react.status == "learning"

    session_service.initiate_completion(
        db_session, session.id, mentor, skill_claims=[{"name": "react"}], credit_timing="initiation",
    )

    skills = _skills_by_name(db_session, mentee.id)
    assert list(skills) == ["React"]
    assert skills["React"].progress == 20

    entries = db_session.query(Progress).filter(Progress.user_id == mentee.id).all()
    assert len(entries) == 2
    assert entries[0].type == "session_completed"
    assert entries[0].value == 10
    assert entries[0].metrics["sessions_completed"] == 1
    assert entries[0].metrics["hours_spent"] == 1.0
    assert entries[0].related_session_id == session.id

    linked = session_service.get_session_skills(db_session, session.id, mentee)
    assert [skill.name for skill in linked] == ["React"]


def test_only_mentor_can_initiate(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    with pytest.raises(AuthorizationError):
        session_service.initiate_completion(db_session, session.id, mentee)


def test_reinitiation_resets_approvals(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)
    session_service.initiate_completion(db_session, session.id, mentor)
    session_service.approve_completion(db_session, session.id, mentor, approved=True)

    updated = session_service.initiate_completion(db_session, session.id, mentor)

    assert updated.status == "pending_verification"
    assert updated.mentor_approved is False
    assert updated.mentor_approved_at is None
    assert updated.verification_status == "not_started"


# ======================
# DUAL APPROVAL
# ======================

def test_both_parties_approve_completes_session(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)
    session_service.initiate_completion(db_session, session.id, mentor)

    first = session_service.approve_completion(db_session, session.id, mentor, approved=True, notes="Good")

    assert first["completed"] is False
    assert first["awaiting"] == "mentee"
    assert first["session"].status == "pending_verification"
    assert first["session"].verification_status == "mentor_approved"
    assert first["session"].mentor_approval["notes"] == "Good"

    second = session_service.approve_completion(db_session, session.id, mentee, approved=True, actual_duration=75)

    completed = second["session"]
    assert second["completed"] is True
    assert second["awaiting"] is None
    assert completed.status == "completed"
    assert completed.verification_status == "both_approved"
    assert completed.completed_at is not None
    assert completed.actual_duration == 75


def test_completed_at_is_stamped_exactly_once(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)
    session_service.initiate_completion(db_session, session.id, mentor)
    session_service.approve_completion(db_session, session.id, mentee)
    done = session_service.approve_completion(db_session, session.id, mentor)["session"]
    stamped = done.completed_at

    with pytest.raises(ConflictError):
        session_service.approve_completion(db_session, session.id, mentor)

    db_session.refresh(done)
    assert done.completed_at == stamped
    assert done.status == "completed"


def test_mentee_rejection_keeps_session_pending(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)
    session_service.initiate_completion(db_session, session.id, mentor)
    session_service.approve_completion(db_session, session.id, mentor, approved=True)

    result = session_service.approve_completion(
        db_session, session.id, mentee, approved=False, notes="We ran out of time"
    )

    rejected = result["session"]
    assert result["completed"] is False
    assert rejected.status == "pending_verification"
    assert rejected.verification_status == "disputed"
    assert rejected.mentee_approved is False
    assert rejected.mentee_approved_at is not None
    assert rejected.mentee_approval_notes == "We ran out of time"
    assert rejected.completed_at is None

    # Changing their mind completes the session.
    result = session_service.approve_completion(db_session, session.id, mentee, approved=True)
    assert result["session"].status == "completed"


def test_approval_requires_pending_verification(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    with pytest.raises(ConflictError, match="not awaiting"):
        session_service.approve_completion(db_session, session.id, mentee)


def test_outsider_cannot_approve(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)
    session_service.initiate_completion(db_session, session.id, mentor)
    outsider = create_user(db_session, email="outsider@test.com", name="Outsider")

    with pytest.raises(AuthorizationError):
        session_service.approve_completion(db_session, session.id, outsider)


def test_deferred_crediting_waits_for_completion(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)
    session_service.initiate_completion(
        db_session, session.id, mentor, skill_claims=[{"name": "SQL"}], credit_timing="completion",
    )

    assert _skills_by_name(db_session, mentee.id) == {}
    assert db_session.query(Progress).count() == 0

    session_service.approve_completion(db_session, session.id, mentor)
    session_service.approve_completion(db_session, session.id, mentee)

    skills = _skills_by_name(db_session, mentee.id)
    assert skills["SQL"].progress == 10
    assert db_session.query(Progress).count() == 1
    db_session.refresh(session)
    assert session.skill_claims == []


@pytest.fixture
def file_session_factory(tmp_path):
    """On-disk database so each worker thread gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'approvals.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


def test_concurrent_approvals_complete_exactly_once(file_session_factory):
    db = file_session_factory()
    mentor = create_user(db, email="mentor@test.com", name="Mentor", role="mentor")
    mentee = create_user(db, email="mentee@test.com", name="Mentee")
    session = create_session(db, mentor, mentee)
    session_service.initiate_completion(
        db, session.id, mentor, skill_claims=[{"name": "Django"}], credit_timing="completion",
    )
    session_id, party_ids = session.id, (mentor.id, mentee.id)
    db.close()

    barrier = threading.Barrier(2)
    results, errors = [], []

    def approve(user_id):
        worker_db = file_session_factory()
        try:
            actor = worker_db.get(User, user_id)
            barrier.wait()
            results.append(session_service.approve_completion(worker_db, session_id, actor)["completed"])
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)
        finally:
            worker_db.close()

    threads = [threading.Thread(target=approve, args=(user_id,)) for user_id in party_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(results) == [False, True]

    db = file_session_factory()
    try:
        stored = db.get(Session, session_id)
        assert stored.status == "completed"
        assert stored.verification_status == "both_approved"
        assert stored.completed_at is not None
        assert stored.skill_claims == []
        assert db.query(Progress).filter(Progress.type == "session_completed").count() == 1
        assert _skills_by_name(db, party_ids[1])["Django"].progress == 10
    finally:
        db.close()


# ======================
# DIRECT COMPLETION
# ======================

def test_complete_directly(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    result = session_service.complete_directly(
        db_session, session.id, mentor, notes="Wrapped up", skill_claims=[{"name": "Docker"}], actual_duration=90,
    )

    done = result["session"]
    assert result["skills_added"] == 1
    assert done.status == "completed"
    assert done.verification_status == "direct_completion"
    assert done.completed_at is not None
    entry = db_session.query(Progress).one()
    assert entry.metrics["hours_spent"] == 1.5

    with pytest.raises(ConflictError):
        session_service.complete_directly(db_session, session.id, mentor)


def test_mentee_cannot_complete_directly(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    with pytest.raises(AuthorizationError):
        session_service.complete_directly(db_session, session.id, mentee)


# ======================
# CANCELLATION & STATUS
# ======================

def test_cancel_session_twice_is_a_conflict(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    cancelled = session_service.cancel_session(db_session, session.id, mentee, reason="Schedule clash")
    assert cancelled.status == "cancelled"
    assert cancelled.cancellation_reason == "Schedule clash"
    updated_at = cancelled.updated_at

    with pytest.raises(ConflictError, match="already cancelled"):
        session_service.cancel_session(db_session, session.id, mentor, reason="Other")

    db_session.refresh(cancelled)
    assert cancelled.cancellation_reason == "Schedule clash"
    assert cancelled.updated_at == updated_at


def test_cannot_cancel_completed_session(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee, status="completed")

    with pytest.raises(ConflictError):
        session_service.cancel_session(db_session, session.id, mentee)


def test_admin_can_cancel(db_session, mentor, mentee):
    admin = create_user(db_session, email="admin@test.com", name="Admin", role="admin")
    session = create_session(db_session, mentor, mentee)

    cancelled = session_service.cancel_session(db_session, session.id, admin)

    assert cancelled.status == "cancelled"
    assert cancelled.cancellation_reason == "Cancelled by user"


def test_update_status_routes_through_state_machine(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    missed = session_service.update_status(db_session, session.id, mentor, status="missed")
    assert missed.status == "missed"

    with pytest.raises(ConflictError):
        session_service.update_status(db_session, session.id, mentor, status="confirmed")


def test_update_status_completed_is_mentor_only(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    with pytest.raises(AuthorizationError):
        session_service.update_status(db_session, session.id, mentee, status="completed")

    done = session_service.update_status(db_session, session.id, mentor, status="completed")
    assert done.verification_status == "direct_completion"


# ======================
# DETAILS
# ======================

def test_update_meet_link(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    with pytest.raises(ValidationError):
        session_service.update_meet_link(db_session, session.id, mentor, "meet.example.com/abc")

    updated = session_service.update_meet_link(db_session, session.id, mentor, "https://meet.example.com/abc")
    assert updated.meet_link == "https://meet.example.com/abc"

    cleared = session_service.update_meet_link(db_session, session.id, mentee, "")
    assert cleared.meet_link == ""


def test_add_review_only_for_completed_sessions(db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)

    with pytest.raises(ConflictError):
        session_service.add_review(db_session, session.id, mentee, rating=5)

    session_service.complete_directly(db_session, session.id, mentor)

    with pytest.raises(AuthorizationError):
        session_service.add_review(db_session, session.id, mentor, rating=5)

    with pytest.raises(ValidationError):
        session_service.add_review(db_session, session.id, mentee, rating=6)

    reviewed = session_service.add_review(db_session, session.id, mentee, rating=4, feedback="Helpful")
    assert reviewed.rating == 4
    assert reviewed.feedback == "Helpful"
