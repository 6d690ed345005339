"""Pytest bootstrap and shared fixtures."""

from datetime import date
import os
from pathlib import Path
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure project root is on sys.path so `import mentorpulse` works
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

# Keep the app engine (used only by the lifespan create_all) off the filesystem.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from mentorpulse.database import Base  # noqa: E402
from mentorpulse.models.session import Session  # noqa: E402
from mentorpulse.models.user import User  # noqa: E402
from mentorpulse.realtime.presence import PresenceRegistry  # noqa: E402
from mentorpulse.services.chat_service import ChatDeliveryEngine  # noqa: E402


class RecordingHub:
    """Stands in for RealtimeHub and keeps every emitted event."""

    def __init__(self):
        self.events = []

    def emit(self, room, event, data, exclude=None):
        self.events.append((room, event, data))
        return 1

    def named(self, event, room=None):
        return [
            data for emitted_room, emitted_event, data in self.events
            if emitted_event == event and (room is None or emitted_room == room)
        ]


# ======================
# TEST DATABASE SETUP
# ======================

@pytest.fixture
def session_factory():
    """Single shared in-memory connection, usable from worker threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def presence():
    return PresenceRegistry()


@pytest.fixture
def hub():
    return RecordingHub()


@pytest.fixture
def chat_engine(presence, hub):
    return ChatDeliveryEngine(presence, hub)


def create_user(db, email: str = "user@test.com", name: str = "User", role: str = "mentee") -> User:
    user = User(
        name=name,
        email=email,
        password_hash="hash",
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_session(db, mentor: User, mentee: User, status: str = "confirmed", **fields) -> Session:
    session = Session(
        mentor_id=mentor.id,
        mentee_id=mentee.id,
        session_date=date(2026, 1, 15),
        start_time="10:00",
        end_time="11:00",
        session_type="Code review",
        price=0,
        duration=60,
        status=status,
        verification_status="not_started",
        skill_claims=[],
        **fields,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


@pytest.fixture
def mentor(db_session):
    return create_user(db_session, email="mentor@test.com", name="Mentor", role="mentor")


@pytest.fixture
def mentee(db_session):
    return create_user(db_session, email="mentee@test.com", name="Mentee", role="mentee")


@pytest.fixture
def client(session_factory):
    """TestClient wired to the per-test database for both HTTP and /ws."""
    from fastapi.testclient import TestClient

    from mentorpulse.database import get_db
    from mentorpulse.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        app.state.gateway.session_factory = session_factory
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    from mentorpulse.utils.security import create_access_token

    token = create_access_token(data={"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def release(db, *users: User):
    """Load ``users`` fully, then close ``db`` so only the app uses the shared connection."""
    for user in users:
        db.refresh(user)
    db.close()
    return users
