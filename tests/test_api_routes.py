# tests/test_api_routes.py
import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from conftest import auth_headers, create_session, release


@pytest.fixture
def people(db_session, mentor, mentee):
    return release(db_session, mentor, mentee)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["success"] is True


# ======================
# AUTH
# ======================

def test_register_then_login(client):
    response = client.post("/auth/register", json={
        "name": "Ada",
        "email": "Ada@MentorPulse.io",
        "password": "secret123",
        "role": "mentor",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "ada@mentorpulse.io"
    assert body["data"]["user"]["role"] == "mentor"
    assert body["data"]["token"]["token_type"] == "bearer"

    login = client.post("/auth/login", json={"email": "ada@mentorpulse.io", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["data"]["token"]["access_token"]

    goals = client.get("/progress/goals", headers={"Authorization": f"Bearer {token}"})
    assert goals.json() == {"success": True, "data": []}


def test_register_rejects_duplicates_and_admin_role(client):
    payload = {"name": "Bo", "email": "bo@mentorpulse.io", "password": "secret123"}
    assert client.post("/auth/register", json=payload).status_code == 201

    duplicate = client.post("/auth/register", json=payload)
    assert duplicate.status_code == 400
    assert duplicate.json() == {"success": False, "message": "Email already registered"}

    admin = client.post("/auth/register", json={**payload, "email": "root@mentorpulse.io", "role": "admin"})
    assert admin.status_code == 400


def test_login_with_wrong_password(client):
    client.post("/auth/register", json={"name": "Cy", "email": "cy@mentorpulse.io", "password": "secret123"})

    response = client.post("/auth/login", json={"email": "cy@mentorpulse.io", "password": "nope-nope"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid email or password"}
    assert response.headers["www-authenticate"] == "Bearer"


# ======================
# ERROR ENVELOPE
# ======================

def test_missing_token_is_enveloped(client):
    response = client.get("/sessions/user-sessions")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_unknown_route_is_enveloped(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found"}


def test_request_validation_is_400(client, people):
    mentor, mentee = people
    response = client.post("/sessions/book", json={"mentorId": mentor.id}, headers=auth_headers(mentee))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "Field required" in body["message"]


# ======================
# SESSIONS
# ======================

def test_session_dual_approval_over_http(client, people):
    mentor, mentee = people
    booked = client.post("/sessions/book", json={
        "mentorId": mentor.id,
        "sessionDate": "2026-03-02",
        "startTime": "09:00",
        "endTime": "10:00",
        "sessionType": "Pairing",
    }, headers=auth_headers(mentee))
    assert booked.status_code == 201
    session = booked.json()["data"]
    assert session["menteeId"] == mentee.id
    assert session["status"] == "confirmed"
    session_id = session["id"]

    initiated = client.patch(
        f"/sessions/{session_id}/initiate-completion",
        json={"notes": "Good progress", "skills": [{"name": "React"}]},
        headers=auth_headers(mentor),
    )
    assert initiated.status_code == 200
    assert initiated.json()["data"]["status"] == "pending_verification"
    assert initiated.json()["data"]["mentorApproval"]["approved"] is False

    by_mentee = client.patch(f"/sessions/{session_id}/approve", headers=auth_headers(mentee))
    assert by_mentee.json()["data"]["completed"] is False
    assert by_mentee.json()["data"]["awaiting"] == "mentor"
    assert by_mentee.json()["message"] == "Session approved. Waiting for other party."

    by_mentor = client.patch(
        f"/sessions/{session_id}/approve", json={"notes": "Well done"}, headers=auth_headers(mentor)
    )
    data = by_mentor.json()["data"]
    assert data["completed"] is True
    assert data["session"]["status"] == "completed"
    assert data["session"]["verificationStatus"] == "both_approved"
    assert data["session"]["completedAt"] is not None

    skills = client.get(f"/sessions/{session_id}/skills", headers=auth_headers(mentee))
    assert [(s["name"], s["progress"]) for s in skills.json()["data"]] == [("React", 10)]

    cancelled = client.patch(
        f"/sessions/{session_id}/cancel",
        json={"cancellationReason": "too late"},
        headers=auth_headers(mentee),
    )
    assert cancelled.status_code == 409
    assert cancelled.json()["success"] is False

    groups = client.get("/sessions/user-sessions", headers=auth_headers(mentor)).json()["data"]
    assert groups["total"] == 1
    assert [s["id"] for s in groups["completed"]] == [session_id]


def test_cancel_accepts_reason_aliases(client, db_session, mentor, mentee):
    session = create_session(db_session, mentor, mentee)
    session_id = session.id
    release(db_session, mentor, mentee)

    response = client.patch(
        f"/sessions/{session_id}/cancel",
        json={"cancellationReason": "Travelling"},
        headers=auth_headers(mentor),
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"
    assert response.json()["data"]["cancellationReason"] == "Travelling"


def test_outsider_gets_403_on_foreign_booking(client, people):
    mentor, mentee = people
    register = client.post("/auth/register", json={
        "name": "Eve", "email": "eve@mentorpulse.io", "password": "secret123",
    })
    token = register.json()["data"]["token"]["access_token"]

    response = client.post("/sessions/book", json={
        "mentorId": mentor.id,
        "menteeId": mentee.id,
        "sessionDate": "2026-03-02",
        "startTime": "09:00",
        "endTime": "10:00",
        "sessionType": "Pairing",
    }, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
    assert response.json()["success"] is False


# ======================
# PROGRESS & CHAT
# ======================

def test_goal_completion_over_http(client, people):
    _, mentee = people
    headers = auth_headers(mentee)
    created = client.post("/progress/goals", json={
        "title": "Ship a CLI",
        "description": "Publish a small tool",
        "targetDate": "2026-05-01",
        "skills": [{"name": "Click"}],
    }, headers=headers)
    assert created.status_code == 201
    goal_id = created.json()["data"]["id"]

    updated = client.patch(f"/progress/goals/{goal_id}/progress", json={"progress": 100}, headers=headers)
    assert updated.json()["data"]["status"] == "completed"

    entries = client.get("/progress/entries", headers=headers).json()["data"]
    assert [e["type"] for e in entries] == ["goal_achieved"]
    skills = client.get("/progress/skills", headers=headers).json()["data"]
    assert [(s["name"], s["status"]) for s in skills] == [("Click", "mastered")]


def test_chat_routes(client, people):
    mentor, mentee = people
    chat = client.post(
        "/chat/get-or-create", json={"participantId": mentee.id}, headers=auth_headers(mentor)
    ).json()["data"]

    sent = client.post(f"/chat/{chat['id']}/messages", json={"content": "Welcome!"}, headers=auth_headers(mentor))
    assert sent.status_code == 201
    message_id = sent.json()["data"]["id"]

    chats = client.get("/chat/user/chats", headers=auth_headers(mentee)).json()["data"]
    assert chats[0]["unreadCount"] == 1
    assert chats[0]["otherParticipant"]["id"] == mentor.id

    marked = client.patch(f"/chat/{chat['id']}/read", headers=auth_headers(mentee))
    assert marked.json()["data"] == {"messageIds": [message_id]}

    empty = client.post(f"/chat/{chat['id']}/messages", json={"content": "  "}, headers=auth_headers(mentor))
    assert empty.status_code == 400
    assert empty.json() == {"success": False, "message": "Message content is required"}


# ======================
# DIRECT ROUTE CALLS
# ======================

def test_book_route_called_directly(db_session, mentor, mentee):
    from datetime import date

    from mentorpulse.api import session as session_api
    from mentorpulse.schemas import SessionBook

    payload = SessionBook(
        mentor_id=mentor.id,
        session_date=date(2026, 4, 1),
        start_time="14:00",
        end_time="15:00",
        session_type="Mock interview",
        price=25,
    )

    result = session_api.book_session(payload=payload, current_user=mentee, db=db_session)

    assert result["success"] is True
    assert result["message"] == "Session booked successfully"
    assert result["data"].mentee_id == mentee.id
    assert result["data"].status == "confirmed"
    assert result["data"].price == 25
