# tests/test_realtime_hub.py
import asyncio
import threading

import pytest

pytest.importorskip("fastapi")

from mentorpulse.realtime.hub import Connection, RealtimeHub, chat_room, user_room
from mentorpulse.realtime.presence import PresenceRegistry


class FakeConnection:
    def __init__(self, alive=True):
        self.rooms = set()
        self.frames = []
        self.alive = alive

    def push(self, event, data):
        if not self.alive:
            return False
        self.frames.append({"event": event, "data": data})
        return True


class BrokenConnection(FakeConnection):
    def push(self, event, data):
        raise RuntimeError("socket gone")


class FakeWebSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)


# ======================
# PRESENCE
# ======================

def test_presence_record_and_remove():
    presence = PresenceRegistry()
    handle = object()

    presence.record(1, handle)
    assert presence.is_online(1)
    assert presence.online_user_ids() == [1]

    assert presence.remove(1) is True
    assert presence.is_online(1) is False
    assert presence.remove(1) is False


def test_presence_stale_handle_does_not_evict_replacement():
    presence = PresenceRegistry()
    old, new = object(), object()
    presence.record(7, old)
    presence.record(7, new)

    assert presence.remove(7, old) is False
    assert presence.is_online(7)

    assert presence.remove(7, new) is True
    assert len(presence) == 0


def test_presence_is_thread_safe():
    presence = PresenceRegistry()

    def churn(offset):
        for i in range(200):
            presence.record(offset + i, object())
            presence.remove(offset + i)

    threads = [threading.Thread(target=churn, args=(n * 1000,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert presence.online_user_ids() == []


# ======================
# HUB
# ======================

def test_emit_reaches_room_members_except_excluded():
    hub = RealtimeHub()
    sender, receiver = FakeConnection(), FakeConnection()
    hub.join(chat_room(3), sender)
    hub.join(chat_room(3), receiver)

    reached = hub.emit(chat_room(3), "user-typing", {"userId": 1, "isTyping": True}, exclude=sender)

    assert reached == 1
    assert sender.frames == []
    assert receiver.frames == [{"event": "user-typing", "data": {"userId": 1, "isTyping": True}}]


def test_emit_to_empty_room_is_dropped():
    hub = RealtimeHub()
    assert hub.emit(user_room(99), "message-delivered", {}) == 0


def test_emit_never_raises():
    hub = RealtimeHub()
    good = FakeConnection()
    hub.join(user_room(1), BrokenConnection())
    hub.join(user_room(1), good)
    hub.join(user_room(1), FakeConnection(alive=False))

    assert hub.emit(user_room(1), "message-seen", {"messageId": 5}) == 1
    assert len(good.frames) == 1


def test_leave_all_removes_every_membership():
    hub = RealtimeHub()
    connection = FakeConnection()
    hub.join(user_room(1), connection)
    hub.join(chat_room(2), connection)

    hub.leave_all(connection)

    assert connection.rooms == set()
    assert hub.members(user_room(1)) == set()
    assert hub.members(chat_room(2)) == set()


# ======================
# CONNECTION WRITER
# ======================

def test_connection_push_from_worker_thread_is_written_in_order():
    websocket = FakeWebSocket()

    async def scenario():
        connection = Connection(websocket, user_id=1)
        writer = asyncio.create_task(connection.writer())
        connection.push("first", {"n": 1})
        await asyncio.to_thread(connection.push, "second", {"n": 2})
        await asyncio.sleep(0.05)
        connection.close()
        await asyncio.wait_for(writer, timeout=1)
        return connection

    connection = asyncio.run(scenario())

    assert [frame["event"] for frame in websocket.sent] == ["first", "second"]
    assert connection.push("late", {}) is False
