import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from starlette.websockets import WebSocketDisconnect

from tutorhub.modules.messages.realtime import RealtimeMessageFeed, record_from_payload
from tutorhub.modules.messages.service import Conversation

from tests.conftest import ADMIN, OTHER_STUDENT, OTHER_TEACHER, STUDENT, TEACHER
from tests.fakes import FakeAsyncClient, FakeChannel, auth_header


def history(client, user_id, teacher_id=TEACHER, student_id=STUDENT):
    return client.get(
        "/messages/history",
        params={"teacher_id": teacher_id, "student_id": student_id},
        headers=auth_header(user_id),
    )


def message(id, sender, receiver, created_at, body="hi"):
    teacher, student = (sender, receiver) if sender in (TEACHER, OTHER_TEACHER) else (receiver, sender)
    return {
        "id": id, "sender_id": sender, "receiver_id": receiver,
        "teacher_id": teacher, "student_id": student,
        "body": body, "created_at": created_at,
    }


def test_send_then_history_round_trip(client, fake):
    before = datetime.now(timezone.utc)
    resp = client.post(
        "/messages/",
        json={"receiver_id": TEACHER, "body": "  Assalamu alaikum, see you Tuesday  "},
        headers=auth_header(STUDENT),
    )
    assert resp.status_code == 200
    sent = resp.json()
    assert sent["body"] == "Assalamu alaikum, see you Tuesday"
    assert sent["teacher_id"] == TEACHER and sent["student_id"] == STUDENT
    assert datetime.fromisoformat(sent["created_at"]) >= before

    rows = history(client, TEACHER).json()
    assert [r["id"] for r in rows] == [sent["id"]]


def test_blank_message_is_rejected_without_insert(client, fake):
    resp = client.post("/messages/", json={"receiver_id": TEACHER, "body": "   "}, headers=auth_header(STUDENT))
    assert resp.status_code == 422
    assert ("messages", "insert") not in fake.calls


def test_history_is_ordered_by_creation_time(client, fake):
    t1 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)
    t2 = t1 + timedelta(minutes=3)
    # inserted out of order, from both directions
    fake.insert_row("messages", message("m2", STUDENT, TEACHER, t2.isoformat(), "second"))
    fake.insert_row("messages", message("m1", TEACHER, STUDENT, t1.isoformat(), "first"))
    fake.insert_row("messages", message("m3", OTHER_TEACHER, STUDENT, t1.isoformat(), "elsewhere"))

    rows = history(client, STUDENT).json()
    assert [r["body"] for r in rows] == ["first", "second"]


def test_receiver_must_have_opposite_role(client):
    resp = client.post("/messages/", json={"receiver_id": OTHER_STUDENT, "body": "hi"}, headers=auth_header(STUDENT))
    assert resp.status_code == 400
    resp = client.post("/messages/", json={"receiver_id": STUDENT, "body": "hi"}, headers=auth_header(ADMIN))
    assert resp.status_code == 403


def test_outsiders_cannot_read_a_conversation(client):
    assert history(client, OTHER_STUDENT).status_code == 403
    assert history(client, OTHER_TEACHER).status_code == 403
    assert history(client, ADMIN).status_code == 200


def test_conversation_dedupes_and_orders():
    convo = Conversation(TEACHER, STUDENT)
    later = message("b", STUDENT, TEACHER, "2026-10-01T09:05:00+00:00")
    earlier = message("a", TEACHER, STUDENT, "2026-10-01T09:00:00+00:00")

    assert convo.append(later)
    assert convo.append(earlier)
    assert not convo.append(dict(later))
    assert not convo.append(message("c", OTHER_TEACHER, STUDENT, "2026-10-01T09:01:00+00:00"))
    assert [m["id"] for m in convo.messages] == ["a", "b"]
    assert len(convo) == 2


def test_record_from_payload_shapes():
    row = {"id": "m1"}
    assert record_from_payload({"data": {"record": row}}) == row
    assert record_from_payload({"new": row}) == row
    assert record_from_payload("nonsense") is None


def test_feed_delivers_each_new_row_once():
    async def scenario():
        realtime = FakeAsyncClient()
        convo = Conversation(TEACHER, STUDENT, [message("m1", TEACHER, STUDENT, "2026-10-01T09:00:00+00:00")])
        async with RealtimeMessageFeed(realtime, convo) as feed:
            assert feed.active
            realtime.broadcast(message("m1", TEACHER, STUDENT, "2026-10-01T09:00:00+00:00"))
            realtime.broadcast(message("x", OTHER_TEACHER, STUDENT, "2026-10-01T09:01:00+00:00"))
            realtime.broadcast(message("m2", STUDENT, TEACHER, "2026-10-01T09:02:00+00:00"))
            row = await asyncio.wait_for(feed.next_message(), timeout=1)
            assert row["id"] == "m2"
            assert feed._queue.empty()
        assert not feed.active
        return realtime

    realtime = asyncio.run(scenario())
    assert len(realtime.removed) == 1
    assert [m for m in realtime.channels[0].filters] == [f"student_id=eq.{STUDENT}"]


def test_feed_is_released_when_the_view_errors():
    async def scenario(realtime):
        async with RealtimeMessageFeed(realtime, Conversation(TEACHER, STUDENT)):
            raise RuntimeError("view crashed")

    realtime = FakeAsyncClient()
    with pytest.raises(RuntimeError):
        asyncio.run(scenario(realtime))
    assert len(realtime.removed) == 1
    assert not any(c.subscribed for c in realtime.channels)


def test_feed_is_released_when_subscribe_fails():
    class BrokenChannel(FakeChannel):
        async def subscribe(self, *args, **kwargs):
            raise ConnectionError("realtime unavailable")

    class BrokenClient(FakeAsyncClient):
        def channel(self, name):
            channel = BrokenChannel(name)
            self.channels.append(channel)
            return channel

    async def scenario(realtime):
        async with RealtimeMessageFeed(realtime, Conversation(TEACHER, STUDENT)):
            pass

    realtime = BrokenClient()
    with pytest.raises(ConnectionError):
        asyncio.run(scenario(realtime))
    assert len(realtime.removed) == 1


def test_repeated_open_close_leaves_no_subscriptions():
    async def scenario(realtime):
        for _ in range(5):
            async with RealtimeMessageFeed(realtime, Conversation(TEACHER, STUDENT)):
                pass

    realtime = FakeAsyncClient()
    asyncio.run(scenario(realtime))
    assert len(realtime.channels) == 5
    assert len(realtime.removed) == 5
    assert not any(c.subscribed for c in realtime.channels)


def test_socket_streams_history_sends_and_pushes(client, fake):
    fake.insert_row("messages", message("m0", TEACHER, STUDENT, "2026-10-01T09:00:00+00:00", "Welcome"))

    url = f"/messages/ws?teacher_id={TEACHER}&student_id={STUDENT}"
    with client.websocket_connect(url, headers=auth_header(STUDENT)) as ws:
        first = ws.receive_json()
        assert first["type"] == "history"
        assert [m["body"] for m in first["messages"]] == ["Welcome"]

        ws.send_json({"body": "First"})
        frame = ws.receive_json()
        assert frame["type"] == "message"
        assert frame["message"]["body"] == "First"

        ws.send_json({"body": "Second"})
        frame = ws.receive_json()
        assert frame["message"]["body"] == "Second"

        ws.send_json({"body": "   "})
        assert ws.receive_json() == {"type": "error", "detail": "Message cannot be empty"}

        # the teacher replies from another tab
        fake.insert_row("messages", message("r1", TEACHER, STUDENT, fake.next_timestamp(), "Reply"))
        frame = ws.receive_json()
        assert frame["message"]["id"] == "r1"

    assert len(fake.realtime.removed) == 1
    assert fake.realtime.channels[0].token == f"token-{STUDENT}"
    assert [m["body"] for m in fake.rows("messages")] == ["Welcome", "First", "Second", "Reply"]


def test_socket_requires_authentication(client):
    url = f"/messages/ws?teacher_id={TEACHER}&student_id={STUDENT}"
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(url) as ws:
            ws.receive_json()


def test_socket_rejects_outsiders(client):
    url = f"/messages/ws?teacher_id={TEACHER}&student_id={STUDENT}"
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(url, headers=auth_header(OTHER_STUDENT)) as ws:
            ws.receive_json()


def test_feed_authorises_realtime_before_subscribing():
    async def scenario(realtime):
        async with RealtimeMessageFeed(realtime, Conversation(TEACHER, STUDENT), access_token="token-abc"):
            pass

    realtime = FakeAsyncClient()
    asyncio.run(scenario(realtime))
    assert realtime.realtime.tokens == ["token-abc"]
    assert realtime.channels[0].token == "token-abc"


def test_socket_answers_binary_frames_with_an_error(client, fake):
    url = f"/messages/ws?teacher_id={TEACHER}&student_id={STUDENT}"
    with client.websocket_connect(url, headers=auth_header(TEACHER)) as ws:
        assert ws.receive_json()["type"] == "history"
        ws.send_bytes(b"\x00\x01")
        assert ws.receive_json() == {"type": "error", "detail": "Only text frames are supported"}

        ws.send_json({"body": "Still here"})
        assert ws.receive_json()["message"]["body"] == "Still here"

    assert fake.realtime.realtime.tokens == [f"token-{TEACHER}"]
    assert len(fake.realtime.removed) == 1
