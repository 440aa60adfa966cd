from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timedelta

from tally_check.cache import QueryCache
from tally_check.core.enums import NotificationType
from tally_check.database.connection import SupabaseConfig
from tally_check.notifications import realtime
from tally_check.notifications.events import SUBSCRIPTIONS, ChangeEvent, ChangeEventMapper
from tally_check.notifications.feed import NotificationFeed
from tally_check.notifications.model import Notification
from tally_check.notifications.realtime import ChangeHandler, RealtimeListener

STAMP = datetime(2026, 3, 2, 10, 0)


def _mapper() -> ChangeEventMapper:
    return ChangeEventMapper(clock=lambda: STAMP)


def _note(i: int) -> Notification:
    return Notification(
        notification_id=f"n-{i}",
        type=NotificationType.INFO,
        title="t",
        message="m",
        timestamp=STAMP + timedelta(seconds=i),
    )


def test_attendance_and_session_inserts():
    mapper = _mapper()

    signed_in = mapper.map("attendance_records", "insert", {"id": "rec-1"})
    assert signed_in.notification_id == "attendance-rec-1"
    assert signed_in.type == NotificationType.SUCCESS
    assert signed_in.title == "Student Signed In"

    session = mapper.map("class_sessions", "INSERT", {"id": "s-1"})
    assert session.type == NotificationType.INFO
    assert mapper.map("class_sessions", "DELETE", {"id": "s-1"}) is None


def test_beacon_toggle_only():
    mapper = _mapper()

    off = mapper.map("ble_beacons", "UPDATE", {"id": "b-1", "name": "Room 1", "is_active": False}, {"is_active": True})
    assert off.type == NotificationType.WARNING
    assert off.message == "Beacon Room 1 has been deactivated"

    on = mapper.map("beacons", "UPDATE", {"id": "b-1", "name": "Room 1", "is_active": True}, {"is_active": False})
    assert on.title == "Beacon Activated"

    assert mapper.map("ble_beacons", "UPDATE", {"id": "b-1", "is_active": True}, {"is_active": True}) is None
    assert mapper.map("ble_beacons", "UPDATE", {"id": "b-1", "is_active": True}, {"id": "b-1"}) is None


def test_user_device_change_and_course_insert():
    mapper = _mapper()

    device = mapper.map("users", "UPDATE", {"id": "u-1", "full_name": "Esi", "device_id": "abc"}, {"device_id": None})
    assert device.message == "Device verification completed for Esi"
    assert mapper.map("users", "UPDATE", {"id": "u-1", "device_id": "abc"}, {"device_id": "abc"}) is None

    course = mapper.map("courses", "INSERT", {"id": "c-1", "name": "Algorithms"})
    assert course.message == 'Course "Algorithms" has been created'
    assert course.to_dict()["timestamp"] == STAMP.isoformat()


def test_change_event_accepts_both_payload_shapes():
    flat = ChangeEvent.from_payload({"table": "users", "eventType": "UPDATE", "new": {"id": 1}, "old": {"id": 1}})
    nested = ChangeEvent.from_payload(
        {"data": {"table": "users", "type": "update", "record": {"id": 1}, "old_record": {"id": 1}}}
    )

    assert flat == nested
    assert nested.event == "UPDATE"


def test_feed_keeps_newest_ten():
    feed = NotificationFeed()
    for i in range(12):
        feed.push(_note(i))
    feed.push(None)

    ids = [n.notification_id for n in feed.items()]
    assert len(ids) == 10
    assert ids[0] == "n-11"
    assert ids[-1] == "n-2"

    assert feed.clear("n-5") is True
    assert feed.clear("n-5") is False
    assert len(feed) == 9
    feed.clear_all()
    assert feed.items() == []


def test_change_handler_invalidates_cache_and_records_notification():
    cache = QueryCache(default_ttl=60)
    feed = NotificationFeed()
    calls = []

    def load():
        calls.append(1)
        return len(calls)

    cache.fetch(("attendance", "date", "2026-03-02"), load)
    cache.fetch(("beacons", "all"), load)
    handler = ChangeHandler(feed, cache, _mapper())

    handler({"table": "attendance_records", "eventType": "INSERT", "new": {"id": "rec-9"}, "old": {}})

    assert cache.fetch(("attendance", "date", "2026-03-02"), load) == 3
    assert cache.fetch(("beacons", "all"), load) == 2
    assert [n.notification_id for n in feed.items()] == ["attendance-rec-9"]


class _FakeChannel:
    def __init__(self, client: "_FakeRealtimeClient"):
        self._client = client

    def on_postgres_changes(self, event, **kwargs):
        return self

    async def subscribe(self):
        self._client.heartbeats.append(asyncio.get_running_loop().create_task(asyncio.sleep(3600)))
        if len(self._client.heartbeats) == len(SUBSCRIPTIONS):
            self._client.subscribed.set()
        return self


class _FakeRealtimeClient:
    def __init__(self):
        self.heartbeats: list[asyncio.Task] = []
        self.subscribed = threading.Event()
        self.left = False

    def channel(self, name: str):
        return _FakeChannel(self)

    async def remove_all_channels(self):
        self.left = True


def test_listener_stop_leaves_channels_and_cancels_pending_tasks(monkeypatch):
    client = _FakeRealtimeClient()

    async def fake_acreate_client(url, key):
        return client

    monkeypatch.setattr(realtime, "acreate_client", fake_acreate_client)
    listener = RealtimeListener(
        SupabaseConfig(url="https://example.supabase.co", anon_key="anon"),
        ChangeHandler(NotificationFeed(), QueryCache()),
    )

    listener.start()
    assert client.subscribed.wait(2)
    listener.stop(timeout=2)

    assert not listener.running
    assert client.left is True
    assert client.heartbeats and all(t.cancelled() for t in client.heartbeats)
