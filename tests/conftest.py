import copy
import sys
import uuid
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from project_sync.schema import Identity, LocationSpec


class FakeDocumentService:
    """In-memory document service that pushes snapshots synchronously."""

    def __init__(self, auto_push: bool = True):
        self.auto_push = auto_push
        self.collections: dict[str, dict[str, dict]] = {}
        self.subscribers: list[dict] = []
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple] = []

    def seed(self, collection: str, record: dict) -> None:
        data = {k: v for k, v in record.items() if k not in {"id", "origin"}}
        self.collections.setdefault(collection, {})[record["id"]] = data

    def _matches(self, location: LocationSpec, data: dict) -> bool:
        if location.owner_id is not None and data.get("ownerId") != location.owner_id:
            return False
        if location.member_id is not None and location.member_id not in (data.get("memberIds") or []):
            return False
        return True

    def records(self, location: LocationSpec) -> list[dict]:
        rows = self.collections.get(location.collection, {})
        return [{**copy.deepcopy(data), "id": rid} for rid, data in rows.items() if self._matches(location, data)]

    def push(self, collection: str | None = None) -> None:
        for sub in list(self.subscribers):
            if sub["active"] and (collection is None or sub["location"].collection == collection):
                sub["on_snapshot"](self.records(sub["location"]))

    def emit_error(self, collection: str, exc: Exception) -> None:
        for sub in list(self.subscribers):
            if sub["active"] and sub["location"].collection == collection:
                sub["on_error"](exc)

    def active_subscriptions(self) -> list[dict]:
        return [sub for sub in self.subscribers if sub["active"]]

    def _maybe_fail(self, op: str) -> None:
        exc = self.failures.pop(op, None)
        if exc is not None:
            raise exc

    def subscribe(self, location, on_snapshot, on_error):
        self._maybe_fail("subscribe")
        sub = {"location": location, "on_snapshot": on_snapshot, "on_error": on_error, "active": True}
        self.subscribers.append(sub)
        if self.auto_push:
            on_snapshot(self.records(location))

        def _unsubscribe():
            sub["active"] = False

        return _unsubscribe

    def create(self, location, record):
        self.calls.append(("create", location, copy.deepcopy(record)))
        self._maybe_fail("create")
        rid = f"p-{uuid.uuid4().hex[:8]}"
        self.seed(location.collection, {**record, "id": rid})
        if self.auto_push:
            self.push(location.collection)
        return rid

    def update(self, location, record_id, fields):
        self.calls.append(("update", location, record_id, copy.deepcopy(fields)))
        self._maybe_fail("update")
        rows = self.collections.get(location.collection, {})
        if record_id not in rows:
            raise LookupError(record_id)
        rows[record_id].update(copy.deepcopy(fields))
        if self.auto_push:
            self.push(location.collection)

    def delete(self, location, record_id):
        self.calls.append(("delete", location, record_id))
        self._maybe_fail("delete")
        self.collections.get(location.collection, {}).pop(record_id, None)
        if self.auto_push:
            self.push(location.collection)


class FakeTimer:
    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


class FakeTimerFactory:
    def __init__(self):
        self.created: list[FakeTimer] = []

    def __call__(self, interval, function, args=()):
        timer = FakeTimer(interval, function, args=args)
        self.created.append(timer)
        return timer

    def fire_all(self):
        for timer in list(self.created):
            timer.fire()


@pytest.fixture
def service():
    return FakeDocumentService()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def alice():
    return Identity(uid="alice", email="alice@example.com", display_name="Alice")


@pytest.fixture
def quiet_service():
    """A service that only pushes when the test calls ``push()``."""
    return FakeDocumentService(auto_push=False)
