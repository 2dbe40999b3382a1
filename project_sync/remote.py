from __future__ import annotations

from typing import Any, Callable, Protocol

from project_sync.schema import LocationSpec

SnapshotCallback = Callable[[list], None]
ErrorCallback = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


class DocumentService(Protocol):
    """The remote document store the networked project store talks to."""

    def subscribe(
        self,
        location: LocationSpec,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe: ...

    def create(self, location: LocationSpec, record: dict[str, Any]) -> str: ...

    def update(self, location: LocationSpec, record_id: str, fields: dict[str, Any]) -> None: ...

    def delete(self, location: LocationSpec, record_id: str) -> None: ...


class UnavailableDocumentService:
    """Stands in for a backend that could not be reached at startup.

    Every subscription reports a connection error straight away and every
    write raises ``ConnectionError``, so the store degrades to an empty,
    loaded state with ``error='connection'`` instead of failing to build.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def subscribe(self, location: LocationSpec, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        on_error(ConnectionError(self.reason))
        return lambda: None

    def create(self, location: LocationSpec, record: dict[str, Any]) -> str:
        raise ConnectionError(self.reason)

    def update(self, location: LocationSpec, record_id: str, fields: dict[str, Any]) -> None:
        raise ConnectionError(self.reason)

    def delete(self, location: LocationSpec, record_id: str) -> None:
        raise ConnectionError(self.reason)


def owner_location(collection: str, uid: str) -> LocationSpec:
    return LocationSpec(collection=collection, owner_id=uid)


def membership_location(collection: str, uid: str) -> LocationSpec:
    return LocationSpec(collection=collection, member_id=uid)
