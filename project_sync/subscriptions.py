from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from project_sync.config import DEFAULT_FIRST_PUSH_TIMEOUT_SEC, DEFAULT_LEGACY_TABLE, DEFAULT_SHARED_TABLE
from project_sync.remote import DocumentService, Unsubscribe, membership_location, owner_location
from project_sync.schema import (
    ErrorKind,
    Identity,
    LocationSpec,
    Origin,
    SubscriptionSnapshot,
    classify_error,
    tag_origin,
)

_logger = logging.getLogger(__name__)

ChangeCallback = Callable[[SubscriptionSnapshot, SubscriptionSnapshot], None]


class SubscriptionManager:
    """Owns the owner-collection and shared-collection live subscriptions.

    Each subscription reports ``loaded=False`` until its first push or until
    ``first_push_timeout_sec`` elapses, whichever happens first.  Every state
    change calls ``on_change(legacy, shared)`` while holding ``lock``, so
    consumers always observe both snapshots as one consistent pair.
    """

    def __init__(
        self,
        service: DocumentService,
        on_change: ChangeCallback,
        *,
        legacy_collection: str = DEFAULT_LEGACY_TABLE,
        shared_collection: str = DEFAULT_SHARED_TABLE,
        first_push_timeout_sec: float = DEFAULT_FIRST_PUSH_TIMEOUT_SEC,
        lock: Optional[threading.RLock] = None,
        timer_factory: Callable[..., Any] = threading.Timer,
    ) -> None:
        self._service = service
        self._on_change = on_change
        self._legacy_collection = legacy_collection
        self._shared_collection = shared_collection
        self._timeout_sec = first_push_timeout_sec
        self._lock = lock or threading.RLock()
        self._timer_factory = timer_factory
        self._generation = 0
        self._identity: Optional[Identity] = None
        self._unsubscribers: dict[Origin, Unsubscribe] = {}
        self._timers: dict[Origin, Any] = {}
        self._snapshots: dict[Origin, SubscriptionSnapshot] = {
            Origin.LEGACY: SubscriptionSnapshot(),
            Origin.SHARED: SubscriptionSnapshot(),
        }

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    def snapshot(self, origin: Origin) -> SubscriptionSnapshot:
        with self._lock:
            return self._snapshots[origin]

    @property
    def loaded(self) -> bool:
        with self._lock:
            return all(snap.loaded for snap in self._snapshots.values())

    @property
    def error(self) -> Optional[ErrorKind]:
        with self._lock:
            kinds = {snap.error for snap in self._snapshots.values()}
        if ErrorKind.PERMISSION in kinds:
            return ErrorKind.PERMISSION
        if ErrorKind.CONNECTION in kinds:
            return ErrorKind.CONNECTION
        return None

    def location_for(self, origin: Origin, uid: str) -> LocationSpec:
        if origin is Origin.SHARED:
            return membership_location(self._shared_collection, uid)
        return owner_location(self._legacy_collection, uid)

    def start(self, identity: Optional[Identity]) -> None:
        """Subscribe for ``identity``, tearing down any existing subscriptions first."""
        with self._lock:
            self._teardown()
            self._identity = identity
            generation = self._generation
            if identity is None or not identity.uid:
                # Signed out: nothing to wait for.
                self._snapshots = {
                    Origin.LEGACY: SubscriptionSnapshot(loaded=True),
                    Origin.SHARED: SubscriptionSnapshot(loaded=True),
                }
                self._notify()
                return
            self._snapshots = {
                Origin.LEGACY: SubscriptionSnapshot(),
                Origin.SHARED: SubscriptionSnapshot(),
            }
            self._notify()
            for origin in (Origin.LEGACY, Origin.SHARED):
                timer = self._timer_factory(self._timeout_sec, self._on_timeout, args=(origin, generation))
                timer.daemon = True
                self._timers[origin] = timer
                timer.start()
            for origin in (Origin.LEGACY, Origin.SHARED):
                if generation != self._generation:
                    return
                location = self.location_for(origin, identity.uid)
                try:
                    unsubscribe = self._service.subscribe(
                        location,
                        self._snapshot_handler(origin, generation),
                        self._error_handler(origin, generation),
                    )
                except Exception as exc:
                    self._on_error(origin, generation, exc)
                    continue
                if generation == self._generation:
                    self._unsubscribers[origin] = unsubscribe
                else:
                    unsubscribe()

    def stop(self) -> None:
        with self._lock:
            self._teardown()
            self._identity = None

    def _teardown(self) -> None:
        self._generation += 1
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        unsubscribers = list(self._unsubscribers.values())
        self._unsubscribers.clear()
        for unsubscribe in unsubscribers:
            try:
                unsubscribe()
            except Exception as exc:
                _logger.warning("Unsubscribe failed: %s", exc)

    def _snapshot_handler(self, origin: Origin, generation: int) -> Callable[[list], None]:
        def _handler(items: list) -> None:
            self._on_snapshot(origin, generation, items)

        return _handler

    def _error_handler(self, origin: Origin, generation: int) -> Callable[[BaseException], None]:
        def _handler(exc: BaseException) -> None:
            self._on_error(origin, generation, exc)

        return _handler

    def _cancel_timer(self, origin: Origin) -> None:
        timer = self._timers.pop(origin, None)
        if timer is not None:
            timer.cancel()

    def _on_snapshot(self, origin: Origin, generation: int, items: Any) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._cancel_timer(origin)
            tagged = tuple(tag_origin(item, origin) for item in (items or ()))
            self._snapshots[origin] = SubscriptionSnapshot(items=tagged, loaded=True, error=None)
            self._notify()

    def _on_error(self, origin: Origin, generation: int, exc: BaseException) -> None:
        with self._lock:
            if generation != self._generation:
                return
            kind = classify_error(exc)
            _logger.warning("Project subscription error (origin=%s, kind=%s): %s", origin.value, kind.value, exc)
            self._cancel_timer(origin)
            previous = self._snapshots[origin]
            self._snapshots[origin] = SubscriptionSnapshot(items=previous.items, loaded=True, error=kind)
            self._notify()

    def _on_timeout(self, origin: Origin, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timers.pop(origin, None)
            previous = self._snapshots[origin]
            if previous.loaded:
                return
            _logger.info("No first push from %s subscription; marking it loaded", origin.value)
            self._snapshots[origin] = SubscriptionSnapshot(items=previous.items, loaded=True, error=previous.error)
            self._notify()

    def _notify(self) -> None:
        self._on_change(self._snapshots[Origin.LEGACY], self._snapshots[Origin.SHARED])
