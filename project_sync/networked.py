from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Optional

from project_sync.base import ProjectStore
from project_sync.config import SyncSettings
from project_sync.reconcile import merge_snapshots
from project_sync.remote import DocumentService
from project_sync.router import WriteRouter
from project_sync.schema import DEFAULT_PROJECT_NAME, Identity, Origin, StoreState, SubscriptionSnapshot
from project_sync.selection import ActiveSelection, derive_active_project, find_project
from project_sync.subscriptions import SubscriptionManager


class NetworkedProjectStore(ProjectStore):
    """Project store backed by the owner and shared remote collections.

    Every push from either subscription recomputes the merged list and the
    active pointer under one lock, then notifies listeners.  Writes never
    touch the merged list directly; they go through the ``WriteRouter`` and
    show up with the next push.
    """

    def __init__(
        self,
        service: DocumentService,
        identity: Optional[Identity] = None,
        settings: Optional[SyncSettings] = None,
        *,
        timer_factory: Callable[..., Any] = threading.Timer,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self._settings = settings or SyncSettings()
        self._lock = threading.RLock()
        self._selection = ActiveSelection()
        self._state = StoreState(loading=True)
        self._timer_factory = timer_factory
        self._pending_timer: Any = None
        # uid the default project was last scheduled for.
        self._auto_created_uid: Optional[str] = None
        self._subscriptions = SubscriptionManager(
            service,
            self._on_snapshots,
            legacy_collection=self._settings.legacy_table,
            shared_collection=self._settings.shared_table,
            first_push_timeout_sec=self._settings.first_push_timeout_sec,
            lock=self._lock,
            timer_factory=timer_factory,
        )
        self._router = WriteRouter(
            service,
            lambda: self._subscriptions.identity,
            self._lookup,
            self._subscriptions.location_for,
            on_created=self._on_created,
            logger=self._logger,
        )
        self.set_identity(identity)

    @property
    def state(self) -> StoreState:
        with self._lock:
            return self._state

    @property
    def router(self) -> WriteRouter:
        return self._router

    @property
    def identity(self) -> Optional[Identity]:
        return self._subscriptions.identity

    def set_identity(self, identity: Optional[Identity]) -> None:
        """Re-subscribe for a new user (or sign-out when ``identity`` is None)."""
        with self._lock:
            self._cancel_pending_timer()
            self._selection.clear()
            self._subscriptions.start(identity)

    def close(self) -> None:
        with self._lock:
            self._cancel_pending_timer()
            self._subscriptions.stop()
            self._selection.clear()
            self._state = StoreState()
        super().close()

    def _lookup(self, project_id: Any) -> Optional[dict]:
        with self._lock:
            return find_project(self._state.projects, project_id)

    def _recompute(self, legacy: SubscriptionSnapshot, shared: SubscriptionSnapshot) -> None:
        # Consumers get their own copies; snapshots stay read-only.
        projects = tuple(copy.deepcopy(merge_snapshots(legacy.items, shared.items)))
        self._router.prune_stamps(projects)
        if legacy.error is not None:
            # New records land in the owner collection; their echo cannot arrive.
            self._selection.drop_pending()
        active_id = self._selection.resolve(projects)
        self._state = StoreState(
            projects=projects,
            active_project=derive_active_project(projects, active_id),
            active_project_id=active_id,
            loading=not (legacy.loaded and shared.loaded),
            error=self._subscriptions.error,
        )
        self._emit(self._state)

    def _on_snapshots(self, legacy: SubscriptionSnapshot, shared: SubscriptionSnapshot) -> None:
        self._recompute(legacy, shared)
        self._maybe_auto_create()

    def _refresh(self) -> None:
        self._recompute(self._subscriptions.snapshot(Origin.LEGACY), self._subscriptions.snapshot(Origin.SHARED))

    def _cancel_pending_timer(self) -> None:
        if self._pending_timer is not None:
            self._pending_timer.cancel()
            self._pending_timer = None

    def _on_created(self, project_id: str) -> None:
        with self._lock:
            self._cancel_pending_timer()
            self._selection.expect(project_id)
            timer = self._timer_factory(
                self._settings.first_push_timeout_sec, self._on_pending_timeout, args=(project_id,)
            )
            timer.daemon = True
            self._pending_timer = timer
            timer.start()
            self._refresh()

    def _on_pending_timeout(self, project_id: str) -> None:
        with self._lock:
            if self._selection.drop_pending(project_id):
                self._logger.warning("Created project %s never arrived; releasing the selection", project_id)
                self._refresh()

    def _maybe_auto_create(self) -> None:
        """Schedule the default project; the insert itself runs off the lock."""
        if not self._settings.auto_create_default:
            return
        with self._lock:
            identity = self._subscriptions.identity
            state = self._state
            if identity is None or not identity.uid or state.loading or state.projects or state.error:
                return
            if identity.uid == self._auto_created_uid:
                return
            self._auto_created_uid = identity.uid
            runner = self._timer_factory(0, self._run_auto_create, args=(identity.uid,))
            runner.daemon = True
            runner.start()

    def _run_auto_create(self, uid: str) -> None:
        with self._lock:
            identity = self._subscriptions.identity
            if identity is None or identity.uid != uid or self._state.projects:
                return
        self.create_project(DEFAULT_PROJECT_NAME, "")

    # -- write side ----------------------------------------------------

    def set_active_project_id(self, project_id: Any) -> None:
        with self._lock:
            self._selection.set(project_id)
            self._refresh()

    def create_project(self, name: str, url: str = "") -> Optional[dict]:
        return self._router.create(name, url)

    def update_project(self, project_id: Any, fields: dict[str, Any]) -> None:
        self._router.update(project_id, fields)

    def delete_project(self, project_id: Any) -> None:
        self._router.delete(project_id)

    def rename_project(self, project_id: Any, name: str) -> None:
        self._router.rename(project_id, name)
