"""Project store that keeps everything in the local SQLite key/value table.

Used when no remote backend is configured.  It honours the same contract as
the networked store: ``loading`` is always False and ``error`` always None.
"""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Optional

from project_sync import storage
from project_sync.base import ProjectStore
from project_sync.reconcile import record_id
from project_sync.router import PROTECTED_FIELDS
from project_sync.schema import CREATION_ORIGIN, Identity, StoreState, build_new_project, next_timestamp, tag_origin
from project_sync.selection import derive_active_project, find_project, resolve_active_id

STORAGE_KEY_PREFIX = "aeo-projects"


def _stored_form(item: Any) -> Any:
    if isinstance(item, dict):
        return {k: v for k, v in item.items() if k != "origin"}
    return item


def storage_key_for(identity: Optional[Identity]) -> str:
    uid = identity.uid if identity is not None else ""
    return f"{STORAGE_KEY_PREFIX}-{uid}" if uid else STORAGE_KEY_PREFIX


class LocalProjectStore(ProjectStore):
    def __init__(
        self,
        identity: Optional[Identity] = None,
        db_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self._identity = identity
        self._db_path = db_path
        self._lock = threading.RLock()
        self._key = storage_key_for(identity)
        self._active_key = f"{self._key}-active"
        stored = storage.get_value(self._key, [], db_path)
        # Everything here lives in the owner location, same as a networked create.
        if not isinstance(stored, list):
            stored = []
        self._projects: list = [tag_origin(item, CREATION_ORIGIN) for item in stored]
        self._active_id = storage.get_value(self._active_key, None, db_path)

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def state(self) -> StoreState:
        with self._lock:
            projects = tuple(copy.deepcopy(self._projects))
            active_id = resolve_active_id(self._active_id, projects)
            return StoreState(
                projects=projects,
                active_project=derive_active_project(projects, active_id),
                active_project_id=active_id,
                loading=False,
                error=None,
            )

    def _save(self) -> StoreState:
        storage.set_value(self._key, [_stored_form(p) for p in self._projects], self._db_path)
        storage.set_value(self._active_key, self._active_id, self._db_path)
        state = self.state
        self._emit(state)
        return state

    def set_active_project_id(self, project_id: Any) -> None:
        with self._lock:
            self._active_id = project_id
            self._save()

    def create_project(self, name: str, url: str = "") -> Optional[dict]:
        identity = self._identity or Identity(uid="")
        record = build_new_project(name, url, identity)
        project = tag_origin({"id": str(uuid.uuid4()), **record}, CREATION_ORIGIN)
        with self._lock:
            self._projects = [project, *self._projects]
            self._active_id = project["id"]
            self._save()
        return copy.deepcopy(project)

    def update_project(self, project_id: Any, fields: dict[str, Any]) -> None:
        if not project_id:
            return
        with self._lock:
            current = find_project(self._projects, project_id)
            if current is None:
                return
            changes = {k: copy.deepcopy(v) for k, v in (fields or {}).items() if k not in PROTECTED_FIELDS}
            updated = {**current, **changes}
            updated["updatedAt"] = next_timestamp(current.get("updatedAt"))
            self._projects = [updated if record_id(p) == project_id else p for p in self._projects]
            self._save()

    def delete_project(self, project_id: Any) -> None:
        if not project_id:
            return
        with self._lock:
            self._projects = [p for p in self._projects if record_id(p) != project_id]
            if self._active_id == project_id:
                self._active_id = record_id(self._projects[0]) if self._projects else None
            self._save()
