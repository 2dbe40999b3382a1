from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from project_sync.remote import DocumentService
from project_sync.schema import (
    CREATION_ORIGIN,
    Identity,
    LocationSpec,
    Origin,
    build_new_project,
    next_timestamp,
    parse_timestamp,
)
from project_sync.selection import find_project

_logger = logging.getLogger(__name__)

# Fields callers may never write through ``update``.
PROTECTED_FIELDS = ("id", "origin", "updatedAt")


@dataclass(frozen=True)
class WriteTarget:
    location: LocationSpec
    origin: Origin


def _origin_of(project: Optional[dict]) -> Origin:
    if isinstance(project, dict):
        try:
            return Origin(project.get("origin"))
        except ValueError:
            pass
    return CREATION_ORIGIN


def _later(a: Any, b: Any) -> Any:
    parsed_a, parsed_b = parse_timestamp(a), parse_timestamp(b)
    if parsed_a is None:
        return b
    if parsed_b is None or parsed_a >= parsed_b:
        return a
    return b


class WriteRouter:
    """Send each write to the location its project was read from.

    Remote failures are logged and swallowed: ``create`` returns None and the
    other operations return normally, so a dropped write shows up as stale
    data until the next snapshot rather than as an exception.
    """

    def __init__(
        self,
        service: DocumentService,
        identity_getter: Callable[[], Optional[Identity]],
        lookup: Callable[[Any], Optional[dict]],
        location_for: Callable[[Origin, str], LocationSpec],
        *,
        on_created: Optional[Callable[[str], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._service = service
        self._identity_getter = identity_getter
        self._lookup = lookup
        self._location_for = location_for
        self._on_created = on_created
        self._logger = logger or _logger
        # Last updatedAt this router wrote per id, ahead of the echo.
        self._stamps: dict[Any, str] = {}

    def resolve_target(self, project_id: Any) -> Optional[WriteTarget]:
        identity = self._identity_getter()
        if identity is None or not identity.uid:
            return None
        origin = _origin_of(self._lookup(project_id))
        return WriteTarget(location=self._location_for(origin, identity.uid), origin=origin)

    def create(self, name: str, url: str = "") -> Optional[dict]:
        identity = self._identity_getter()
        if identity is None or not identity.uid:
            return None
        record = build_new_project(name, url, identity)
        location = self._location_for(CREATION_ORIGIN, identity.uid)
        try:
            new_id = self._service.create(location, record)
        except Exception as exc:
            self._logger.error("Create project error: %s", exc)
            return None
        if self._on_created is not None:
            self._on_created(new_id)
        return {"id": new_id, "origin": CREATION_ORIGIN.value, **record}

    def update(self, project_id: Any, fields: dict[str, Any]) -> None:
        if not project_id:
            return
        target = self.resolve_target(project_id)
        if target is None:
            return
        current = self._lookup(project_id)
        seen = current.get("updatedAt") if isinstance(current, dict) else None
        previous = _later(seen, self._stamps.get(project_id))
        payload = {k: v for k, v in (fields or {}).items() if k not in PROTECTED_FIELDS}
        payload["updatedAt"] = self._stamps[project_id] = next_timestamp(previous)
        try:
            self._service.update(target.location, project_id, payload)
        except Exception as exc:
            self._logger.error("Update project error (id=%s, origin=%s): %s", project_id, target.origin.value, exc)

    def delete(self, project_id: Any) -> None:
        if not project_id:
            return
        self._stamps.pop(project_id, None)
        target = self.resolve_target(project_id)
        if target is None:
            return
        try:
            self._service.delete(target.location, project_id)
        except Exception as exc:
            self._logger.error("Delete project error (id=%s, origin=%s): %s", project_id, target.origin.value, exc)

    def rename(self, project_id: Any, name: str) -> None:
        self.update(project_id, {"name": name})

    def prune_stamps(self, projects: Sequence[Any]) -> None:
        """Forget stamps the pushed records have caught up with, or whose record is gone."""
        for project_id, stamp in list(self._stamps.items()):
            current = find_project(projects, project_id)
            seen = parse_timestamp(current.get("updatedAt")) if isinstance(current, dict) else None
            if current is None or (seen is not None and seen >= parse_timestamp(stamp)):
                self._stamps.pop(project_id, None)
