from __future__ import annotations

from typing import Any, Optional, Sequence

from project_sync.reconcile import record_id


def find_project(projects: Sequence[Any], project_id: Any) -> Optional[dict]:
    if project_id is None:
        return None
    for project in projects:
        if record_id(project) == project_id:
            return project
    return None


def first_project_id(projects: Sequence[Any]) -> Any:
    return record_id(projects[0]) if projects else None


def resolve_active_id(current_id: Any, projects: Sequence[Any]) -> Any:
    """Re-derive the active pointer after the project list changed.

    An empty list clears the pointer. A pointer that still resolves is left
    untouched. A missing or stale pointer snaps to the first (newest) project.
    """
    if not projects:
        return None
    if current_id is not None and find_project(projects, current_id) is not None:
        return current_id
    return first_project_id(projects)


def derive_active_project(projects: Sequence[Any], active_id: Any) -> Optional[dict]:
    found = find_project(projects, active_id)
    if found is not None:
        return found
    return projects[0] if projects else None


class ActiveSelection:
    """Holds the active project pointer for one store.

    ``expect(project_id)`` records a project that was just created and whose
    echo has not arrived yet; the pointer stays on it until it shows up in a
    merged list, the list becomes empty, or the owner calls ``drop_pending``.
    Then normal resolution resumes.
    """

    def __init__(self, active_id: Any = None) -> None:
        self.active_id = active_id
        self.pending_id: Any = None

    def set(self, project_id: Any) -> None:
        self.active_id = project_id
        self.pending_id = None

    def expect(self, project_id: Any) -> None:
        self.active_id = project_id
        self.pending_id = project_id

    def clear(self) -> None:
        self.active_id = None
        self.pending_id = None

    def drop_pending(self, project_id: Any = None) -> bool:
        """Give up waiting for an echo; returns True if something was dropped.

        With ``project_id`` only that pending id is dropped, so a stale
        timer cannot cancel a newer create.
        """
        if self.pending_id is None or (project_id is not None and project_id != self.pending_id):
            return False
        self.pending_id = None
        return True

    def resolve(self, projects: Sequence[Any]) -> Any:
        if not projects:
            self.pending_id = None
        if self.pending_id is not None:
            if find_project(projects, self.pending_id) is not None:
                self.active_id = self.pending_id
                self.pending_id = None
                return self.active_id
            if self.active_id == self.pending_id:
                return self.active_id
            self.pending_id = None
        self.active_id = resolve_active_id(self.active_id, projects)
        return self.active_id
