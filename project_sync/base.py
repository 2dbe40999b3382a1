from __future__ import annotations

import abc
import logging
from typing import Any, Callable, Optional

from project_sync.schema import ErrorKind, StoreState

_logger = logging.getLogger(__name__)

Listener = Callable[[StoreState], None]


class ProjectStore(abc.ABC):
    """The one project interface the rest of the application uses.

    Local and networked implementations share this contract exactly, so
    callers never need to know which one is wired.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or _logger
        self._listeners: list[Listener] = []

    # -- read side -----------------------------------------------------

    @property
    @abc.abstractmethod
    def state(self) -> StoreState: ...

    @property
    def projects(self) -> list[dict]:
        return list(self.state.projects)

    @property
    def active_project(self) -> Optional[dict]:
        return self.state.active_project

    @property
    def active_project_id(self) -> Any:
        return self.state.active_project_id

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def error(self) -> Optional[ErrorKind]:
        return self.state.error

    # -- write side ----------------------------------------------------

    @abc.abstractmethod
    def set_active_project_id(self, project_id: Any) -> None: ...

    @abc.abstractmethod
    def create_project(self, name: str, url: str = "") -> Optional[dict]: ...

    @abc.abstractmethod
    def update_project(self, project_id: Any, fields: dict[str, Any]) -> None: ...

    @abc.abstractmethod
    def delete_project(self, project_id: Any) -> None: ...

    def rename_project(self, project_id: Any, name: str) -> None:
        self.update_project(project_id, {"name": name})

    def toggle_check_item(self, item_key: str) -> None:
        """Flip one entry of the active project's ``checked`` map."""
        project = self.active_project
        if not project:
            return
        current = project.get("checked")
        checked = dict(current) if isinstance(current, dict) else {}
        checked[item_key] = not checked.get(item_key)
        self.update_project(project.get("id"), {"checked": checked})

    def close(self) -> None:
        self._listeners.clear()

    # -- change notification -------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for state changes; returns a remover."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _emit(self, state: StoreState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                self._logger.exception("Project store listener failed")
