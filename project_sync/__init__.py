"""Project synchronisation layer for the AEO dashboard."""

from .base import ProjectStore
from .local_store import LocalProjectStore
from .networked import NetworkedProjectStore
from .reconcile import merge_snapshots
from .schema import ErrorKind, Identity, Origin, StoreState
from .store import create_project_store

__all__ = [
    "ProjectStore",
    "LocalProjectStore",
    "NetworkedProjectStore",
    "merge_snapshots",
    "ErrorKind",
    "Identity",
    "Origin",
    "StoreState",
    "create_project_store",
]
