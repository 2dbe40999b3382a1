"""Entry point for the project store.

``create_project_store`` picks the local or the networked implementation
exactly once, based on whether remote credentials are configured, and the
rest of the application only ever sees the ``ProjectStore`` interface.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from project_sync.base import ProjectStore
from project_sync.config import SyncSettings, remote_mode_enabled, resolve_sync_settings
from project_sync.local_store import LocalProjectStore
from project_sync.networked import NetworkedProjectStore
from project_sync.remote import DocumentService, UnavailableDocumentService
from project_sync.schema import Identity

_logger = logging.getLogger(__name__)


def create_project_store(
    identity: Optional[Identity],
    *,
    remote: Optional[bool] = None,
    service: Optional[DocumentService] = None,
    settings: Optional[SyncSettings] = None,
    timer_factory: Callable[..., Any] = threading.Timer,
    logger: Optional[logging.Logger] = None,
) -> ProjectStore:
    """Build the project store for ``identity``.

    ``remote`` defaults to the process-wide ``remote_mode_enabled()``
    decision.  ``service`` defaults to the Supabase document service when the
    networked store is selected.
    """
    cfg = settings or resolve_sync_settings()
    use_remote = remote_mode_enabled() if remote is None else remote

    if not use_remote:
        return LocalProjectStore(identity, db_path=cfg.local_db_path, logger=logger)

    if service is None:
        from project_sync.supabase_storage import SupabaseDocumentService

        try:
            service = SupabaseDocumentService(poll_interval_sec=cfg.poll_interval_sec)
        except RuntimeError as exc:
            _logger.warning("Remote project store unavailable, reporting connection error: %s", exc)
            service = UnavailableDocumentService(str(exc))
    return NetworkedProjectStore(
        service,
        identity,
        cfg,
        timer_factory=timer_factory,
        logger=logger,
    )
