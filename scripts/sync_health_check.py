"""Diagnostic CLI for checking the project store with the current configuration.

Usage:
  python scripts/sync_health_check.py <uid>
"""
from __future__ import annotations

import sys
import threading

from project_sync.config import remote_mode_enabled, resolve_sync_settings
from project_sync.schema import Identity
from project_sync.store import create_project_store


def main(argv: list[str]) -> int:
    if len(argv) < 2 or not argv[1].strip():
        print("Usage: python scripts/sync_health_check.py <uid>")
        return 1

    settings = resolve_sync_settings()
    loaded = threading.Event()
    try:
        store = create_project_store(Identity(uid=argv[1].strip()), settings=settings)
    except Exception as exc:  # noqa: BLE001
        print(f"Project store could not be created: {exc}")
        return 1

    remove = store.add_listener(lambda state: loaded.set() if not state.loading else None)
    if not store.loading:
        loaded.set()
    # The first-push timeout guarantees loading ends; allow a little slack.
    loaded.wait(settings.first_push_timeout_sec + 1.0)
    remove()

    print(f"Mode: {'remote' if remote_mode_enabled() else 'local'}")
    print(f"Loading: {store.loading}")
    error = store.error
    print(f"Error: {error.value if error else 'none'}")
    print(f"Projects: {len(store.projects)}")
    active = store.active_project
    print(f"Active project: {active.get('name') if active else 'none'}")
    store.close()

    if error is not None:
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
