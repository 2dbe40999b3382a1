"""Centralised secret / configuration helpers.

All other modules should import ``get_secret`` from here rather than
duplicating the lookup logic.  ``remote_mode_enabled`` is the single place
that decides whether the networked project store is used; it is evaluated
once per process.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable

_logger = logging.getLogger(__name__)

PLACEHOLDER_URLS = {"", "https://xxxxxxxxxxxx.supabase.co"}
PLACEHOLDER_KEYS = {"", "your-anon-public-key", "your-anon-key-here"}

DEFAULT_LEGACY_TABLE = "user_projects"
DEFAULT_SHARED_TABLE = "projects"
DEFAULT_FIRST_PUSH_TIMEOUT_SEC = 5.0
DEFAULT_POLL_INTERVAL_SEC = 3.0
DEFAULT_LOCAL_DB_PATH = "data/project_sync.db"


def _normalize(value: str) -> str:
    """Strip whitespace and surrounding quotes; reject known placeholder strings."""
    v = str(value or "").strip()
    if len(v) >= 2 and v[0] == v[-1] and v[0] in {'"', "'"}:
        v = v[1:-1].strip()
    low = v.lower()
    if low in {"none", "null", ""}:
        return ""
    # Reject any value that looks like an unfilled template placeholder.
    # Covers patterns like PASTE_KEY_HERE, YOUR_API_KEY_HERE, REPLACE_ME, etc.
    if low.startswith(("paste_", "paste-", "your_", "your-", "replace_me", "changeme", "xxx")):
        return ""
    if low.endswith(("_here", "-here", "_key_here", "_token_here", "_id_here")):
        return ""
    return v


def get_secret(name: str, default: str = "") -> str:
    """Return a secret value, searching Streamlit secrets then env vars.

    Checks ``name``, ``name.lower()``, and ``name.upper()`` in that order.
    """
    candidates = list(dict.fromkeys([name, name.lower(), name.upper()]))

    try:
        import streamlit as st  # type: ignore

        if hasattr(st, "secrets"):
            for key in candidates:
                if key in st.secrets:
                    v = _normalize(str(st.secrets[key]))
                    if v:
                        return v
    except Exception:
        # No secrets.toml outside a Streamlit run; fall through to env vars.
        pass

    for key in candidates:
        v = _normalize(os.getenv(key, ""))
        if v:
            return v

    return _normalize(default)


_default_reader = get_secret


def remote_credentials(reader: Callable[[str, str], str] | None = None) -> tuple[str, str]:
    read = reader or get_secret
    return read("SUPABASE_URL", "").strip(), read("SUPABASE_KEY", "").strip()


def remote_is_configured(reader: Callable[[str, str], str] | None = None) -> bool:
    """Return True when valid (non-placeholder) Supabase credentials exist."""
    url, key = remote_credentials(reader)
    return (
        bool(url)
        and url not in PLACEHOLDER_URLS
        and bool(key)
        and key not in PLACEHOLDER_KEYS
    )


@lru_cache(maxsize=1)
def remote_mode_enabled() -> bool:
    """Decide, once per process, whether the networked store is wired."""
    enabled = remote_is_configured()
    _logger.info("Project store mode selected: %s", "remote" if enabled else "local")
    return enabled


@dataclass(frozen=True)
class SyncSettings:
    legacy_table: str = DEFAULT_LEGACY_TABLE
    shared_table: str = DEFAULT_SHARED_TABLE
    first_push_timeout_sec: float = DEFAULT_FIRST_PUSH_TIMEOUT_SEC
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC
    local_db_path: Path = Path(DEFAULT_LOCAL_DB_PATH)
    auto_create_default: bool = False


def _read_seconds(reader: Callable[[str, str], str], name: str, default: float) -> float:
    raw = reader(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _read_flag(reader: Callable[[str, str], str], name: str) -> bool:
    return reader(name, "").strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def resolve_sync_settings(get_secret: Callable[[str, str], str] | None = None) -> SyncSettings:
    """Resolve store settings from secrets or env.

    `get_secret` should have the same signature as ``config.get_secret``.
    """
    reader = get_secret or _default_reader

    return SyncSettings(
        legacy_table=reader("PROJECTS_LEGACY_TABLE", DEFAULT_LEGACY_TABLE).strip() or DEFAULT_LEGACY_TABLE,
        shared_table=reader("PROJECTS_SHARED_TABLE", DEFAULT_SHARED_TABLE).strip() or DEFAULT_SHARED_TABLE,
        first_push_timeout_sec=_read_seconds(
            reader, "PROJECTS_FIRST_PUSH_TIMEOUT_SEC", DEFAULT_FIRST_PUSH_TIMEOUT_SEC
        ),
        poll_interval_sec=_read_seconds(reader, "PROJECTS_POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC),
        local_db_path=Path(reader("PROJECTS_LOCAL_DB_PATH", DEFAULT_LOCAL_DB_PATH).strip() or DEFAULT_LOCAL_DB_PATH),
        auto_create_default=_read_flag(reader, "PROJECTS_AUTO_CREATE_DEFAULT"),
    )
