"""Supabase-backed document service for project records.

Provides a thin wrapper around the Supabase Python client that satisfies the
``DocumentService`` protocol used by the networked project store.  Live
subscriptions are implemented as background polling threads that push the
full result set whenever it changes.

Tables expected in Supabase Database
--------------------------------------
  user_projects   per-owner projects (legacy location)
  projects        shared / team projects filtered by membership

Both tables share one shape::

  id          text primary key
  owner_id    text not null
  member_ids  text[] not null default '{}'
  data        jsonb not null
  created_at  timestamptz not null default now()
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Optional

from project_sync.config import DEFAULT_POLL_INTERVAL_SEC, remote_credentials, remote_is_configured
from project_sync.remote import ErrorCallback, SnapshotCallback, Unsubscribe
from project_sync.schema import ErrorKind, LocationSpec, classify_error, strip_local_fields

_logger = logging.getLogger(__name__)

ROW_COLUMNS = "id,owner_id,member_ids,data"

# Module-level cached client (one per Python process / Streamlit session).
_client = None


def is_configured() -> bool:
    """Return True when valid (non-placeholder) Supabase credentials exist."""
    return remote_is_configured()


def get_client():
    """Return a cached Supabase client, or None if not configured."""
    global _client
    if _client is not None:
        return _client
    if not is_configured():
        return None
    url, key = remote_credentials()
    try:
        from supabase import create_client  # type: ignore

        _client = create_client(url, key)
        return _client
    except Exception as exc:
        _logger.warning("Could not create Supabase client: %s", exc)
        return None


def _scoped(query, location: LocationSpec):
    if location.owner_id is not None:
        query = query.eq("owner_id", location.owner_id)
    if location.member_id is not None:
        query = query.contains("member_ids", [location.member_id])
    return query


def row_to_record(row: Any) -> Any:
    """Flatten a table row into the project document the store works with."""
    if not isinstance(row, dict):
        return row
    data = row.get("data")
    record = dict(data) if isinstance(data, dict) else {}
    record["id"] = row.get("id")
    return record


def fetch_records(client, location: LocationSpec) -> list:
    query = _scoped(client.table(location.collection).select(ROW_COLUMNS), location)
    resp = query.execute()
    return [row_to_record(row) for row in (resp.data or [])]


class _Poller(threading.Thread):
    def __init__(
        self,
        client,
        location: LocationSpec,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        interval_sec: float,
    ) -> None:
        super().__init__(name=f"project-sync:{location.collection}", daemon=True)
        self._client = client
        self._location = location
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._interval_sec = interval_sec
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        last: Optional[list] = None
        while not self._stop_event.is_set():
            try:
                records = fetch_records(self._client, self._location)
            except Exception as exc:
                if self._stop_event.is_set():
                    return
                # Force a push on recovery so the consumer can clear the error.
                last = None
                self._on_error(exc)
                if classify_error(exc) is ErrorKind.PERMISSION:
                    # Access problems need reconfiguration; polling again will not help.
                    return
            else:
                if self._stop_event.is_set():
                    return
                if records != last:
                    last = records
                    self._on_snapshot(list(records))
            self._stop_event.wait(self._interval_sec)


class SupabaseDocumentService:
    def __init__(self, client=None, poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC) -> None:
        self._client = client if client is not None else get_client()
        if self._client is None:
            raise RuntimeError("Supabase credentials are not configured (SUPABASE_URL + SUPABASE_KEY required).")
        self._poll_interval_sec = poll_interval_sec

    def subscribe(
        self,
        location: LocationSpec,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        poller = _Poller(self._client, location, on_snapshot, on_error, self._poll_interval_sec)
        poller.start()
        return poller.stop

    def create(self, location: LocationSpec, record: dict[str, Any]) -> str:
        record_id = str(record.get("id") or uuid.uuid4())
        data = strip_local_fields(record)
        self._client.table(location.collection).insert(
            {
                "id": record_id,
                "owner_id": data.get("ownerId") or location.owner_id,
                "member_ids": list(data.get("memberIds") or []),
                "data": data,
            }
        ).execute()
        return record_id

    def update(self, location: LocationSpec, record_id: str, fields: dict[str, Any]) -> None:
        table = self._client.table(location.collection)
        resp = _scoped(table.select("data").eq("id", record_id), location).execute()
        rows = resp.data or []
        if not rows:
            raise LookupError(f"Project {record_id} not found in {location.collection}")
        current = rows[0].get("data")
        merged = dict(current) if isinstance(current, dict) else {}
        merged.update(strip_local_fields(fields))
        row: dict[str, Any] = {"data": merged}
        if "ownerId" in fields:
            row["owner_id"] = fields["ownerId"]
        if "memberIds" in fields:
            row["member_ids"] = list(fields["memberIds"] or [])
        _scoped(table.update(row).eq("id", record_id), location).execute()

    def delete(self, location: LocationSpec, record_id: str) -> None:
        table = self._client.table(location.collection)
        _scoped(table.delete().eq("id", record_id), location).execute()
