"""Merge the owner and shared snapshots into one ordered project list."""
from __future__ import annotations

from typing import Any, Iterable

from project_sync.schema import parse_timestamp


def record_id(item: Any) -> Any:
    if not isinstance(item, dict):
        return None
    return item.get("id")


def _hashable_id(item: Any) -> Any:
    rid = record_id(item)
    if rid is None:
        return None
    try:
        hash(rid)
    except TypeError:
        return None
    return rid


def _sort_key(item: Any) -> tuple:
    created = parse_timestamp(item.get("createdAt")) if isinstance(item, dict) else None
    tie = str(record_id(item) or "")
    if created is None:
        return (1, 0.0, tie)
    return (0, -created.timestamp(), tie)


def _unique(items: Iterable[Any], seen: set) -> list[Any]:
    kept: list[Any] = []
    for item in items or ():
        rid = _hashable_id(item)
        if rid is None:
            kept.append(item)
            continue
        if rid in seen:
            continue
        seen.add(rid)
        kept.append(item)
    return kept


def merge_snapshots(legacy_items: Iterable[Any], shared_items: Iterable[Any]) -> list[Any]:
    """Return shared items plus legacy items whose id is not shared, newest first.

    A shared record always wins over a legacy record with the same id.
    Items without a usable id or timestamp are kept, never dropped; those
    without a parseable ``createdAt`` sort after every dated item.
    """
    seen: set = set()
    merged = _unique(shared_items, seen)
    merged.extend(_unique(legacy_items, seen))
    return sorted(merged, key=_sort_key)
