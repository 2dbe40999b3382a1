from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Origin(str, Enum):
    LEGACY = "legacy"
    SHARED = "shared"


# Brand-new records always land in the owner collection.
CREATION_ORIGIN = Origin.LEGACY


class ErrorKind(str, Enum):
    PERMISSION = "permission"
    CONNECTION = "connection"


_PERMISSION_CODES = {"42501", "PGRST301", "PGRST302", "401", "403", "permission-denied"}
_PERMISSION_MARKERS = ("permission denied", "permission-denied", "row-level security", "not authorized")


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a remote failure onto the two error kinds the store reports."""
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION
    for attr in ("code", "status", "status_code"):
        value = getattr(exc, attr, None)
        if value is not None and str(value) in _PERMISSION_CODES:
            return ErrorKind.PERMISSION
    message = str(getattr(exc, "message", "") or exc).lower()
    if any(marker in message for marker in _PERMISSION_MARKERS):
        return ErrorKind.PERMISSION
    return ErrorKind.CONNECTION


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str = ""
    display_name: str = ""


@dataclass(frozen=True)
class LocationSpec:
    """A remote collection plus the filter that scopes it to one identity."""

    collection: str
    owner_id: Optional[str] = None
    member_id: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionSnapshot:
    items: tuple = ()
    loaded: bool = False
    error: Optional[ErrorKind] = None


class Member(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uid: str
    email: str = ""
    display_name: str = Field("", alias="displayName")
    role: str = "viewer"
    added_at: str = Field(alias="addedAt")

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        role = (value or "").strip().lower()
        if not role:
            raise ValueError("role must be a non-empty string")
        return role

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


DEFAULT_PROJECT_NAME = "My First Project"

DEFAULT_PROJECT_DATA: dict[str, Any] = {
    "name": DEFAULT_PROJECT_NAME,
    "url": "",
    "webflowSiteId": "",
    "checked": {},
    "verifications": {},
    "assignments": {},
    "comments": {},
    "notifications": {},
    "analyzerResults": None,
    "analyzerFixes": {},
    "contentHistory": [],
    "schemaHistory": [],
    "queryTracker": [],
    "monitorHistory": [],
    "lastMonitorRun": None,
    "metricsHistory": [],
    "lastMetricsRun": None,
    "notes": "",
    "competitors": [],
    "competitorAnalysis": None,
    "lastCompetitorRun": None,
    "questionnaire": {
        "industry": None,
        "industryOther": "",
        "region": None,
        "audience": None,
        "language": "en",
        "targetEngines": [],
        "primaryGoal": None,
        "maturity": None,
        "contentType": None,
        "hasSchema": None,
        "updateCadence": None,
        "completedAt": None,
    },
    "settings": {
        "monitoringEnabled": False,
        "monitoringInterval": "7d",
        "notifyOnScoreChange": False,
        "notifyThreshold": 10,
        "digestEnabled": False,
        "digestInterval": "weekly",
        "digestEmail": "",
        "digestIncludeMetrics": True,
        "digestIncludeAlerts": True,
        "digestIncludeRecommendations": True,
        "lastDigestSent": None,
    },
}

# In-memory only keys; never written back to a store.
LOCAL_ONLY_FIELDS = ("id", "origin")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string, datetime or epoch-milliseconds number.

    Returns None for anything unparseable; never raises.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def next_timestamp(previous: Any = None) -> str:
    """Current UTC time, nudged past ``previous`` if the clock has not moved."""
    now = datetime.now(timezone.utc)
    last = parse_timestamp(previous)
    if last is not None and now <= last:
        now = last + timedelta(microseconds=1)
    return now.astimezone(timezone.utc).isoformat(timespec="microseconds")


def build_new_project(name: str, url: str, identity: Identity, now: Optional[str] = None) -> dict[str, Any]:
    """Return a fresh project document with the full default scaffold."""
    stamp = now or utc_now_iso()
    creator = Member(
        uid=identity.uid,
        email=identity.email or "",
        display_name=identity.display_name or "",
        role="admin",
        added_at=stamp,
    )
    record = copy.deepcopy(DEFAULT_PROJECT_DATA)
    record.update(
        {
            "name": name,
            "url": url or "",
            "ownerId": identity.uid,
            "memberIds": [identity.uid],
            "members": [creator.to_record()],
            "invitations": [],
            "createdAt": stamp,
            "updatedAt": stamp,
        }
    )
    return record


def strip_local_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in LOCAL_ONLY_FIELDS}


def tag_origin(item: Any, origin: Origin) -> Any:
    if not isinstance(item, dict):
        return item
    tagged = dict(item)
    tagged["origin"] = origin.value
    return tagged


@dataclass(frozen=True)
class StoreState:
    projects: tuple = ()
    active_project: Optional[dict] = None
    active_project_id: Optional[str] = None
    loading: bool = False
    error: Optional[ErrorKind] = None
