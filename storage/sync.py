# storage/sync.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional
import datetime as dt
import json
import logging

from brahmapath.models import ProfilePatch, UserProfile, format_timestamp, parse_timestamp, utc_now

from .gsheets import SchemaMissingError, _coerce_bool

logger = logging.getLogger(__name__)

# SyncResult.status values
OK = "ok"
SKIPPED = "skipped"
NOT_FOUND = "not_found"
SCHEMA_MISSING = "schema_missing"
ERROR = "error"


@dataclass
class SyncResult:
    op: str  # push | pull
    status: str
    user_id: str = ""
    detail: str = ""
    at: dt.datetime = field(default_factory=utc_now)

    @property
    def ok(self) -> bool:
        return self.status in (OK, SKIPPED, NOT_FOUND)


# ----------------------------
# Row mapping
# ----------------------------

def profile_to_row(profile: UserProfile) -> Dict[str, Any]:
    """UserProfile -> profiles sheet columns. None becomes the empty cell."""
    return {
        "id": profile.id,
        "age": profile.age,
        "addictions": json.dumps(list(profile.addictions or []), ensure_ascii=False),
        "reason": profile.reason,
        "has_paid": str(bool(profile.has_paid)).lower(),
        "start_date": format_timestamp(profile.start_date),
        "last_completed_day": int(profile.last_completed_day),
        "last_completion_time": format_timestamp(profile.last_completion_time),
        "video_submitted_today": str(bool(profile.video_submitted_today)).lower(),
    }


def _parse_addictions(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [str(x) for x in raw]
    s = str(raw or "").strip()
    if not s:
        return []
    try:
        arr = json.loads(s)
    except ValueError:
        # tolerate hand-edited comma separated cells
        return [x.strip() for x in s.split(",") if x.strip()]
    if not isinstance(arr, list):
        return []
    return [str(x) for x in arr if x is not None]


def _parse_optional_int(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return None


def row_to_patch(user_id: str, row: Dict[str, Any]) -> ProfilePatch:
    """Remote row -> patch over the mirrored fields; isAuthenticated forced true."""
    reason = row.get("reason", "")
    return ProfilePatch(
        id=str(user_id),
        age=_parse_optional_int(row.get("age")),
        addictions=_parse_addictions(row.get("addictions")),
        reason=str(reason) if reason not in (None, "") else None,
        is_authenticated=True,
        has_paid=_coerce_bool(row.get("has_paid"), False),
        start_date=parse_timestamp(row.get("start_date")),
        last_completed_day=max(0, _parse_optional_int(row.get("last_completed_day")) or 0),
        last_completion_time=parse_timestamp(row.get("last_completion_time")),
        video_submitted_today=_coerce_bool(row.get("video_submitted_today"), False),
    )


# ----------------------------
# Adapter
# ----------------------------

class RemoteSync:
    """
    Best-effort mirror of the local profile to the remote profiles sheet.
    Nothing here raises into the caller; every call records a SyncResult.
    """
    def __init__(self, remote, profile_store, history_size: int = 20):
        self.remote = remote
        self.store = profile_store
        self.last_result: Optional[SyncResult] = None
        self.history: Deque[SyncResult] = deque(maxlen=max(1, int(history_size)))
        self._listeners: List[Callable[[SyncResult], None]] = []

    def add_listener(self, fn: Callable[[SyncResult], None]) -> Callable[[], None]:
        self._listeners.append(fn)

        def _remove() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)

        return _remove

    def _record(self, result: SyncResult) -> SyncResult:
        self.last_result = result
        self.history.append(result)
        for fn in list(self._listeners):
            try:
                fn(result)
            except Exception:
                logger.exception("sync listener failed")
        return result

    def _audit_error(self, action: str, user_id: str, err: Exception) -> None:
        append = getattr(self.remote, "append_admin_log", None)
        if append is None:
            return
        try:
            append("error", action, user_id, str(err))
        except Exception:
            return

    def push(self, profile: UserProfile) -> SyncResult:
        if not profile.id:
            return self._record(SyncResult("push", SKIPPED, detail="no id"))
        user_id = str(profile.id)
        if self.remote is None:
            return self._record(SyncResult("push", SKIPPED, user_id, "offline"))
        try:
            self.remote.upsert_profile_row(user_id, profile_to_row(profile))
        except SchemaMissingError as e:
            logger.warning("profile sync skipped: '%s' sheet missing, data saved locally only", e.worksheet)
            return self._record(SyncResult("push", SCHEMA_MISSING, user_id, str(e)))
        except Exception as e:
            logger.error("profile sync failed for %s: %s", user_id, e)
            self._audit_error("push_profile", user_id, e)
            return self._record(SyncResult("push", ERROR, user_id, str(e)))
        logger.info("profile synced for %s", user_id)
        return self._record(SyncResult("push", OK, user_id))

    def pull(self, user_id: str) -> Optional[UserProfile]:
        """
        Remote values overlay a freshly loaded local profile.
        None for a missing row, a missing sheet, or any remote failure.
        """
        user_id = str(user_id)
        if self.remote is None:
            self._record(SyncResult("pull", SKIPPED, user_id, "offline"))
            return None
        try:
            row = self.remote.get_profile_row(user_id)
        except SchemaMissingError as e:
            logger.warning("profile load skipped: '%s' sheet missing, using local data", e.worksheet)
            self._record(SyncResult("pull", SCHEMA_MISSING, user_id, str(e)))
            return None
        except Exception as e:
            logger.error("profile load failed for %s: %s", user_id, e)
            self._audit_error("pull_profile", user_id, e)
            self._record(SyncResult("pull", ERROR, user_id, str(e)))
            return None

        if not row:
            self._record(SyncResult("pull", NOT_FOUND, user_id))
            return None

        local = self.store.get()
        merged = row_to_patch(user_id, row).apply(local)
        self._record(SyncResult("pull", OK, user_id))
        return merged
