# brahmapath/models.py
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional
import datetime as dt


PROGRAM_DAYS = 108
CYCLE_HOURS = 24


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def parse_timestamp(v: Any) -> Optional[dt.datetime]:
    """
    Accepts ISO-8601 strings or legacy epoch milliseconds.
    Returns a tz-aware UTC datetime, or None for empty / unparsable input.
    """
    if v is None or v == "" or isinstance(v, bool):
        return None
    if isinstance(v, dt.datetime):
        ts = v
    elif isinstance(v, (int, float)):
        try:
            ts = dt.datetime.fromtimestamp(float(v) / 1000.0, tz=dt.timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        s = str(v).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            ts = dt.datetime.fromisoformat(s)
        except ValueError:
            return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt.timezone.utc)
    return ts.astimezone(dt.timezone.utc)


def format_timestamp(ts: Optional[dt.datetime]) -> Optional[str]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt.timezone.utc)
    return ts.astimezone(dt.timezone.utc).isoformat()


# ----------------------------
# Profile
# ----------------------------

@dataclass
class UserProfile:
    """
    Device-local view of a user's progress.
    - id is set once a remote identity is bound.
    - last_completed_day counts successful check-ins; program day = last_completed_day + 1.
    """
    id: Optional[str] = None
    name: Optional[str] = None
    age: Optional[int] = None
    reason: Optional[str] = None
    email: Optional[str] = None
    addictions: List[str] = field(default_factory=list)

    is_authenticated: bool = False
    has_paid: bool = False
    start_date: Optional[dt.datetime] = None

    last_completed_day: int = 0
    last_completion_time: Optional[dt.datetime] = None
    video_submitted_today: bool = False

    @property
    def program_day(self) -> int:
        return self.last_completed_day + 1


def initial_profile() -> UserProfile:
    return UserProfile()


# local JSON keys follow the device format (camelCase)
_LOCAL_KEYS: Dict[str, str] = {
    "id": "id",
    "name": "name",
    "age": "age",
    "reason": "reason",
    "email": "email",
    "addictions": "addictions",
    "is_authenticated": "isAuthenticated",
    "has_paid": "hasPaid",
    "start_date": "startDate",
    "last_completed_day": "lastCompletedDay",
    "last_completion_time": "lastCompletionTime",
    "video_submitted_today": "videoSubmittedToday",
}

_TIMESTAMP_FIELDS = ("start_date", "last_completion_time")


def profile_to_dict(p: UserProfile) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(UserProfile):
        v = getattr(p, f.name)
        if f.name in _TIMESTAMP_FIELDS:
            v = format_timestamp(v)
        elif f.name == "addictions":
            v = list(v or [])
        out[_LOCAL_KEYS[f.name]] = v
    return out


def _coerce_int(x: Any, default: int) -> int:
    try:
        if x is None or x == "" or isinstance(x, bool):
            return default
        return int(float(x))
    except (TypeError, ValueError):
        return default


def _optional_int(x: Any) -> Optional[int]:
    if x is None or x == "":
        return None
    try:
        return int(float(x))
    except (TypeError, ValueError):
        return None


def _optional_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    return str(x)


def _str_list(x: Any) -> List[str]:
    if not isinstance(x, (list, tuple)):
        return []
    return [str(v) for v in x if v is not None]


def profile_from_dict(d: Dict[str, Any]) -> UserProfile:
    """Missing keys take initial values; unknown keys are ignored."""
    def g(name: str) -> Any:
        return d.get(_LOCAL_KEYS[name])

    base = initial_profile()
    return UserProfile(
        id=_optional_str(g("id")) or None,
        name=_optional_str(g("name")),
        age=_optional_int(g("age")),
        reason=_optional_str(g("reason")),
        email=_optional_str(g("email")),
        addictions=_str_list(g("addictions")),
        is_authenticated=bool(g("is_authenticated") or False),
        has_paid=bool(g("has_paid") or False),
        start_date=parse_timestamp(g("start_date")),
        last_completed_day=max(0, _coerce_int(g("last_completed_day"), base.last_completed_day)),
        last_completion_time=parse_timestamp(g("last_completion_time")),
        video_submitted_today=bool(g("video_submitted_today") or False),
    )


# ----------------------------
# Partial update
# ----------------------------

class _Unset:
    _instance: Optional["_Unset"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class ProfilePatch:
    """
    Shallow update over UserProfile.
    Only fields that are set are applied; each replaces the prior value entirely
    (None and [] included).
    """
    id: Any = UNSET
    name: Any = UNSET
    age: Any = UNSET
    reason: Any = UNSET
    email: Any = UNSET
    addictions: Any = UNSET
    is_authenticated: Any = UNSET
    has_paid: Any = UNSET
    start_date: Any = UNSET
    last_completed_day: Any = UNSET
    last_completion_time: Any = UNSET
    video_submitted_today: Any = UNSET

    def changes(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}

    def is_empty(self) -> bool:
        return not self.changes()

    def apply(self, profile: UserProfile) -> UserProfile:
        ch = self.changes()
        if "addictions" in ch and ch["addictions"] is not None:
            ch["addictions"] = list(ch["addictions"])
        return replace(profile, **ch)

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "ProfilePatch":
        return cls(**{f.name: getattr(profile, f.name) for f in fields(UserProfile)})


# ----------------------------
# Journal
# ----------------------------

@dataclass
class JournalAnswer:
    prompt: str
    answer: str


@dataclass
class JournalEntry:
    day: int
    date: dt.datetime
    answers: List[JournalAnswer] = field(default_factory=list)


def journal_entry_to_dict(e: JournalEntry) -> Dict[str, Any]:
    return {
        "day": int(e.day),
        "date": format_timestamp(e.date),
        "answers": [{"prompt": a.prompt, "answer": a.answer} for a in e.answers],
    }


def journal_entry_from_dict(d: Any) -> Optional[JournalEntry]:
    if not isinstance(d, dict):
        return None
    day = _optional_int(d.get("day"))
    date = parse_timestamp(d.get("date"))
    if day is None or date is None:
        return None
    answers: List[JournalAnswer] = []
    raw = d.get("answers", [])
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            answers.append(JournalAnswer(prompt=str(item.get("prompt", "")), answer=str(item.get("answer", ""))))
    return JournalEntry(day=day, date=date, answers=answers)
