# storage/gsheets.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Dict, Any, List
import datetime as dt
import random
import time
import uuid

import gspread
from gspread.exceptions import APIError, WorksheetNotFound

from .security import hash_password, is_password_hashed, needs_rehash, verify_password


# ----------------------------
# Config
# ----------------------------

@dataclass
class GSheetsConfig:
    spreadsheet_name: str = "BrahmaPath_DB"
    users_ws: str = "users"
    profiles_ws: str = "profiles"
    admin_logs_ws: str = "admin_logs"

    # profiles is provisioned by the operator; a missing sheet means local-only mode
    create_profiles_ws: bool = False

    # Required columns
    # users:
    #   user_id, email, password, created_at, last_login
    #
    # profiles:
    #   id, age, addictions, reason, has_paid, start_date,
    #   last_completed_day, last_completion_time, video_submitted_today, updated_at


USERS_HEADERS = ["user_id", "email", "password", "created_at", "last_login"]
PROFILES_HEADERS = [
    "id",
    "age",
    "addictions",
    "reason",
    "has_paid",
    "start_date",
    "last_completed_day",
    "last_completion_time",
    "video_submitted_today",
    "updated_at",
]
ADMIN_LOGS_HEADERS = ["timestamp", "level", "action", "user_id", "detail"]


class SchemaMissingError(RuntimeError):
    """The expected worksheet is not provisioned in the spreadsheet."""

    def __init__(self, worksheet: str):
        super().__init__(f"worksheet '{worksheet}' not found")
        self.worksheet = worksheet


# ----------------------------
# Utilities
# ----------------------------

def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()

def _norm_email(email: str) -> str:
    return str(email or "").strip().lower()

def _coerce_bool(x: Any, default: bool = False) -> bool:
    if x is None or x == "":
        return default
    s = str(x).strip().lower()
    if s in ("1", "true", "t", "yes", "y"):
        return True
    if s in ("0", "false", "f", "no", "n"):
        return False
    return default


def _is_retryable_api_error(exc: Exception) -> bool:
    if isinstance(exc, APIError):
        code = getattr(getattr(exc, "response", None), "status_code", None)
        if code in (429, 500, 502, 503, 504):
            return True
    text = str(exc).lower()
    return any(k in text for k in ("timeout", "temporarily", "rate limit", "connection reset", "503"))


def _with_retry(op: str, fn, attempts: int = 4, base_delay: float = 0.25):
    last_err: Optional[Exception] = None
    for i in range(max(1, attempts)):
        try:
            return fn()
        except WorksheetNotFound:
            raise
        except Exception as e:
            last_err = e
            if i >= attempts - 1 or not _is_retryable_api_error(e):
                break
            delay = base_delay * (2 ** i) + random.uniform(0.0, 0.15)
            time.sleep(delay)
    raise RuntimeError(f"GSheets operation failed: {op}: {last_err}") from last_err

def _ensure_headers(ws, headers: List[str]):
    """Ensure worksheet has required headers (append missing columns)."""
    existing = _with_retry("row_values(header)", lambda: ws.row_values(1))
    if not existing:
        _with_retry("append_row(header)", lambda: ws.append_row(headers))
        return
    updated = list(existing)
    changed = False
    for h in headers:
        if h not in updated:
            updated.append(h)
            changed = True
    if changed:
        _with_retry("update(header)", lambda: ws.update(f"A1:{_col_letter(len(updated))}1", [updated]))

def _get_all_records(ws) -> List[Dict[str, Any]]:
    # gspread get_all_records() treats first row as header
    return _with_retry("get_all_records", lambda: ws.get_all_records())

def _find_row_index_by_key(ws, key_col: str, key_value: str) -> Optional[int]:
    """
    Returns 1-based row index in sheet where key_col == key_value.
    Requires header row.
    """
    headers = _with_retry("row_values(header)", lambda: ws.row_values(1))
    if not headers:
        return None
    try:
        key_idx = headers.index(key_col) + 1
    except ValueError:
        return None

    col_vals = _with_retry("col_values", lambda: ws.col_values(key_idx))  # includes header at index 0
    for i in range(2, len(col_vals) + 1):  # start from row 2
        if str(col_vals[i - 1]).strip() == str(key_value).strip():
            return i
    return None

def _update_row_dict(ws, row_idx: int, patch: Dict[str, Any]):
    headers = _with_retry("row_values(header)", lambda: ws.row_values(1))
    if not headers:
        raise RuntimeError("Worksheet has no header row.")
    row = _with_retry("row_values(row)", lambda: ws.row_values(row_idx))
    if len(row) < len(headers):
        row += [""] * (len(headers) - len(row))

    header_to_pos = {h: i for i, h in enumerate(headers)}
    for k, v in patch.items():
        if k not in header_to_pos:
            continue
        row[header_to_pos[k]] = "" if v is None else str(v)

    _with_retry("update(row)", lambda: ws.update(f"A{row_idx}:{_col_letter(len(headers))}{row_idx}", [row]))

def _append_row_dict(ws, data: Dict[str, Any]):
    headers = _with_retry("row_values(header)", lambda: ws.row_values(1))
    if not headers:
        raise RuntimeError("Worksheet has no header row.")
    row = ["" for _ in headers]
    header_to_pos = {h: i for i, h in enumerate(headers)}
    for k, v in data.items():
        if k not in header_to_pos:
            continue
        row[header_to_pos[k]] = "" if v is None else str(v)
    _with_retry("append_row", lambda: ws.append_row(row))

def _col_letter(n: int) -> str:
    """1 -> A, 2 -> B ... 27 -> AA"""
    s = ""
    while n > 0:
        n, r = divmod(n - 1, 26)
        s = chr(65 + r) + s
    return s


# ----------------------------
# Main client
# ----------------------------

class BrahmaGSheets:
    def __init__(self, gc: gspread.Client, cfg: Optional[GSheetsConfig] = None):
        self.gc = gc
        self.cfg = cfg or GSheetsConfig()
        self.sh = _with_retry("open(spreadsheet)", lambda: self.gc.open(self.cfg.spreadsheet_name))
        self.users = self._get_or_create_ws(self.cfg.users_ws)
        self.admin_logs = self._get_or_create_ws(self.cfg.admin_logs_ws)
        self._profiles = None

        _ensure_headers(self.users, USERS_HEADERS)
        _ensure_headers(self.admin_logs, ADMIN_LOGS_HEADERS)

    def _get_or_create_ws(self, title: str):
        try:
            return _with_retry(f"worksheet({title})", lambda: self.sh.worksheet(title))
        except WorksheetNotFound:
            return _with_retry(f"add_worksheet({title})", lambda: self.sh.add_worksheet(title=title, rows=1000, cols=30))

    def _profiles_ws(self):
        """
        Looked up lazily on every miss, so a sheet provisioned after startup is picked up.
        Raises SchemaMissingError when absent (unless create_profiles_ws).
        """
        if self._profiles is not None:
            return self._profiles
        title = self.cfg.profiles_ws
        try:
            ws = _with_retry(f"worksheet({title})", lambda: self.sh.worksheet(title))
        except WorksheetNotFound:
            if not self.cfg.create_profiles_ws:
                raise SchemaMissingError(title)
            ws = _with_retry(f"add_worksheet({title})", lambda: self.sh.add_worksheet(title=title, rows=1000, cols=20))
        _ensure_headers(ws, PROFILES_HEADERS)
        self._profiles = ws
        return ws

    # -------- Users (identity) --------

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        rows = _get_all_records(self.users)
        key = _norm_email(email)
        for r in rows:
            if _norm_email(r.get("email", "")) == key:
                return r
        return None

    def create_user(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """Returns the new row, or None if the email is already registered."""
        if self.get_user_by_email(email) is not None:
            return None
        data = {
            "user_id": str(uuid.uuid4()),
            "email": _norm_email(email),
            "password": hash_password(password),
            "created_at": _now_iso(),
            "last_login": "",
        }
        _append_row_dict(self.users, data)
        return data

    def verify_login(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        u = self.get_user_by_email(email)
        if not u:
            return None

        stored = str(u.get("password", ""))
        provided = str(password)

        if is_password_hashed(stored):
            if not verify_password(provided, stored):
                return None
            if needs_rehash(stored):
                self._set_password_hash(u, provided)
            return u

        # Legacy plaintext fallback: allow login once, then migrate to hash.
        if stored and stored == provided:
            self._set_password_hash(u, provided)
            return u

        return None

    def _set_password_hash(self, user: Dict[str, Any], password: str) -> None:
        row_idx = _find_row_index_by_key(self.users, "user_id", str(user.get("user_id", "")))
        if row_idx is not None:
            _update_row_dict(self.users, row_idx, {"password": hash_password(password)})

    def update_last_login(self, user_id: str):
        row_idx = _find_row_index_by_key(self.users, "user_id", user_id)
        if row_idx is None:
            return
        _update_row_dict(self.users, row_idx, {"last_login": _now_iso()})

    # -------- Profiles --------

    def get_profile_row(self, user_id: str) -> Optional[Dict[str, Any]]:
        ws = self._profiles_ws()
        rows = _get_all_records(ws)
        key = str(user_id).strip()
        for r in rows:
            if str(r.get("id", "")).strip() == key:
                return r
        return None

    def upsert_profile_row(self, user_id: str, data: Dict[str, Any]) -> None:
        """Upsert by id. Duplicate rows for the same id are collapsed into the first."""
        ws = self._profiles_ws()
        key = str(user_id).strip()
        records = _get_all_records(ws)
        found_rows: List[int] = []
        for i, r in enumerate(records, start=2):
            if str(r.get("id", "")).strip() == key:
                found_rows.append(i)

        payload = {"id": key, "updated_at": _now_iso()}
        payload.update(data)

        if not found_rows:
            _append_row_dict(ws, payload)
        else:
            _update_row_dict(ws, found_rows[0], payload)
            for idx in sorted(found_rows[1:], reverse=True):
                _with_retry("delete_rows(duplicate_profile)", lambda i=idx: ws.delete_rows(i))

    # -------- Admin logs --------

    def append_admin_log(self, level: str, action: str, user_id: str, detail: str) -> None:
        payload = {
            "timestamp": _now_iso(),
            "level": str(level or "info"),
            "action": str(action or ""),
            "user_id": str(user_id or ""),
            "detail": str(detail or ""),
        }
        try:
            _append_row_dict(self.admin_logs, payload)
        except Exception:
            # Never fail main flow because audit log append failed.
            return


