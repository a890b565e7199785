from __future__ import annotations

import datetime as dt
import json
import unittest

from brahmapath.models import UserProfile
from storage.gsheets import SchemaMissingError
from storage.local_kv import MemoryKV
from storage.profile_store import ProfileStore
from storage.sync import (
    ERROR,
    NOT_FOUND,
    OK,
    SCHEMA_MISSING,
    SKIPPED,
    RemoteSync,
    profile_to_row,
    row_to_patch,
)

T0 = dt.datetime(2026, 2, 15, 8, 0, tzinfo=dt.timezone.utc)


class FakeRemote:
    def __init__(self, rows=None, missing=False, fail=None):
        self.rows = dict(rows or {})
        self.missing = missing
        self.fail = fail
        self.upserts = []
        self.admin_logs = []

    def _check(self):
        if self.missing:
            raise SchemaMissingError("profiles")
        if self.fail is not None:
            raise self.fail

    def get_profile_row(self, user_id):
        self._check()
        return self.rows.get(user_id)

    def upsert_profile_row(self, user_id, data):
        self._check()
        self.upserts.append((user_id, dict(data)))
        self.rows[user_id] = dict(data)

    def append_admin_log(self, level, action, user_id, detail):
        self.admin_logs.append((level, action, user_id, detail))


class RowMappingTests(unittest.TestCase):
    def test_profile_to_row_uses_wire_formats(self):
        row = profile_to_row(UserProfile(
            id="u1",
            age=22,
            addictions=["smoking"],
            has_paid=True,
            start_date=T0,
            last_completed_day=3,
            video_submitted_today=False,
        ))
        self.assertEqual(row["id"], "u1")
        self.assertEqual(json.loads(row["addictions"]), ["smoking"])
        self.assertEqual(row["has_paid"], "true")
        self.assertEqual(row["start_date"], T0.isoformat())
        self.assertIsNone(row["last_completion_time"])
        self.assertEqual(row["video_submitted_today"], "false")
        self.assertEqual(row["last_completed_day"], 3)

    def test_row_to_patch_accepts_sheet_cells(self):
        patch = row_to_patch("u1", {
            "age": 22,
            "addictions": "smoking, drinking",
            "reason": "",
            "has_paid": "TRUE",
            "start_date": "2026-02-15T08:00:00Z",
            "last_completed_day": "",
            "last_completion_time": "",
            "video_submitted_today": "false",
        })
        p = patch.apply(UserProfile())
        self.assertEqual(p.id, "u1")
        self.assertTrue(p.is_authenticated)
        self.assertEqual(p.addictions, ["smoking", "drinking"])
        self.assertIsNone(p.reason)
        self.assertTrue(p.has_paid)
        self.assertEqual(p.start_date, T0)
        self.assertEqual(p.last_completed_day, 0)
        self.assertIsNone(p.last_completion_time)


class PushTests(unittest.TestCase):
    def setUp(self):
        self.store = ProfileStore(MemoryKV())
        self.remote = FakeRemote()
        self.sync = RemoteSync(self.remote, self.store)

    def test_push_without_id_is_skipped(self):
        r = self.sync.push(UserProfile(reason="x"))
        self.assertEqual(r.status, SKIPPED)
        self.assertEqual(self.remote.upserts, [])

    def test_push_upserts_by_id(self):
        r = self.sync.push(UserProfile(id="u1", last_completed_day=2, last_completion_time=T0, video_submitted_today=True))
        self.assertEqual(r.status, OK)
        user_id, row = self.remote.upserts[0]
        self.assertEqual(user_id, "u1")
        self.assertEqual(row["last_completion_time"], T0.isoformat())
        self.assertEqual(row["video_submitted_today"], "true")

    def test_missing_sheet_logs_warning_and_returns(self):
        self.remote.missing = True
        with self.assertLogs("storage.sync", level="WARNING") as cm:
            r = self.sync.push(UserProfile(id="u1"))
        self.assertEqual(r.status, SCHEMA_MISSING)
        self.assertTrue(any("WARNING" in line for line in cm.output))
        self.assertEqual(self.remote.admin_logs, [])

    def test_other_failures_are_logged_and_audited(self):
        self.remote.fail = RuntimeError("GSheets operation failed: update(row): 500")
        with self.assertLogs("storage.sync", level="ERROR"):
            r = self.sync.push(UserProfile(id="u1"))
        self.assertEqual(r.status, ERROR)
        self.assertFalse(r.ok)
        self.assertEqual(self.remote.admin_logs[0][:3], ("error", "push_profile", "u1"))

    def test_offline_adapter_never_touches_remote(self):
        sync = RemoteSync(None, self.store)
        self.assertEqual(sync.push(UserProfile(id="u1")).status, SKIPPED)
        self.assertIsNone(sync.pull("u1"))

    def test_results_are_observable(self):
        seen = []
        remove = self.sync.add_listener(seen.append)
        self.sync.push(UserProfile(id="u1"))
        self.sync.push(UserProfile())
        remove()
        self.sync.push(UserProfile(id="u2"))
        self.assertEqual([r.status for r in seen], [OK, SKIPPED])
        self.assertEqual([r.status for r in self.sync.history], [OK, SKIPPED, OK])
        self.assertEqual(self.sync.last_result.user_id, "u2")


class PullTests(unittest.TestCase):
    def setUp(self):
        self.store = ProfileStore(MemoryKV())
        self.remote = FakeRemote()
        self.sync = RemoteSync(self.remote, self.store)

    def test_remote_values_overlay_fresh_local_profile(self):
        self.store.update(email="seeker@example.com", name="Seeker", last_completed_day=2, addictions=["x"])
        self.remote.rows["u1"] = profile_to_row(UserProfile(id="u1", last_completed_day=5, has_paid=True, addictions=["smoking"]))
        p = self.sync.pull("u1")
        self.assertEqual(p.id, "u1")
        self.assertTrue(p.is_authenticated)
        self.assertEqual(p.last_completed_day, 5)
        self.assertEqual(p.addictions, ["smoking"])
        self.assertTrue(p.has_paid)
        self.assertEqual(p.email, "seeker@example.com")
        self.assertEqual(p.name, "Seeker")
        # pull itself does not write locally
        self.assertEqual(self.store.get().last_completed_day, 2)
        self.assertEqual(self.sync.last_result.status, OK)

    def test_not_found_and_missing_sheet_both_return_none(self):
        self.assertIsNone(self.sync.pull("nobody"))
        self.assertEqual(self.sync.last_result.status, NOT_FOUND)

        self.remote.missing = True
        with self.assertLogs("storage.sync", level="WARNING"):
            self.assertIsNone(self.sync.pull("nobody"))
        self.assertEqual(self.sync.last_result.status, SCHEMA_MISSING)

    def test_transient_failure_returns_none(self):
        self.remote.fail = ConnectionError("connection reset")
        with self.assertLogs("storage.sync", level="ERROR"):
            self.assertIsNone(self.sync.pull("u1"))
        self.assertEqual(self.sync.last_result.status, ERROR)


if __name__ == "__main__":
    unittest.main()
