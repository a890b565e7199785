from __future__ import annotations

import unittest

from gspread.exceptions import WorksheetNotFound

from storage.gsheets import (
    PROFILES_HEADERS,
    BrahmaGSheets,
    GSheetsConfig,
    SchemaMissingError,
    _col_letter,
)
from storage.security import hash_password, is_password_hashed, needs_rehash


class FakeWorksheet:
    def __init__(self, title, rows=None):
        self.title = title
        self.rows = [list(r) for r in (rows or [])]

    def row_values(self, idx):
        if idx - 1 >= len(self.rows):
            return []
        row = list(self.rows[idx - 1])
        while row and row[-1] == "":
            row.pop()
        return row

    def col_values(self, idx):
        return [r[idx - 1] if idx - 1 < len(r) else "" for r in self.rows]

    def get_all_records(self):
        if not self.rows:
            return []
        headers = self.rows[0]
        out = []
        for r in self.rows[1:]:
            padded = list(r) + [""] * (len(headers) - len(r))
            out.append(dict(zip(headers, padded)))
        return out

    def append_row(self, row):
        self.rows.append([str(v) for v in row])

    def update(self, rng, values):
        start = rng.split(":")[0]
        idx = int("".join(c for c in start if c.isdigit()))
        while len(self.rows) < idx:
            self.rows.append([])
        self.rows[idx - 1] = [str(v) for v in values[0]]

    def delete_rows(self, idx):
        del self.rows[idx - 1]


class FakeSpreadsheet:
    def __init__(self, worksheets=None):
        self.worksheets = dict(worksheets or {})

    def worksheet(self, title):
        if title not in self.worksheets:
            raise WorksheetNotFound(title)
        return self.worksheets[title]

    def add_worksheet(self, title, rows, cols):
        ws = FakeWorksheet(title)
        self.worksheets[title] = ws
        return ws


class FakeClient:
    def __init__(self, sh):
        self.sh = sh

    def open(self, name):
        return self.sh


class GSheetsProfilesTests(unittest.TestCase):
    def test_missing_profiles_sheet_raises_schema_missing(self):
        sh = FakeSpreadsheet()
        db = BrahmaGSheets(FakeClient(sh))
        self.assertIn("users", sh.worksheets)
        self.assertIn("admin_logs", sh.worksheets)
        self.assertNotIn("profiles", sh.worksheets)
        with self.assertRaises(SchemaMissingError):
            db.get_profile_row("u1")
        with self.assertRaises(SchemaMissingError):
            db.upsert_profile_row("u1", {"last_completed_day": 1})

    def test_profiles_sheet_created_when_configured(self):
        sh = FakeSpreadsheet()
        db = BrahmaGSheets(FakeClient(sh), GSheetsConfig(create_profiles_ws=True))
        self.assertIsNone(db.get_profile_row("u1"))
        self.assertEqual(sh.worksheets["profiles"].rows[0], PROFILES_HEADERS)

    def test_sheet_provisioned_later_is_picked_up(self):
        sh = FakeSpreadsheet()
        db = BrahmaGSheets(FakeClient(sh))
        with self.assertRaises(SchemaMissingError):
            db.get_profile_row("u1")
        sh.worksheets["profiles"] = FakeWorksheet("profiles", [PROFILES_HEADERS])
        self.assertIsNone(db.get_profile_row("u1"))

    def test_upsert_appends_then_updates_in_place(self):
        ws = FakeWorksheet("profiles", [PROFILES_HEADERS])
        db = BrahmaGSheets(FakeClient(FakeSpreadsheet({"profiles": ws})))

        db.upsert_profile_row("u1", {"last_completed_day": 1, "reason": None, "has_paid": "false"})
        db.upsert_profile_row("u2", {"last_completed_day": 7})
        db.upsert_profile_row("u1", {"last_completed_day": 2, "has_paid": "true", "unknown_col": "x"})

        self.assertEqual(len(ws.rows), 3)
        row = db.get_profile_row("u1")
        self.assertEqual(row["last_completed_day"], "2")
        self.assertEqual(row["has_paid"], "true")
        self.assertEqual(row["reason"], "")
        self.assertTrue(row["updated_at"])
        self.assertEqual(db.get_profile_row("u2")["last_completed_day"], "7")

    def test_profile_written_by_another_client_is_read_fresh(self):
        sh = FakeSpreadsheet({"profiles": FakeWorksheet("profiles", [PROFILES_HEADERS])})
        phone = BrahmaGSheets(FakeClient(sh))
        laptop = BrahmaGSheets(FakeClient(sh))
        self.assertIsNone(laptop.get_profile_row("u1"))
        phone.upsert_profile_row("u1", {"last_completed_day": 4})
        self.assertEqual(laptop.get_profile_row("u1")["last_completed_day"], "4")
        phone.upsert_profile_row("u1", {"last_completed_day": 5})
        self.assertEqual(laptop.get_profile_row("u1")["last_completed_day"], "5")

    def test_duplicate_rows_are_collapsed(self):
        dup = ["u1"] + [""] * (len(PROFILES_HEADERS) - 1)
        ws = FakeWorksheet("profiles", [PROFILES_HEADERS, dup, list(dup)])
        db = BrahmaGSheets(FakeClient(FakeSpreadsheet({"profiles": ws})))
        db.upsert_profile_row("u1", {"last_completed_day": 3})
        self.assertEqual(len(ws.rows), 2)
        self.assertEqual(db.get_profile_row("u1")["last_completed_day"], "3")


class GSheetsUsersTests(unittest.TestCase):
    def setUp(self):
        self.sh = FakeSpreadsheet()
        self.db = BrahmaGSheets(FakeClient(self.sh))

    def test_create_user_hashes_password_and_rejects_duplicates(self):
        row = self.db.create_user("Seeker@Example.com", "secret-pass")
        self.assertTrue(row["user_id"])
        self.assertEqual(row["email"], "seeker@example.com")
        self.assertTrue(is_password_hashed(row["password"]))
        self.assertIsNone(self.db.create_user("seeker@example.com", "other-pass"))

    def test_verify_login(self):
        row = self.db.create_user("seeker@example.com", "secret-pass")
        found = self.db.verify_login("SEEKER@example.com", "secret-pass")
        self.assertEqual(found["user_id"], row["user_id"])
        self.assertIsNone(self.db.verify_login("seeker@example.com", "wrong"))
        self.assertIsNone(self.db.verify_login("ghost@example.com", "secret-pass"))

    def test_legacy_plaintext_password_is_migrated_on_login(self):
        users = self.sh.worksheets["users"]
        users.append_row(["legacy-1", "old@example.com", "plain-pass", "", ""])
        self.assertIsNotNone(self.db.verify_login("old@example.com", "plain-pass"))
        stored = users.get_all_records()[0]["password"]
        self.assertTrue(is_password_hashed(stored))
        self.assertIsNotNone(self.db.verify_login("old@example.com", "plain-pass"))

    def test_admin_log_append_and_read(self):
        self.db.append_admin_log("error", "push_profile", "u1", "boom")
        logs = self.sh.worksheets["admin_logs"].get_all_records()
        self.assertEqual(logs[0]["action"], "push_profile")
        self.assertEqual(logs[0]["user_id"], "u1")

    def test_weak_hash_is_upgraded_on_login(self):
        users = self.sh.worksheets["users"]
        users.append_row(["weak-1", "weak@example.com", hash_password("secret-pass", iterations=1_000), "", ""])
        self.assertIsNotNone(self.db.verify_login("weak@example.com", "secret-pass"))
        stored = users.get_all_records()[0]["password"]
        self.assertFalse(needs_rehash(stored))
        self.assertIsNotNone(self.db.verify_login("weak@example.com", "secret-pass"))

    def test_user_created_elsewhere_is_visible_immediately(self):
        self.assertIsNone(self.db.get_user_by_email("other@example.com"))
        other_device = BrahmaGSheets(FakeClient(self.sh))
        other_device.create_user("other@example.com", "secret-pass")
        self.assertIsNotNone(self.db.verify_login("other@example.com", "secret-pass"))


class ColLetterTests(unittest.TestCase):
    def test_col_letter(self):
        self.assertEqual(_col_letter(1), "A")
        self.assertEqual(_col_letter(26), "Z")
        self.assertEqual(_col_letter(27), "AA")


if __name__ == "__main__":
    unittest.main()
