# storage/journal_store.py
from __future__ import annotations

from typing import List, Optional
import json

from brahmapath.models import JournalEntry, journal_entry_from_dict, journal_entry_to_dict

JOURNAL_KEY = "brahma_path_journal"


class JournalStore:
    def __init__(self, kv, key: str = JOURNAL_KEY):
        self.kv = kv
        self.key = key

    def _load(self) -> List[JournalEntry]:
        raw = self.kv.get(self.key)
        if not raw:
            return []
        try:
            arr = json.loads(raw)
        except (TypeError, ValueError):
            return []
        if not isinstance(arr, list):
            return []
        out: List[JournalEntry] = []
        for item in arr:
            e = journal_entry_from_dict(item)
            if e is not None:
                out.append(e)
        return out

    def save(self, entry: JournalEntry) -> None:
        """Upsert by day: an existing entry for the same day is replaced."""
        entries = [e for e in self._load() if e.day != entry.day]
        entries.append(entry)
        payload = [journal_entry_to_dict(e) for e in entries]
        self.kv.set(self.key, json.dumps(payload, ensure_ascii=False))

    def list(self) -> List[JournalEntry]:
        return self._load()

    def recent(self) -> List[JournalEntry]:
        return sorted(self._load(), key=lambda e: e.date, reverse=True)

    def get(self, day: int) -> Optional[JournalEntry]:
        for e in self._load():
            if e.day == int(day):
                return e
        return None
