# brahmapath/actions.py
from __future__ import annotations

from typing import Dict, Optional
import datetime as dt

from .models import JournalAnswer, JournalEntry, UserProfile, utc_now


def complete_onboarding(store, age: int, reason: str) -> UserProfile:
    return store.update(age=int(age), reason=str(reason))


def complete_auth(store, sync, identity) -> UserProfile:
    """Bind the freshly signed-in identity to the local progress and seed the remote copy."""
    updated = store.update(email=identity.email or None, is_authenticated=True, id=identity.user_id)
    sync.push(updated)
    return updated


def complete_payment(store, sync, now: Optional[dt.datetime] = None) -> UserProfile:
    # Mock payment: activation only.
    updated = store.update(has_paid=True, start_date=now or utc_now())
    sync.push(updated)
    return updated


def save_journal(
    journal, profile: UserProfile, answers: Dict[str, str], now: Optional[dt.datetime] = None
) -> Optional[JournalEntry]:
    """Returns None (and leaves the day's entry alone) when every answer is blank."""
    kept = [JournalAnswer(prompt=k, answer=v.strip()) for k, v in answers.items() if str(v or "").strip()]
    if not kept:
        return None
    entry = JournalEntry(day=profile.program_day, date=now or utc_now(), answers=kept)
    journal.save(entry)
    return entry


def logout(store, sessions) -> UserProfile:
    sessions.sign_out()
    return store.reset()
