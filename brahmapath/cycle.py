# brahmapath/cycle.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
import datetime as dt
import logging
import threading

from .models import CYCLE_HOURS, PROGRAM_DAYS, UserProfile, utc_now

logger = logging.getLogger(__name__)

CYCLE = dt.timedelta(hours=CYCLE_HOURS)

UNLOCKED = "unlocked"
LOCKED = "locked"
COMPLETED = "completed"


class CycleError(Exception):
    pass


class CheckInLockedError(CycleError):
    def __init__(self, countdown: Optional[str]):
        super().__init__(f"Today's check-in is done. Next unlock in {countdown}." if countdown else "Today's check-in is done.")
        self.countdown = countdown


class ProgramCompletedError(CycleError):
    def __init__(self):
        super().__init__(f"All {PROGRAM_DAYS} days are complete.")


# ----------------------------
# Pure evaluation
# ----------------------------

@dataclass(frozen=True)
class CycleStatus:
    state: str  # unlocked | locked | completed
    program_day: int
    days_remaining: int
    remaining: Optional[dt.timedelta] = None
    countdown: Optional[str] = None

    @property
    def can_check_in(self) -> bool:
        return self.state == UNLOCKED


def format_countdown(remaining: dt.timedelta) -> str:
    """Whole hours and minutes, floored: 23h59m59s -> '23h 59m'."""
    secs = max(0, int(remaining.total_seconds()))
    h, rest = divmod(secs, 3600)
    return f"{h}h {rest // 60}m"


def _elapsed(profile: UserProfile, now: dt.datetime) -> Optional[dt.timedelta]:
    if profile.last_completion_time is None:
        return None
    return now - profile.last_completion_time


def needs_reset(profile: UserProfile, now: dt.datetime) -> bool:
    elapsed = _elapsed(profile, now)
    return bool(profile.video_submitted_today) and elapsed is not None and elapsed >= CYCLE


def evaluate(profile: UserProfile, now: dt.datetime) -> CycleStatus:
    day = profile.last_completed_day + 1
    left = max(0, PROGRAM_DAYS - profile.last_completed_day)
    elapsed = _elapsed(profile, now)

    if profile.video_submitted_today and elapsed is not None and elapsed < CYCLE:
        remaining = CYCLE - elapsed
        return CycleStatus(LOCKED, day, left, remaining, format_countdown(remaining))
    if profile.last_completed_day >= PROGRAM_DAYS:
        return CycleStatus(COMPLETED, day, 0)
    return CycleStatus(UNLOCKED, day, left)


# ----------------------------
# Engine
# ----------------------------

class TickHandle:
    """Handle for a periodic tick started by DailyCycle.schedule()."""

    def __init__(self, fn: Callable[[], None], interval: float):
        self._fn = fn
        self._interval = max(0.01, float(interval))
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="daily-cycle-tick", daemon=True)

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._fn()
            except Exception:
                logger.exception("daily cycle tick failed")

    def start(self) -> "TickHandle":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._stop.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=self._interval + 1.0)

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()


class DailyCycle:
    """
    Owns the 24h lock / unlock transitions over a ProfileStore.
    on_change receives every profile this engine writes (e.g. to push it remotely).
    """
    def __init__(
        self,
        store,
        clock: Callable[[], dt.datetime] = utc_now,
        on_change: Optional[Callable[[UserProfile], None]] = None,
    ):
        self.store = store
        self.clock = clock
        self.on_change = on_change

    def _changed(self, profile: UserProfile) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(profile)
        except Exception:
            logger.exception("on_change callback failed")

    def status(self, profile: Optional[UserProfile] = None) -> CycleStatus:
        return evaluate(profile if profile is not None else self.store.get(), self.clock())

    def reset_if_elapsed(self, notify: bool = True) -> UserProfile:
        """notify=False keeps the reset local (on_change is not called)."""
        profile = self.store.get()
        if not needs_reset(profile, self.clock()):
            return profile
        updated = self.store.update(video_submitted_today=False)
        logger.info("daily cycle unlocked (day %s)", updated.program_day)
        if notify:
            self._changed(updated)
        return updated

    def tick(self) -> CycleStatus:
        return self.status(self.reset_if_elapsed())

    def check_in(self, now: Optional[dt.datetime] = None) -> UserProfile:
        now = now or self.clock()
        profile = self.store.get()
        st = evaluate(profile, now)
        if st.state == LOCKED:
            raise CheckInLockedError(st.countdown)
        if st.state == COMPLETED:
            raise ProgramCompletedError()
        updated = self.store.update(
            video_submitted_today=True,
            last_completed_day=profile.last_completed_day + 1,
            last_completion_time=now,
        )
        logger.info("check-in recorded for day %s", updated.last_completed_day)
        self._changed(updated)
        return updated

    def schedule(self, interval: float = 60.0) -> TickHandle:
        return TickHandle(self.tick, interval).start()
