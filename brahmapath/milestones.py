# brahmapath/milestones.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .content import MALA_MARKERS, MILESTONES, Milestone
from .models import PROGRAM_DAYS


def earned_milestones(last_completed_day: int) -> List[Milestone]:
    return [m for m in MILESTONES if last_completed_day >= m.day]


def next_milestone(last_completed_day: int) -> Optional[Milestone]:
    for m in MILESTONES:
        if last_completed_day < m.day:
            return m
    return None


@dataclass(frozen=True)
class Bead:
    number: int  # 1..108
    done: bool
    marker: bool


def mala_beads(completed_days: int) -> List[Bead]:
    done = max(0, min(int(completed_days), PROGRAM_DAYS))
    return [Bead(i, i <= done, i in MALA_MARKERS) for i in range(1, PROGRAM_DAYS + 1)]


def progress_ratio(completed_days: int) -> float:
    return max(0.0, min(1.0, float(completed_days) / PROGRAM_DAYS))
