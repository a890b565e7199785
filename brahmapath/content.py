# brahmapath/content.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Milestone:
    day: int
    title: str
    description: str
    icon: str  # shield | crown | award | trophy


REASONS: List[str] = [
    "I want to quit smoking and heal my lungs",
    "I want to stop drinking and purify my mind",
    "I want to stop wasting my vital energy (Virya)",
    "I want to break free from compulsive habits",
    "I want to regain control over my senses",
    "I want better physical health and immunity",
    "I want a complete 108-day spiritual detox",
]

MILESTONES: List[Milestone] = [
    Milestone(7, "Purification Warrior", "First Week of Detox", "shield"),
    Milestone(37, "Energy Master", "Habits Broken", "crown"),
    Milestone(79, "Transformation Guardian", "New Identity Formed", "award"),
    Milestone(108, "Sacred Completion", "Master of Senses", "trophy"),
]

# highlighted beads on the mala ring
MALA_MARKERS = (7, 21, 37, 60, 90, 108)

JOURNAL_PROMPTS: List[str] = [
    "Why did you start this journey of purification?",
    "What cravings or triggers did you face today?",
    "How is your physical energy compared to yesterday?",
    "What did you do today to replace your old habit?",
    "Describe a moment of self-control you are proud of.",
]

ICONS = {"shield": "🛡️", "crown": "👑", "award": "🏅", "trophy": "🏆"}
