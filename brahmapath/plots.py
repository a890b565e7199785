# brahmapath/plots.py
from __future__ import annotations

from typing import Optional
import math

import matplotlib.pyplot as plt

from .milestones import mala_beads
from .models import PROGRAM_DAYS


def plot_mala(
    completed_days: int,
    title: str = "Brahma Path: 108 Beads",
    ax: Optional[plt.Axes] = None,
):
    """
    Ring of 108 beads starting at 12 o'clock, clockwise.
    Completed beads are filled, marker beads are drawn larger.
    Returns matplotlib Figure.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(4, 4))
    else:
        fig = ax.figure

    beads = mala_beads(completed_days)
    xs, ys, colors, sizes = [], [], [], []
    for b in beads:
        angle = math.radians(90 - (b.number - 1) * 360.0 / PROGRAM_DAYS)
        xs.append(math.cos(angle))
        ys.append(math.sin(angle))
        colors.append("#99744A" if b.done else "#D9D2C3")
        sizes.append(70 if b.marker else 28)

    ax.scatter(xs, ys, s=sizes, c=colors, edgecolors="#414A37", linewidths=0.4)

    done = sum(1 for b in beads if b.done)
    ax.text(0, 0.08, f"{done}", ha="center", va="center", fontsize=28, color="#414A37")
    ax.text(0, -0.18, f"/ {PROGRAM_DAYS}", ha="center", va="center", fontsize=11, color="#414A37")

    ax.set_title(title)
    ax.set_aspect("equal")
    ax.set_xlim(-1.2, 1.2)
    ax.set_ylim(-1.2, 1.2)
    ax.axis("off")
    return fig
