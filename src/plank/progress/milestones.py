"""Milestone tables and crossing detection.

Thresholds are cumulative plank seconds. The dashboard renders the same
tables, so names, labels and order must not drift.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MilestoneDef:
    name: str
    seconds: int
    label: str
    emoji: str = ""


MILESTONES: tuple[MilestoneDef, ...] = (
    MilestoneDef("Beginner", 600, "10 minutes"),
    MilestoneDef("Intermediate", 1800, "30 minutes"),
    MilestoneDef("Advanced", 3600, "60 minutes"),
    MilestoneDef("Expert", 7200, "2 hours"),
    MilestoneDef("Master", 14400, "4 hours"),
)

COMPANY_MILESTONES: tuple[MilestoneDef, ...] = (
    MilestoneDef("Bronze", 30000, "500 minutes", "\U0001f949"),
    MilestoneDef("Silver", 60000, "1,000 minutes", "\U0001f948"),
    MilestoneDef("Gold", 150000, "2,500 minutes", "\U0001f947"),
    MilestoneDef("Platinum", 300000, "5,000 minutes", "\U0001f3c6"),
)

STARTER_TIER = "Starter"


def crossed_milestones(
    table: tuple[MilestoneDef, ...],
    old_total: int,
    new_total: int,
) -> list[MilestoneDef]:
    """Return milestones with ``old_total < threshold <= new_total``, in table order."""
    return [m for m in table if old_total < m.seconds <= new_total]


def current_milestone(table: tuple[MilestoneDef, ...], total: int) -> MilestoneDef | None:
    """Highest milestone already reached, or None."""
    reached = [m for m in table if total >= m.seconds]
    return reached[-1] if reached else None


def next_milestone(table: tuple[MilestoneDef, ...], total: int) -> MilestoneDef | None:
    """Lowest milestone not yet reached, or None when all are passed."""
    for m in table:
        if total < m.seconds:
            return m
    return None


def milestone_progress(table: tuple[MilestoneDef, ...], total: int) -> float:
    """Percent progress from the current milestone toward the next one.

    Measured from the previously reached threshold (0 before the first one)
    and capped at 100. Returns 100 once every milestone is reached.
    """
    upcoming = next_milestone(table, total)
    if upcoming is None:
        return 100.0

    reached = current_milestone(table, total)
    floor = reached.seconds if reached else 0
    span = upcoming.seconds - floor
    return min((total - floor) / span * 100, 100.0)


def milestone_tier(total: int) -> str:
    """Name of the highest individual milestone reached, or ``Starter``."""
    reached = current_milestone(MILESTONES, total)
    return reached.name if reached else STARTER_TIER


def format_duration(seconds: int) -> str:
    """Short ``{m}m {s}s`` rendering used in feed messages."""
    return f"{seconds // 60}m {seconds % 60}s"
