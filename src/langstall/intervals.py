from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict

from .scheduler import SchedulingState, next_state, round_half_up


# Flashcard buttons and the quality each one submits
REVIEW_BUTTONS: Dict[str, int] = {
    "again": 0,
    "hard": 2,
    "good": 3,
    "easy": 4,
}


@dataclass(frozen=True)
class ReviewPreview:
    quality: int
    interval: int
    label: str


def _plural(count: int, unit: str, plural: bool) -> str:
    return f"{count} {unit}s" if plural else f"{count} {unit}"


def format_interval(days: float) -> str:
    """Coarse human label for an interval in days.

    Buckets: < 1 day, 1 day, N days (< 7), weeks (< 30), months (< 365),
    years. Plurals switch at 14 days, 60 days and 730 days.
    """
    if not math.isfinite(days):
        raise ValueError(f"interval must be a finite number of days, got {days!r}")
    if days < 1:
        return "< 1 day"
    if days == 1:
        return "1 day"
    if days < 7:
        return f"{days:g} days"
    if days < 30:
        return _plural(round_half_up(days / 7), "week", days >= 14)
    if days < 365:
        return _plural(round_half_up(days / 30), "month", days >= 60)
    return _plural(round_half_up(days / 365), "year", days >= 730)


def preview_intervals(state: SchedulingState) -> Dict[str, ReviewPreview]:
    """What each button would schedule, computed with the real transition."""
    previews: Dict[str, ReviewPreview] = {}
    for name, quality in REVIEW_BUTTONS.items():
        interval = next_state(state, quality).interval
        previews[name] = ReviewPreview(quality=quality, interval=interval, label=format_interval(interval))
    return previews
