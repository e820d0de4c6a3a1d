"""Spaced-repetition review scheduling (SM-2 variant).

The scheduler is a pure function of the current scheduling state, a
quality rating and an injected ``now``. It never touches storage or the
wall clock; callers load the item, call :func:`review` and persist the
returned item together with the returned :class:`ReviewEvent`.

Not safe to apply twice concurrently to the same logical item without
external serialisation (the store wraps each review in a write
transaction).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Tuple


MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3

INITIAL_INTERVAL = 0
INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3

FIRST_INTERVAL = 1
SECOND_INTERVAL = 6
LAPSE_INTERVAL = 1
# a century; keeps next_review inside the datetime range
MAX_INTERVAL = 36500


class InvalidQuality(ValueError):
    """Quality rating is not an integer in [0, 5]."""

    def __init__(self, quality: Any) -> None:
        self.quality = quality
        super().__init__(
            f"quality must be an integer between {MIN_QUALITY} and {MAX_QUALITY}, got {quality!r}"
        )


@dataclass(frozen=True)
class SchedulingState:
    interval: int = INITIAL_INTERVAL
    ease_factor: float = INITIAL_EASE_FACTOR
    review_count: int = 0


@dataclass(frozen=True)
class ReviewEvent:
    """Append-only review log record."""

    vocabulary_item_id: Any
    quality: int
    reviewed_at: datetime


@dataclass(frozen=True)
class VocabularyItem:
    """A saved word together with its scheduling fields.

    Only ``review`` changes the scheduling fields; everything else is
    carried through untouched.
    """

    id: Any
    word: str
    translation: str
    language: str
    next_review: datetime
    context: str | None = None
    mnemonic: str | None = None
    interval: int = INITIAL_INTERVAL
    ease_factor: float = INITIAL_EASE_FACTOR
    review_count: int = 0
    user_id: str | None = None
    created_at: datetime | None = field(default=None, compare=False)

    @property
    def state(self) -> SchedulingState:
        return SchedulingState(
            interval=self.interval,
            ease_factor=self.ease_factor,
            review_count=self.review_count,
        )

    def is_due(self, now: datetime) -> bool:
        return now >= self.next_review


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``), which
    would shift intervals by a day on exact ties.
    """
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def validate_quality(quality: Any) -> int:
    # bool is an int subclass; True/False are not ratings
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQuality(quality)
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidQuality(quality)
    return quality


def is_lapse(quality: int) -> bool:
    return quality < PASSING_QUALITY


def ease_delta(quality: int) -> float:
    """Ease factor adjustment: +0.1 at quality 5, 0 at 4, -0.8 at 0."""
    miss = MAX_QUALITY - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def next_state(state: SchedulingState, quality: int) -> SchedulingState:
    """Apply one review to ``state`` and return the new scheduling state."""
    quality = validate_quality(quality)

    review_count = state.review_count + 1
    if not is_lapse(quality):
        if review_count == 1:
            interval = FIRST_INTERVAL
        elif review_count == 2:
            interval = SECOND_INTERVAL
        else:
            # growth uses the ease factor from before this review
            interval = min(round_half_up(state.interval * state.ease_factor), MAX_INTERVAL)
    else:
        review_count = 0
        interval = LAPSE_INTERVAL

    ease_factor = state.ease_factor + ease_delta(quality)
    if ease_factor < MIN_EASE_FACTOR:
        ease_factor = MIN_EASE_FACTOR

    return SchedulingState(interval=interval, ease_factor=ease_factor, review_count=review_count)


def due_at(now: datetime, interval: int) -> datetime:
    return now + timedelta(days=interval)


def review(item: VocabularyItem, quality: int, now: datetime) -> Tuple[VocabularyItem, ReviewEvent]:
    """Review ``item`` with ``quality`` at ``now``.

    Returns the updated item (new interval, ease factor, review count and
    next review time) and the review event to append to the log.

    Raises:
        InvalidQuality: quality is not an integer in [0, 5].
    """
    state = next_state(item.state, quality)
    updated = replace(
        item,
        interval=state.interval,
        ease_factor=state.ease_factor,
        review_count=state.review_count,
        next_review=due_at(now, state.interval),
    )
    event = ReviewEvent(vocabulary_item_id=item.id, quality=quality, reviewed_at=now)
    return updated, event


def new_item(
    item_id: Any,
    word: str,
    translation: str,
    language: str,
    now: datetime,
    *,
    context: str | None = None,
    mnemonic: str | None = None,
    user_id: str | None = None,
) -> VocabularyItem:
    """Build a freshly saved word; it is due immediately."""
    return VocabularyItem(
        id=item_id,
        word=word,
        translation=translation,
        language=language,
        context=context,
        mnemonic=mnemonic,
        next_review=now,
        user_id=user_id,
        created_at=now,
    )
