from datetime import datetime, timedelta, timezone

import pytest

from langstall.scheduler import (
    InvalidQuality,
    MAX_INTERVAL,
    ReviewEvent,
    SchedulingState,
    VocabularyItem,
    ease_delta,
    new_item,
    next_state,
    review,
    round_half_up,
    validate_quality,
)

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _item(interval=0, ease_factor=2.5, review_count=0, **kwargs) -> VocabularyItem:
    return VocabularyItem(
        id=kwargs.pop("id", 7),
        word="serpiente",
        translation="snake",
        language="Spanish",
        next_review=NOW,
        interval=interval,
        ease_factor=ease_factor,
        review_count=review_count,
        **kwargs,
    )


def test_first_good_review_from_new_item():
    updated, event = review(_item(), 4, NOW)
    assert updated.review_count == 1
    assert updated.interval == 1
    assert updated.ease_factor == pytest.approx(2.5)
    assert updated.next_review == NOW + timedelta(days=1)
    assert event == ReviewEvent(vocabulary_item_id=7, quality=4, reviewed_at=NOW)


def test_second_good_review_gives_six_days():
    first, _ = review(_item(), 4, NOW)
    second, _ = review(first, 4, NOW)
    assert second.review_count == 2
    assert second.interval == 6
    assert second.ease_factor == pytest.approx(2.5)


def test_third_review_grows_with_previous_ease_factor():
    first, _ = review(_item(), 4, NOW)
    second, _ = review(first, 4, NOW)
    third, _ = review(second, 5, NOW)
    assert third.review_count == 3
    # 6 * 2.5 (ease before this review) = 15
    assert third.interval == 15
    assert third.ease_factor == pytest.approx(2.6)


def test_growth_rounds_half_up():
    # 5 * 2.5 = 12.5 -> 13, where round() would give 12
    updated, _ = review(_item(interval=5, ease_factor=2.5, review_count=4), 4, NOW)
    assert updated.interval == 13


def test_lapse_resets_streak_and_drops_ease():
    updated, _ = review(_item(interval=16, ease_factor=2.6, review_count=3), 0, NOW)
    assert updated.review_count == 0
    assert updated.interval == 1
    assert updated.ease_factor == pytest.approx(1.8)
    assert updated.next_review == NOW + timedelta(days=1)


def test_ease_factor_clamped_at_floor():
    updated, _ = review(_item(interval=1, ease_factor=1.3, review_count=0), 0, NOW)
    assert updated.ease_factor == 1.3


@pytest.mark.parametrize(
    "quality, expected",
    [(5, 0.1), (4, 0.0), (3, -0.14), (2, -0.32), (1, -0.54), (0, -0.8)],
)
def test_ease_delta_per_quality(quality, expected):
    assert ease_delta(quality) == pytest.approx(expected)


def test_quality_three_passes_and_two_lapses():
    state = SchedulingState(interval=6, ease_factor=2.5, review_count=2)
    passed = next_state(state, 3)
    lapsed = next_state(state, 2)
    assert passed.review_count == 3
    assert passed.interval == 15
    assert lapsed.review_count == 0
    assert lapsed.interval == 1


def test_quality_one_is_a_lapse():
    lapsed = next_state(SchedulingState(interval=40, ease_factor=2.2, review_count=5), 1)
    assert lapsed.review_count == 0
    assert lapsed.interval == 1


def test_first_pass_ignores_stale_interval_and_ease():
    state = SchedulingState(interval=90, ease_factor=1.3, review_count=0)
    assert next_state(state, 5).interval == 1
    state = SchedulingState(interval=90, ease_factor=3.7, review_count=1)
    assert next_state(state, 3).interval == 6


def test_other_fields_pass_through():
    created = NOW - timedelta(days=30)
    item = _item(interval=6, ease_factor=2.5, review_count=2, context="una serpiente boa", mnemonic="serpent", user_id="u1", created_at=created)
    updated, _ = review(item, 4, NOW + timedelta(hours=3))
    assert (updated.id, updated.word, updated.translation, updated.language) == (7, "serpiente", "snake", "Spanish")
    assert updated.context == "una serpiente boa"
    assert updated.mnemonic == "serpent"
    assert updated.user_id == "u1"
    assert updated.created_at == created
    # input is not mutated
    assert item.interval == 6 and item.review_count == 2


STATES = [
    SchedulingState(),
    SchedulingState(interval=1, ease_factor=1.3, review_count=1),
    SchedulingState(interval=6, ease_factor=2.5, review_count=2),
    SchedulingState(interval=15, ease_factor=1.42, review_count=3),
    SchedulingState(interval=400, ease_factor=3.1, review_count=12),
    SchedulingState(interval=20000, ease_factor=2.9, review_count=18),
    SchedulingState(interval=MAX_INTERVAL, ease_factor=3.5, review_count=40),
]


@pytest.mark.parametrize("state", STATES)
@pytest.mark.parametrize("quality", range(6))
def test_invariants_hold_for_every_quality(state, quality):
    now = NOW + timedelta(seconds=quality * 37)
    item = _item(interval=state.interval, ease_factor=state.ease_factor, review_count=state.review_count)
    updated, event = review(item, quality, now)

    assert updated.ease_factor >= 1.3
    assert updated.interval >= 1
    if quality < 3:
        assert updated.review_count == 0
    else:
        assert updated.review_count == state.review_count + 1
    assert updated.next_review - now == timedelta(days=updated.interval)
    assert event.reviewed_at == now
    assert event.quality == quality


@pytest.mark.parametrize("bad", [-1, 6, 10, 2.5, 3.0, "3", None, True, False])
def test_invalid_quality_rejected(bad):
    with pytest.raises(InvalidQuality):
        validate_quality(bad)
    with pytest.raises(InvalidQuality):
        review(_item(), bad, NOW)


def test_invalid_quality_is_a_value_error():
    with pytest.raises(ValueError, match="between 0 and 5"):
        next_state(SchedulingState(), 9)


@pytest.mark.parametrize(
    "value, expected",
    [(0.0, 0), (0.5, 1), (1.49, 1), (12.5, 13), (15.6, 16), (-2.5, -3)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_new_item_defaults_and_is_due():
    item = new_item(1, "chapeau", "hat", "French", NOW, context="un chapeau", user_id="anonymous")
    assert item.state == SchedulingState(interval=0, ease_factor=2.5, review_count=0)
    assert item.next_review == NOW
    assert item.is_due(NOW)
    assert not item.is_due(NOW - timedelta(seconds=1))


def test_long_streak_of_perfect_reviews_stays_schedulable():
    item = _item()
    now = NOW
    for _ in range(40):
        item, _ = review(item, 5, now)
        assert 1 <= item.interval <= MAX_INTERVAL
        assert item.next_review - now == timedelta(days=item.interval)
        now = item.next_review
    assert item.review_count == 40
    assert item.interval == MAX_INTERVAL


def test_growth_is_capped_for_oversized_stored_interval():
    # a card already scheduled far beyond the cap is pulled back to it
    state = SchedulingState(interval=2_038_878, ease_factor=2.5, review_count=13)
    assert next_state(state, 3).interval == MAX_INTERVAL
