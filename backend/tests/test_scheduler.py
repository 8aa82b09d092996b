"""Tests for the SM-2 flashcard scheduler."""

from datetime import datetime, timedelta, timezone

import pytest

from neuroqbank.models.flashcard import ReviewQuality
from neuroqbank.services.scheduler import ScheduleState, review_card

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

PRIOR_STATES = [
    ScheduleState(),
    ScheduleState(ease_factor=2.5, interval_days=6, repetitions=2),
    ScheduleState(ease_factor=1.3, interval_days=40, repetitions=7),
    ScheduleState(ease_factor=3.1, interval_days=120, repetitions=12),
]


@pytest.mark.parametrize("quality", [ReviewQuality.AGAIN, ReviewQuality.HARD])
@pytest.mark.parametrize("state", PRIOR_STATES)
def test_lapse_resets_streak_and_interval(state, quality):
    update = review_card(state, quality, NOW)

    assert update.state.repetitions == 0
    assert update.state.interval_days == 1
    assert update.next_review_at == NOW + timedelta(days=1)


def test_hard_lowers_ease_but_counts_as_lapse():
    update = review_card(ScheduleState(2.5, 6, 3), ReviewQuality.HARD, NOW)

    assert update.state.ease_factor == pytest.approx(2.18)
    assert update.state.repetitions == 0


def test_again_subtracts_point_eight_from_ease():
    update = review_card(ScheduleState(2.5, 10, 4), ReviewQuality.AGAIN, NOW)
    assert update.state.ease_factor == pytest.approx(1.7)


def test_ease_factor_never_drops_below_floor():
    state = ScheduleState()
    for quality in [ReviewQuality.AGAIN] * 5 + [ReviewQuality.HARD, ReviewQuality.GOOD] * 5:
        state = review_card(state, quality, NOW).state
        assert state.ease_factor >= 1.3
    assert state.ease_factor == pytest.approx(1.3)


def test_success_intervals_follow_one_six_then_ease():
    state = ScheduleState()

    first = review_card(state, ReviewQuality.GOOD, NOW).state
    assert (first.repetitions, first.interval_days) == (1, 1)
    assert first.ease_factor == pytest.approx(2.36)

    second = review_card(first, ReviewQuality.GOOD, NOW).state
    assert (second.repetitions, second.interval_days) == (2, 6)
    assert second.ease_factor == pytest.approx(2.22)

    # Grows by the ease factor held before the review: round(6 * 2.22)
    third = review_card(second, ReviewQuality.GOOD, NOW).state
    assert (third.repetitions, third.interval_days) == (3, 13)


def test_mature_card_good_review():
    update = review_card(ScheduleState(2.5, 6, 2), ReviewQuality.GOOD, NOW)

    assert update.state.repetitions == 3
    assert update.state.interval_days == 15
    assert update.state.ease_factor == pytest.approx(2.36)
    assert update.next_review_at == NOW + timedelta(days=15)


def test_second_success_is_six_days_regardless_of_previous_interval():
    update = review_card(ScheduleState(2.5, 6, 1), ReviewQuality.GOOD, NOW)

    assert update.state.repetitions == 2
    assert update.state.interval_days == 6


def test_easy_raises_ease():
    update = review_card(ScheduleState(2.5, 10, 3), ReviewQuality.EASY, NOW)

    assert update.state.ease_factor == pytest.approx(2.6)
    assert update.state.interval_days == 25


def test_interval_rounds_half_up():
    update = review_card(ScheduleState(2.5, 1, 2), ReviewQuality.GOOD, NOW)
    assert update.state.interval_days == 3
