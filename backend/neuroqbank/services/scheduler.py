"""
Simplified SM-2 scheduling for flashcards.

A review maps the four-button rating onto the SM-2 quality scale and
produces the card's next ease factor, interval and repetition streak.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from neuroqbank.models.flashcard import ReviewQuality

# --- SM-2 quality mapping ---
QUALITY_SCORES: dict[ReviewQuality, int] = {
    ReviewQuality.AGAIN: 0,
    ReviewQuality.HARD: 2,
    ReviewQuality.GOOD: 3,
    ReviewQuality.EASY: 5,
}

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_QUALITY = 3


@dataclass(frozen=True)
class ScheduleState:
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 1
    repetitions: int = 0


@dataclass(frozen=True)
class ScheduleUpdate:
    state: ScheduleState
    next_review_at: datetime


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def next_ease_factor(ease_factor: float, q: int) -> float:
    return max(MIN_EASE_FACTOR, ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)))


def review_card(
    state: ScheduleState,
    quality: ReviewQuality,
    now: datetime,
) -> ScheduleUpdate:
    """
    Compute the next scheduling state for a reviewed card.

    Any quality below 3 is a lapse, which includes HARD (q=2): it resets the
    streak exactly like AGAIN. The interval for a mature card grows by the
    ease factor held before this review; the ease factor is then adjusted on
    every review, success or lapse.
    """
    q = QUALITY_SCORES[quality]

    if q < PASSING_QUALITY:
        repetitions = 0
        interval_days = 1
    else:
        if state.repetitions == 0:
            interval_days = 1
        elif state.repetitions == 1:
            interval_days = 6
        else:
            interval_days = round_half_up(state.interval_days * state.ease_factor)
        repetitions = state.repetitions + 1

    new_state = ScheduleState(
        ease_factor=next_ease_factor(state.ease_factor, q),
        interval_days=interval_days,
        repetitions=repetitions,
    )
    return ScheduleUpdate(
        state=new_state,
        next_review_at=now + timedelta(days=interval_days),
    )
