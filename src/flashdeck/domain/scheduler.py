"""
SM-2 scheduler.

A pure transition from (review state, recall grade) to the next review state.
No I/O, no validation: the caller guarantees ``quality`` is within 1-5.
"""

import math

from .constants import MIN_EASE_FACTOR, MS_PER_DAY, PASSING_QUALITY, SECOND_INTERVAL
from .models import ReviewState, now_ms


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up (12.5 -> 13)."""
    return int(math.floor(value + 0.5))


def next_ease_factor(ease_factor: float, quality: int) -> float:
    """
    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3.
    """
    penalty = 5 - quality
    ease_factor = ease_factor + (0.1 - penalty * (0.08 + penalty * 0.02))
    if ease_factor < MIN_EASE_FACTOR:
        ease_factor = MIN_EASE_FACTOR
    return ease_factor


def update_sm2(state: ReviewState, quality: int, now: int | None = None) -> ReviewState:
    """
    Compute the next review state for a graded recall.

    Args:
        state: Current scheduling state (not modified).
        quality: Recall grade 1-5. Grades below 3 are failures.
        now: Epoch milliseconds used as the base of the new due date.
            Defaults to the current wall clock.

    Returns:
        A new ReviewState.
    """
    interval = state.interval
    repetition = state.repetition

    if quality < PASSING_QUALITY:
        repetition = 0
        interval = 1
    else:
        if repetition == 0:
            interval = 1
        elif repetition == 1:
            interval = SECOND_INTERVAL
        else:
            # Uses the ease factor from before this review's adjustment
            interval = round_half_up(interval * state.ease_factor)
        repetition += 1

    # Runs on both branches
    ease_factor = next_ease_factor(state.ease_factor, quality)

    base = now if now is not None else now_ms()
    return ReviewState(
        interval=interval,
        repetition=repetition,
        ease_factor=ease_factor,
        due=base + interval * MS_PER_DAY,
    )
