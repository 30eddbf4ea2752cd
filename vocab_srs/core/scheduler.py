"""SM-2 spaced repetition scheduling.

This module computes, for a single vocabulary item, when it becomes due for
review again given a recall-quality grade, and derives the coarse learning
status that the rest of the application keys off.

Everything here is pure: no I/O, no hidden state. Callers persist the
outcome together with the derived status and a ``last_reviewed_at`` update.

References:
    - SM-2: https://super-memory.com/english/ol/sm2.htm
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from vocab_srs.core.clock import utc_now
from vocab_srs.core.models import ReviewOutcome, WordStatus

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3

MIN_EASE_FACTOR = 1.3

FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
FAILED_INTERVAL_DAYS = 1

PROMOTE_AT_REPETITIONS = 2
MASTER_AT_REPETITIONS = 4


def clamp_quality(quality: int) -> int:
    """Clamp a recall grade into the 0-5 range."""
    return max(MIN_QUALITY, min(MAX_QUALITY, int(quality)))


def is_passing(quality: int) -> bool:
    """Whether a grade counts as a successful recall."""
    return clamp_quality(quality) >= PASSING_QUALITY


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def compute_next_state(
    quality: int,
    repetitions: int,
    ease_factor: float,
    interval_days: int,
    now: datetime | None = None,
) -> ReviewOutcome:
    """Compute the next SM-2 state for one item.

    Args:
        quality: Recall grade (0=total failure, 5=perfect recall)
        repetitions: Consecutive successful recalls so far
        ease_factor: Current ease factor
        interval_days: Current interval in days
        now: Current instant (defaults to the current UTC time)

    Returns:
        ReviewOutcome with new interval, repetitions, ease factor and due date
    """
    q = clamp_quality(quality)
    repetitions = max(0, int(repetitions))
    interval_days = max(0, int(interval_days))
    ease_factor = max(MIN_EASE_FACTOR, float(ease_factor))

    if q < PASSING_QUALITY:
        new_repetitions = 0
        new_interval = FAILED_INTERVAL_DAYS
        new_ease_factor = ease_factor
    else:
        if repetitions == 0:
            new_interval = FIRST_INTERVAL_DAYS
        elif repetitions == 1:
            new_interval = SECOND_INTERVAL_DAYS
        else:
            new_interval = round_half_up(interval_days * ease_factor)

        new_repetitions = repetitions + 1

        miss = MAX_QUALITY - q
        new_ease_factor = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
        new_ease_factor = max(MIN_EASE_FACTOR, new_ease_factor)

    current = now if now is not None else utc_now()

    return ReviewOutcome(
        interval=new_interval,
        repetitions=new_repetitions,
        ease_factor=new_ease_factor,
        next_review_date=current + timedelta(days=new_interval),
    )


def derive_status(
    current_status: WordStatus | int, quality: int, new_repetitions: int
) -> WordStatus:
    """Derive the learning status after a review.

    A failed review moves one level down but never below NEW; four
    consecutive successes master the item; from two successes on, each
    success moves one level up, capped at LEARNING_3.

    Args:
        current_status: Status before the review
        quality: Recall grade used for the review
        new_repetitions: Repetitions returned by ``compute_next_state``

    Returns:
        New status
    """
    status = WordStatus.coerce(int(current_status))

    if clamp_quality(quality) < PASSING_QUALITY:
        return WordStatus(max(WordStatus.NEW.value, status.value - 1))
    if new_repetitions >= MASTER_AT_REPETITIONS:
        return WordStatus.MASTERED
    if new_repetitions >= PROMOTE_AT_REPETITIONS:
        return WordStatus(min(WordStatus.LEARNING_3.value, status.value + 1))
    return status
