"""SM-2 spaced repetition scheduling and mastery classification."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .config import (
    MIN_EASE_FACTOR, MIN_QUALITY, MAX_QUALITY, PASSING_QUALITY, SECOND_INTERVAL_DAYS,
    TIMES_STUDIED_FOR_MASTERED, ACCURACY_FOR_MASTERED,
    TIMES_STUDIED_FOR_REVIEWING, ACCURACY_FOR_REVIEWING
)
from .models import MasteryLevel


@dataclass(frozen=True)
class ScheduleResult:
    ease_factor: float
    interval: int
    repetitions: int
    next_review_date: datetime


def next_state(ease_factor: float, interval: int, repetitions: int, quality: int,
               now: datetime) -> ScheduleResult:
    """Apply one SM-2 review.

    A quality below 3 is a lapse: repetitions restart and the word comes back
    tomorrow. Otherwise the interval grows 1 -> 6 -> interval * ease factor.
    The ease factor moves by the classic SM-2 delta and never drops below 1.3.
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise ValueError(f"quality must be an integer, got {quality!r}")
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise ValueError(f"quality must be in [{MIN_QUALITY}, {MAX_QUALITY}], got {quality}")

    if quality < PASSING_QUALITY:
        new_repetitions = 0
        new_interval = 1
    else:
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = SECOND_INTERVAL_DAYS
        else:
            new_interval = int(math.floor(interval * ease_factor + 0.5))

    miss = MAX_QUALITY - quality
    new_ease = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    new_ease = max(MIN_EASE_FACTOR, new_ease)

    return ScheduleResult(
        ease_factor=new_ease,
        interval=new_interval,
        repetitions=new_repetitions,
        next_review_date=now + timedelta(days=new_interval)
    )


def schedule_word(word, quality: int, now: datetime) -> ScheduleResult:
    """Run SM-2 on a word and write the result back onto it."""
    result = next_state(word.ease_factor, word.interval, word.repetitions, quality, now)
    word.ease_factor = result.ease_factor
    word.interval = result.interval
    word.repetitions = result.repetitions
    word.next_review_date = result.next_review_date
    return result


def classify_mastery(times_studied: int, times_correct: int) -> MasteryLevel:
    accuracy = times_correct / max(times_studied, 1)
    if times_studied >= TIMES_STUDIED_FOR_MASTERED and accuracy >= ACCURACY_FOR_MASTERED:
        return MasteryLevel.MASTERED
    if times_studied >= TIMES_STUDIED_FOR_REVIEWING and accuracy >= ACCURACY_FOR_REVIEWING:
        return MasteryLevel.REVIEWING
    if times_studied > 0:
        return MasteryLevel.LEARNING
    return MasteryLevel.NEW
