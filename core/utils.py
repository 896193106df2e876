"""Utility functions for lingo application."""

import re
from datetime import date, datetime

from .config import SENSE_SEPARATORS, MIN_DAILY_GOAL, MAX_DAILY_GOAL
from .models import MasteryLevel, WordSort

_SENSE_SPLIT = re.compile('[' + re.escape(SENSE_SEPARATORS) + ']')

# Never-studied words sort before everything else
_EPOCH = datetime.min


def split_senses(translation: str) -> list[str]:
    """Split a translation like 'give up; abandon' into its separate senses."""
    parts = []
    for part in _SENSE_SPLIT.split(translation):
        part = part.strip()
        if part:
            parts.append(part)
    return parts


def normalize_answer(text: str) -> str:
    return text.strip().lower()


def calendar_days_between(earlier: datetime | date, later: datetime | date) -> int:
    if isinstance(earlier, datetime):
        earlier = earlier.date()
    if isinstance(later, datetime):
        later = later.date()
    return (later - earlier).days


def clamp_daily_goal(goal: int) -> int:
    return min(MAX_DAILY_GOAL, max(MIN_DAILY_GOAL, goal))


def last_studied_key(word) -> datetime:
    return word.last_studied_date or _EPOCH


def due_key(word) -> datetime:
    return word.next_review_date or _EPOCH


def select_learning_words(words, min_study_count: int, session_limit: int,
                          category: str | None = None) -> list:
    """In-memory version of the learning-pool query used by storages that
    hold every word: under-studied words plus weak words, oldest first."""
    if category is not None:
        words = [w for w in words if w.category == category]
    by_age = sorted(words, key=last_studied_key)
    fresh = [w for w in by_age if w.times_studied < min_study_count][:session_limit]
    weak = [
        w for w in by_age
        if w.times_studied >= min_study_count
        and w.mastery_level in (MasteryLevel.NEW, MasteryLevel.LEARNING)
    ][:session_limit]
    return sorted(fresh + weak, key=last_studied_key)


def select_due_words(words, before: datetime, category: str | None = None) -> list:
    due = [w for w in words if w.is_due(before)]
    if category is not None:
        due = [w for w in due if w.category == category]
    return sorted(due, key=due_key)


def filter_words(words, search: str | None = None, mastery: MasteryLevel | None = None,
                 favorite: bool | None = None) -> list:
    """Word-list filters. `search` matches the term or phonetic ignoring case,
    and the translation as written."""
    result = list(words)
    if mastery is not None:
        result = [w for w in result if w.mastery_level == mastery]
    if favorite is not None:
        result = [w for w in result if w.is_favorite == favorite]
    if search:
        needle = search.lower()
        result = [
            w for w in result
            if needle in w.term.lower()
            or search in w.translation
            or needle in w.phonetic.lower()
        ]
    return result


def sort_words(words, order: WordSort = WordSort.ALPHABETICAL) -> list:
    if order == WordSort.ALPHABETICAL:
        return sorted(words, key=lambda w: w.term.lower())
    if order == WordSort.ALPHABETICAL_REVERSE:
        return sorted(words, key=lambda w: w.term.lower(), reverse=True)
    if order == WordSort.RECENTLY_STUDIED:
        return sorted(words, key=last_studied_key, reverse=True)
    return sorted(words, key=lambda w: w.mastery_level.rank)


def mastery_counts(words) -> dict[str, int]:
    """Badge counts for the word list: total, favorites and one per mastery level."""
    words = list(words)
    counts = {'total': len(words), 'favorites': sum(1 for w in words if w.is_favorite)}
    for level in MasteryLevel:
        counts[level.value] = sum(1 for w in words if w.mastery_level == level)
    return counts


def goal_progress(progress, daily_goal: int) -> float:
    """Fraction of today's goal done, capped at 1.0."""
    if daily_goal <= 0:
        return 0.0
    return min(progress.total_words / daily_goal, 1.0)
