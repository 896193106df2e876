"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Callable


class LingoError(Exception):
    """Base class for collaborator failures surfaced to the engine."""


class QueryError(LingoError):
    """A repository read failed."""


class StoreError(LingoError):
    """A repository write failed."""


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class PeriodicTimer(ABC):
    """Cancellable periodic tick used for per-question countdowns."""

    @abstractmethod
    def start(self, interval: float, callback: Callable[[], None]) -> None:
        """Arm the timer, cancelling any tick already scheduled."""
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Stop ticking. Safe to call when not running."""
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        pass


class WordRepository(ABC):
    """Owner of Word records."""

    @abstractmethod
    def fetch_due(self, before: datetime, category: str | None = None) -> list:
        """Words whose next review date is at or before `before`,
        earliest due first. Raises QueryError."""
        pass

    @abstractmethod
    def fetch_for_learning(self, min_study_count: int, session_limit: int,
                           category: str | None = None) -> list:
        """Words studied fewer than `min_study_count` times plus words at or
        above it still at new/learning mastery, each group oldest-studied
        first and capped at `session_limit`. Raises QueryError."""
        pass

    @abstractmethod
    def save(self, word) -> None:
        """Persist a word. Raises StoreError."""
        pass


class ProgressStore(ABC):
    """Owner of the daily progress and lifetime stats aggregates."""

    @abstractmethod
    def fetch_or_create_today(self, day: date):
        """Return the DailyProgress for `day`, creating an empty one if needed."""
        pass

    @abstractmethod
    def save_daily_progress(self, progress) -> None:
        """Raises StoreError."""
        pass

    @abstractmethod
    def fetch_or_create_user_stats(self):
        pass

    @abstractmethod
    def save_user_stats(self, stats) -> None:
        """Raises StoreError."""
        pass


class SessionSink(ABC):
    """Receives finished session results."""

    @abstractmethod
    def record(self, result) -> None:
        pass


class AchievementEvaluator(ABC):
    """Checks achievement predicates after a session."""

    @abstractmethod
    def evaluate(self, stats, context) -> list:
        """Returns newly unlocked achievements (possibly empty)."""
        pass


class FeedbackPort(ABC):
    """Sound/haptic side effects, invoked after a result is computed."""

    @abstractmethod
    def play(self, cue: str) -> None:
        pass
