"""Flashcard review session: queue, undo history and completion bookkeeping."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from .config import (
    CARDS_PER_SESSION, MIN_TIMES_STUDIED_FOR_LEARNING, DEFAULT_DAILY_GOAL
)
from .interfaces import (
    WordRepository, ProgressStore, SessionSink, AchievementEvaluator,
    Clock, FeedbackPort, QueryError, StoreError
)
from .models import (
    Effect, LearningMode, MasteryLevel, ReviewOutcome, SessionContext,
    SessionResult, SessionStats, SessionType, SwipeDirection, Word
)
from .scheduler import classify_mastery, schedule_word
from .timers import SystemClock
from .utils import calendar_days_between, clamp_daily_goal, due_key, last_studied_key

logger = logging.getLogger(__name__)

# Effect kinds
WORD_SAVED = 'word_saved'
WORD_MASTERED = 'word_mastered'
FAVORITE_TOGGLED = 'favorite_toggled'
UNDONE = 'undone'
DAILY_GOAL_REACHED = 'daily_goal_reached'
ACHIEVEMENTS_UNLOCKED = 'achievements_unlocked'
SESSION_COMPLETED = 'session_completed'
FEEDBACK = 'feedback'

_SWIPE_CUES = {
    SwipeDirection.RIGHT: 'swipe_right',
    SwipeDirection.DOWN: 'success',
    SwipeDirection.LEFT: 'swipe_left',
    SwipeDirection.UP: 'tap',
}


class SessionStatus(Enum):
    LOADING = 'loading'
    ACTIVE = 'active'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class Swipe:
    direction: SwipeDirection


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class ReviewState:
    """Read-only view of a session, handed to observers."""

    status: SessionStatus
    mode: LearningMode
    current_index: int
    total_words: int
    current_word_id: str | None
    total_reviewed: int
    known_count: int
    unknown_count: int
    accuracy: float
    can_undo: bool
    just_mastered: str | None
    daily_goal_just_reached: bool
    unlocked_achievements: tuple
    result: SessionResult | None

    def to_dict(self) -> dict:
        return {
            'status': self.status.value,
            'mode': self.mode.value,
            'current_index': self.current_index,
            'total_words': self.total_words,
            'current_word_id': self.current_word_id,
            'total_reviewed': self.total_reviewed,
            'known_count': self.known_count,
            'unknown_count': self.unknown_count,
            'accuracy': self.accuracy,
            'can_undo': self.can_undo,
            'just_mastered': self.just_mastered,
            'daily_goal_just_reached': self.daily_goal_just_reached,
            'unlocked_achievements': list(self.unlocked_achievements),
            'result': self.result.to_dict() if self.result else None
        }


class ReviewSession:
    """Drives one learning or review pass over a queue of words.

    Call start() to load the queue, then feed Swipe/Undo events through
    apply() (or the advance()/undo() shortcuts). Every applied event returns
    the effects it produced; subscribers receive the new state with them.
    """

    def __init__(self, repository: WordRepository, progress_store: ProgressStore,
                 sink: SessionSink, achievements: AchievementEvaluator,
                 mode: LearningMode = LearningMode.LEARNING, category: str = None,
                 clock: Clock = None, feedback: FeedbackPort = None,
                 daily_goal: int = DEFAULT_DAILY_GOAL,
                 session_size: int = CARDS_PER_SESSION):
        self.repository = repository
        self.progress_store = progress_store
        self.sink = sink
        self.achievements = achievements
        self.mode = mode
        self.category = category
        self.clock = clock or SystemClock()
        self.feedback = feedback
        self.daily_goal = clamp_daily_goal(daily_goal)
        self.session_size = session_size
        self._observers = []
        self.reset()

    def reset(self) -> None:
        """Drop the queue, counters, undo history and completion flags.
        Subscribers stay registered."""
        self.status = SessionStatus.LOADING
        self.words = []
        self.current_index = 0
        self.stats = SessionStats()
        self.just_mastered = None
        self.daily_goal_just_reached = False
        self.unlocked_achievements = []
        self.result = None
        self._history = []
        self._started_at = None

    @property
    def current_word(self) -> Word | None:
        if self.current_index < len(self.words):
            return self.words[self.current_index]
        return None

    @property
    def has_more_cards(self) -> bool:
        return self.current_index < len(self.words)

    @property
    def can_undo(self) -> bool:
        return (self.status == SessionStatus.ACTIVE
                and self.current_index > 0 and bool(self._history))

    @property
    def session_type(self) -> SessionType:
        return SessionType.LEARNING if self.mode == LearningMode.LEARNING else SessionType.REVIEW

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """Register `callback(state, effects)`. Returns an unsubscribe function."""
        self._observers.append(callback)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)
        return unsubscribe

    def state(self) -> ReviewState:
        word = self.current_word
        return ReviewState(
            status=self.status,
            mode=self.mode,
            current_index=self.current_index,
            total_words=len(self.words),
            current_word_id=word.id if word else None,
            total_reviewed=self.stats.total_reviewed,
            known_count=self.stats.known_count,
            unknown_count=self.stats.unknown_count,
            accuracy=self.stats.accuracy,
            can_undo=self.can_undo,
            just_mastered=self.just_mastered.id if self.just_mastered else None,
            daily_goal_just_reached=self.daily_goal_just_reached,
            unlocked_achievements=tuple(self.unlocked_achievements),
            result=self.result
        )

    def _notify(self, effects: list) -> None:
        if not self._observers:
            return
        state = self.state()
        for callback in list(self._observers):
            callback(state, effects)

    def _play(self, cue: str, effects: list) -> None:
        effects.append(Effect(FEEDBACK, {'cue': cue}))
        if self.feedback:
            self.feedback.play(cue)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def start(self) -> list[Effect]:
        """Load the word queue, starting over if the session already ran.
        An empty (or failed) query completes the session."""
        effects = []
        self.reset()
        self._started_at = self.clock.now()
        self.words = self._load_words()
        logger.debug(f"Loaded {len(self.words)} words for {self.mode.value} mode")

        if self.words:
            self.status = SessionStatus.ACTIVE
        else:
            self.status = SessionStatus.COMPLETED
            self.result = SessionResult(
                session_type=self.session_type,
                words_studied=0, words_correct=0, words_incorrect=0,
                duration=0.0, completed_at=self._started_at
            )
            effects.append(Effect(SESSION_COMPLETED, {'empty': True}))
        self._notify(effects)
        return effects

    def _load_words(self) -> list:
        try:
            if self.mode == LearningMode.LEARNING:
                words = self.repository.fetch_for_learning(
                    MIN_TIMES_STUDIED_FOR_LEARNING, self.session_size, self.category
                )
                words = sorted(words, key=last_studied_key)
            else:
                words = self.repository.fetch_due(self.clock.now(), self.category)
                words = sorted(words, key=due_key)
        except QueryError as e:
            logger.error(f"Failed to load words for {self.mode.value} session: {e}")
            return []

        if self.category is not None:
            words = [w for w in words if w.category == self.category]
        return list(words[:self.session_size])

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def apply(self, event) -> list[Effect]:
        """Apply a Swipe or Undo event and return the effects it produced."""
        self.just_mastered = None
        effects = []
        if isinstance(event, Swipe):
            self._swipe(event.direction, effects)
        elif isinstance(event, Undo):
            self._undo(effects)
        else:
            raise ValueError(f"Unknown review event: {event!r}")
        self._notify(effects)
        return effects

    def advance(self, direction) -> list[Effect]:
        if not isinstance(direction, SwipeDirection):
            direction = SwipeDirection(direction)
        return self.apply(Swipe(direction))

    def undo(self) -> list[Effect]:
        return self.apply(Undo())

    def _swipe(self, direction: SwipeDirection, effects: list) -> None:
        if self.status != SessionStatus.ACTIVE:
            return
        word = self.current_word
        if word is None:
            return

        if direction == SwipeDirection.UP:
            word.is_favorite = not word.is_favorite
            effects.append(Effect(FAVORITE_TOGGLED, {'word_id': word.id, 'is_favorite': word.is_favorite}))
            self._save_word(word, effects)
            self._play(_SWIPE_CUES[direction], effects)
            return

        snapshot = ReviewOutcome.capture(word, direction)
        self._study(word, direction, effects)
        self._history.append(snapshot)

        if direction.is_known:
            self.stats.known_count += 1
        else:
            self.stats.unknown_count += 1
        self.stats.total_reviewed += 1
        self._play(_SWIPE_CUES[direction], effects)

        self.current_index += 1
        if not self.has_more_cards:
            self._complete(effects)

    def _study(self, word: Word, direction: SwipeDirection, effects: list) -> None:
        now = self.clock.now()
        schedule_word(word, direction.quality, now)
        word.times_studied += 1
        if direction.is_known:
            word.times_correct += 1
        word.last_studied_date = now
        self._update_mastery(word, effects)
        self._save_word(word, effects)

    def _update_mastery(self, word: Word, effects: list) -> None:
        previous = word.mastery_level
        word.mastery_level = classify_mastery(word.times_studied, word.times_correct)
        if previous != MasteryLevel.MASTERED and word.mastery_level == MasteryLevel.MASTERED:
            self.just_mastered = word
            effects.append(Effect(WORD_MASTERED, {'word_id': word.id, 'term': word.term}))
            logger.info(f"Word mastered: {word.term}")

    def _save_word(self, word: Word, effects: list) -> None:
        try:
            self.repository.save(word)
        except StoreError as e:
            # In-memory state stays authoritative for the rest of the session
            logger.error(f"Failed to save word {word.id}: {e}")
            return
        effects.append(Effect(WORD_SAVED, {'word_id': word.id}))

    def _undo(self, effects: list) -> None:
        if not self.can_undo:
            return
        snapshot = self._history.pop()

        word = next((w for w in self.words if w.id == snapshot.word_id), None)
        if word is not None:
            snapshot.restore(word)
            if snapshot.direction.is_known:
                self.stats.known_count -= 1
            else:
                self.stats.unknown_count -= 1
            self.stats.total_reviewed -= 1
            self._save_word(word, effects)

        self.current_index -= 1
        effects.append(Effect(UNDONE, {'word_id': snapshot.word_id}))

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _complete(self, effects: list) -> None:
        now = self.clock.now()
        duration = (now - self._started_at).total_seconds()
        self.stats.duration = duration

        self._update_daily_progress(duration, now, effects)
        user_stats = self._update_user_stats(duration, now)
        self.result = SessionResult(
            session_type=self.session_type,
            words_studied=self.stats.total_reviewed,
            words_correct=self.stats.known_count,
            words_incorrect=self.stats.unknown_count,
            duration=duration,
            completed_at=now
        )
        self.sink.record(self.result)
        if user_stats is not None:
            self._check_achievements(user_stats, now, effects)

        self.status = SessionStatus.COMPLETED
        effects.append(Effect(SESSION_COMPLETED, {'result': self.result.to_dict()}))
        self._play('complete', effects)
        logger.info(
            f"{self.mode.value} session complete: {self.stats.known_count}/"
            f"{self.stats.total_reviewed} known in {duration:.1f}s"
        )

    def _update_daily_progress(self, duration: float, now: datetime, effects: list) -> None:
        try:
            progress = self.progress_store.fetch_or_create_today(now.date())
        except QueryError as e:
            logger.error(f"Failed to load daily progress: {e}")
            return

        was_under_goal = progress.total_words < self.daily_goal
        if self.mode == LearningMode.LEARNING:
            progress.words_learned += self.stats.total_reviewed
        else:
            progress.words_reviewed += self.stats.total_reviewed

        if was_under_goal and progress.total_words >= self.daily_goal:
            self.daily_goal_just_reached = True
            effects.append(Effect(DAILY_GOAL_REACHED, {'goal': self.daily_goal}))

        progress.sessions_completed += 1
        progress.total_study_time += duration

        session_total = self.stats.total_reviewed
        if session_total > 0:
            previous_total = progress.total_words - session_total
            session_percent = self.stats.accuracy * 100
            if previous_total > 0:
                progress.accuracy = (
                    progress.accuracy * previous_total + session_percent * session_total
                ) / (previous_total + session_total)
            else:
                progress.accuracy = session_percent

        try:
            self.progress_store.save_daily_progress(progress)
        except StoreError as e:
            logger.error(f"Failed to save daily progress: {e}")

    def _update_user_stats(self, duration: float, now: datetime):
        try:
            stats = self.progress_store.fetch_or_create_user_stats()
        except QueryError as e:
            logger.error(f"Failed to load user stats: {e}")
            return None

        stats.total_words_learned += self.stats.known_count
        stats.total_study_time += duration

        if stats.last_study_date is None:
            stats.current_streak = 1
            stats.longest_streak = 1
        else:
            days = calendar_days_between(stats.last_study_date, now)
            # days <= 0: same day, or the clock moved backwards; streak unchanged
            if days == 1:
                stats.current_streak += 1
                stats.longest_streak = max(stats.longest_streak, stats.current_streak)
            elif days > 1:
                stats.current_streak = 1
        if stats.last_study_date is None or now > stats.last_study_date:
            stats.last_study_date = now

        try:
            self.progress_store.save_user_stats(stats)
        except StoreError as e:
            logger.error(f"Failed to save user stats: {e}")
        return stats

    def _check_achievements(self, user_stats, now: datetime, effects: list) -> None:
        context = SessionContext(
            mode=self.session_type,
            is_perfect=self.stats.total_reviewed > 0 and self.stats.unknown_count == 0,
            study_time=now,
            known_count=self.stats.known_count,
            total_reviewed=self.stats.total_reviewed
        )
        unlocked = list(self.achievements.evaluate(user_stats, context))
        self.unlocked_achievements = unlocked
        if unlocked:
            effects.append(Effect(ACHIEVEMENTS_UNLOCKED, {'achievements': unlocked}))
