"""Domain models for lingo application."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .config import DEFAULT_EASE_FACTOR, EASY_QUALITY, KNOWN_QUALITY, UNKNOWN_QUALITY


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value else None


def _parse_datetime(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _parse_date(value) -> date | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


class MasteryLevel(Enum):
    """Coarse learning stage of a word, ordered new < learning < reviewing < mastered."""

    NEW = 'new'
    LEARNING = 'learning'
    REVIEWING = 'reviewing'
    MASTERED = 'mastered'

    @property
    def rank(self) -> int:
        return list(MasteryLevel).index(self)

    def __lt__(self, other):
        if not isinstance(other, MasteryLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, MasteryLevel):
            return NotImplemented
        return self.rank <= other.rank


class SwipeDirection(Enum):
    LEFT = 'left'     # Don't know
    RIGHT = 'right'   # Know
    UP = 'up'         # Favorite toggle
    DOWN = 'down'     # Easy

    @property
    def quality(self) -> int | None:
        """SM-2 grade for this swipe, None for the favorite toggle."""
        return {
            SwipeDirection.LEFT: UNKNOWN_QUALITY,
            SwipeDirection.RIGHT: KNOWN_QUALITY,
            SwipeDirection.DOWN: EASY_QUALITY,
        }.get(self)

    @property
    def is_known(self) -> bool:
        return self in (SwipeDirection.RIGHT, SwipeDirection.DOWN)


class LearningMode(Enum):
    LEARNING = 'learning'   # New and weak words
    REVIEW = 'review'       # Words due for review


class SessionType(Enum):
    LEARNING = 'learning'
    REVIEW = 'review'
    MULTIPLE_CHOICE = 'multipleChoice'
    FILL_IN_BLANK = 'fillInBlank'
    LISTENING = 'listening'
    TRUE_FALSE = 'trueFalse'
    MULTI_SELECT = 'multiSelect'


QUIZ_TYPES = (
    SessionType.MULTIPLE_CHOICE,
    SessionType.FILL_IN_BLANK,
    SessionType.LISTENING,
    SessionType.TRUE_FALSE,
    SessionType.MULTI_SELECT,
)


class WordSort(Enum):
    """Orderings offered by the word list."""

    ALPHABETICAL = 'alphabetical'
    ALPHABETICAL_REVERSE = 'alphabeticalReverse'
    RECENTLY_STUDIED = 'recentlyStudied'
    MASTERY = 'mastery'


class Word:
    """A vocabulary item and its learning state."""

    # Fields captured by an undo snapshot
    LEARNING_FIELDS = [
        'ease_factor', 'interval', 'repetitions', 'next_review_date',
        'times_studied', 'times_correct', 'last_studied_date', 'mastery_level'
    ]

    def __init__(self, term: str, translation: str, category: str = None,
                 word_id: str = None, phonetic: str = '', part_of_speech: str = '',
                 example_sentence: str = ''):
        self.id = word_id or str(uuid.uuid4())
        self.term = term
        self.translation = translation
        self.category = category
        self.phonetic = phonetic
        self.part_of_speech = part_of_speech
        self.example_sentence = example_sentence
        self.ease_factor = DEFAULT_EASE_FACTOR
        self.interval = 0
        self.repetitions = 0
        self.next_review_date = None
        self.times_studied = 0
        self.times_correct = 0
        self.last_studied_date = None
        self.mastery_level = MasteryLevel.NEW
        self.is_favorite = False

    def __repr__(self) -> str:
        return f"Word({self.term!r}, {self.translation!r}, id={self.id!r})"

    @property
    def accuracy(self) -> float:
        return self.times_correct / max(self.times_studied, 1)

    def is_due(self, now: datetime) -> bool:
        return self.next_review_date is not None and self.next_review_date <= now

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'term': self.term,
            'translation': self.translation,
            'category': self.category,
            'phonetic': self.phonetic,
            'part_of_speech': self.part_of_speech,
            'example_sentence': self.example_sentence,
            'ease_factor': self.ease_factor,
            'interval': self.interval,
            'repetitions': self.repetitions,
            'next_review_date': _iso(self.next_review_date),
            'times_studied': self.times_studied,
            'times_correct': self.times_correct,
            'last_studied_date': _iso(self.last_studied_date),
            'mastery_level': self.mastery_level.value,
            'is_favorite': self.is_favorite
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Word':
        word = cls(
            data['term'], data['translation'], data.get('category'),
            word_id=data.get('id'),
            phonetic=data.get('phonetic') or '',
            part_of_speech=data.get('part_of_speech') or '',
            example_sentence=data.get('example_sentence') or ''
        )
        word.ease_factor = float(data.get('ease_factor', DEFAULT_EASE_FACTOR))
        word.interval = int(data.get('interval', 0))
        word.repetitions = int(data.get('repetitions', 0))
        word.next_review_date = _parse_datetime(data.get('next_review_date'))
        word.times_studied = int(data.get('times_studied', 0))
        word.times_correct = int(data.get('times_correct', 0))
        word.last_studied_date = _parse_datetime(data.get('last_studied_date'))
        word.mastery_level = MasteryLevel(data.get('mastery_level', 'new'))
        word.is_favorite = bool(data.get('is_favorite', False))
        return word


@dataclass(frozen=True)
class ReviewOutcome:
    """Learning state of a word before a swipe mutated it."""

    word_id: str
    ease_factor: float
    interval: int
    repetitions: int
    next_review_date: datetime | None
    times_studied: int
    times_correct: int
    last_studied_date: datetime | None
    mastery_level: MasteryLevel
    direction: SwipeDirection

    @classmethod
    def capture(cls, word: Word, direction: SwipeDirection) -> 'ReviewOutcome':
        return cls(word.id, direction=direction,
                   **{name: getattr(word, name) for name in Word.LEARNING_FIELDS})

    def restore(self, word: Word) -> None:
        for name in Word.LEARNING_FIELDS:
            setattr(word, name, getattr(self, name))


class SessionStats:
    """Running counters for a review session."""

    def __init__(self):
        self.total_reviewed = 0
        self.known_count = 0
        self.unknown_count = 0
        self.duration = 0.0

    @property
    def accuracy(self) -> float:
        if self.total_reviewed == 0:
            return 0.0
        return self.known_count / self.total_reviewed

    @property
    def words_per_minute(self) -> float:
        if self.duration <= 0:
            return 0.0
        return self.total_reviewed / (self.duration / 60.0)

    def to_dict(self) -> dict:
        return {
            'total_reviewed': self.total_reviewed,
            'known_count': self.known_count,
            'unknown_count': self.unknown_count,
            'duration': self.duration,
            'accuracy': self.accuracy
        }


class DailyProgress:
    """Per-day study aggregate."""

    def __init__(self, day: date):
        self.date = day
        self.words_learned = 0
        self.words_reviewed = 0
        self.total_study_time = 0.0
        self.sessions_completed = 0
        self.accuracy = 0.0  # Percent, weighted by words

    @property
    def total_words(self) -> int:
        return self.words_learned + self.words_reviewed

    def to_dict(self) -> dict:
        return {
            'date': _iso(self.date),
            'words_learned': self.words_learned,
            'words_reviewed': self.words_reviewed,
            'total_study_time': self.total_study_time,
            'sessions_completed': self.sessions_completed,
            'accuracy': self.accuracy
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DailyProgress':
        progress = cls(_parse_date(data['date']))
        progress.words_learned = int(data.get('words_learned', 0))
        progress.words_reviewed = int(data.get('words_reviewed', 0))
        progress.total_study_time = float(data.get('total_study_time', 0.0))
        progress.sessions_completed = int(data.get('sessions_completed', 0))
        progress.accuracy = float(data.get('accuracy', 0.0))
        return progress


class UserStats:
    """Lifetime totals and study streak."""

    def __init__(self):
        self.total_words_learned = 0
        self.total_study_time = 0.0
        self.current_streak = 0
        self.longest_streak = 0
        self.last_study_date = None

    def to_dict(self) -> dict:
        return {
            'total_words_learned': self.total_words_learned,
            'total_study_time': self.total_study_time,
            'current_streak': self.current_streak,
            'longest_streak': self.longest_streak,
            'last_study_date': _iso(self.last_study_date)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'UserStats':
        stats = cls()
        stats.total_words_learned = int(data.get('total_words_learned', 0))
        stats.total_study_time = float(data.get('total_study_time', 0.0))
        stats.current_streak = int(data.get('current_streak', 0))
        stats.longest_streak = int(data.get('longest_streak', 0))
        stats.last_study_date = _parse_datetime(data.get('last_study_date'))
        return stats


@dataclass(frozen=True)
class SessionContext:
    """Session facts handed to the achievement evaluator."""

    mode: SessionType
    is_perfect: bool
    study_time: datetime
    known_count: int
    total_reviewed: int


@dataclass(frozen=True)
class SessionResult:
    """Summary of a finished session, produced once at completion."""

    session_type: SessionType
    words_studied: int
    words_correct: int
    words_incorrect: int
    duration: float
    completed_at: datetime
    full_correct: int = 0
    partial_correct: int = 0
    zero_score: int = 0
    partial_score: float = 0.0
    completed: bool = True

    @property
    def accuracy(self) -> float:
        if self.words_studied == 0:
            return 0.0
        return self.words_correct / self.words_studied

    def to_dict(self) -> dict:
        return {
            'session_type': self.session_type.value,
            'words_studied': self.words_studied,
            'words_correct': self.words_correct,
            'words_incorrect': self.words_incorrect,
            'duration': self.duration,
            'completed_at': _iso(self.completed_at),
            'full_correct': self.full_correct,
            'partial_correct': self.partial_correct,
            'zero_score': self.zero_score,
            'partial_score': self.partial_score,
            'completed': self.completed
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionResult':
        return cls(
            session_type=SessionType(data['session_type']),
            words_studied=int(data['words_studied']),
            words_correct=int(data['words_correct']),
            words_incorrect=int(data['words_incorrect']),
            duration=float(data['duration']),
            completed_at=_parse_datetime(data['completed_at']),
            full_correct=int(data.get('full_correct', 0)),
            partial_correct=int(data.get('partial_correct', 0)),
            zero_score=int(data.get('zero_score', 0)),
            partial_score=float(data.get('partial_score', 0.0)),
            completed=bool(data.get('completed', True))
        )


@dataclass(frozen=True)
class Question:
    """One quiz item. Multi-select questions carry `correct_answers`.

    `prompt` is the text shown to answer from. Listening questions only carry
    the pronunciation, if any.
    """

    word: Word
    options: tuple
    correct_answer: str = ''
    correct_answers: frozenset = frozenset()
    statement: str | None = None
    correct_bool: bool | None = None
    prompt: str | None = None

    def __post_init__(self):
        if self.correct_answers and not self.correct_answers <= set(self.options):
            raise ValueError("correct answers must be among the presented options")

    @property
    def is_multi_select(self) -> bool:
        return bool(self.correct_answers)

    @property
    def is_free_text(self) -> bool:
        return not self.options

    def to_dict(self, reveal: bool = False) -> dict:
        data = {
            'word_id': self.word.id,
            'prompt': self.prompt,
            'options': list(self.options),
            'statement': self.statement,
            'multi_select': self.is_multi_select
        }
        if reveal:
            data['term'] = self.word.term
            data['translation'] = self.word.translation
            data['correct_answer'] = self.correct_answer
            data['correct_answers'] = sorted(self.correct_answers)
        return data


@dataclass(frozen=True)
class WrongAnswer:
    word: Word
    user_answer: str
    correct_answer: str

    def to_dict(self) -> dict:
        return {
            'word_id': self.word.id,
            'term': self.word.term,
            'user_answer': self.user_answer,
            'correct_answer': self.correct_answer
        }


@dataclass(frozen=True)
class Effect:
    """Side effect produced by applying an event, for observers to act on."""

    kind: str
    payload: dict = field(default_factory=dict)
