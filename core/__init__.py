from .models import (
    Word, MasteryLevel, SwipeDirection, LearningMode, SessionType, QUIZ_TYPES, WordSort,
    ReviewOutcome, SessionStats, DailyProgress, UserStats, SessionContext,
    SessionResult, Question, WrongAnswer, Effect
)
from .interfaces import (
    LingoError, QueryError, StoreError,
    Clock, PeriodicTimer, WordRepository, ProgressStore, SessionSink,
    AchievementEvaluator, FeedbackPort
)
from .scheduler import ScheduleResult, next_state, schedule_word, classify_mastery
from .timers import SystemClock, AsyncioPeriodicTimer
from .review import ReviewSession, ReviewState, SessionStatus, Swipe, Undo
from .quiz import QuizEngine, AnswerOutcome, OptionMark, score_selection
from .utils import split_senses

__all__ = [
    'Word', 'MasteryLevel', 'SwipeDirection', 'LearningMode', 'SessionType', 'QUIZ_TYPES', 'WordSort',
    'ReviewOutcome', 'SessionStats', 'DailyProgress', 'UserStats', 'SessionContext',
    'SessionResult', 'Question', 'WrongAnswer', 'Effect',
    'LingoError', 'QueryError', 'StoreError',
    'Clock', 'PeriodicTimer', 'WordRepository', 'ProgressStore', 'SessionSink',
    'AchievementEvaluator', 'FeedbackPort',
    'ScheduleResult', 'next_state', 'schedule_word', 'classify_mastery',
    'SystemClock', 'AsyncioPeriodicTimer',
    'ReviewSession', 'ReviewState', 'SessionStatus', 'Swipe', 'Undo',
    'QuizEngine', 'AnswerOutcome', 'OptionMark', 'score_selection',
    'split_senses'
]
