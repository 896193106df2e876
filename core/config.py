"""Configuration constants for lingo application."""

# SM-2 scheduling
MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3           # Qualities below this reset the repetition count
SECOND_INTERVAL_DAYS = 6

# Swipe grades
UNKNOWN_QUALITY = 0           # Left swipe: didn't recall
KNOWN_QUALITY = 4             # Right swipe: good recall
EASY_QUALITY = 5              # Down swipe: instant recall

# Mastery classification
TIMES_STUDIED_FOR_REVIEWING = 3
ACCURACY_FOR_REVIEWING = 0.7
TIMES_STUDIED_FOR_MASTERED = 5
ACCURACY_FOR_MASTERED = 0.9

# Session selection
CARDS_PER_SESSION = 20
MIN_TIMES_STUDIED_FOR_LEARNING = 3

# Daily goal (words per day)
DEFAULT_DAILY_GOAL = 20
MIN_DAILY_GOAL = 10
MAX_DAILY_GOAL = 100

# Quiz
DEFAULT_TIME_LIMIT = 15.0     # seconds per question
TIMER_INTERVAL = 0.1          # seconds between countdown ticks
DISTRACTOR_COUNT = 3
MULTI_SELECT_MAX_CORRECT = 3
MULTI_SELECT_OPTION_COUNT = 6
SENSE_SEPARATORS = ';；,，'

# Server
SESSION_IDLE_MINUTES = 30     # unused sessions are dropped after this long
MAX_QUIZ_QUESTIONS = 100
