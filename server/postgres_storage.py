"""PostgreSQL storage implementation."""

import logging
import os
from datetime import date

import psycopg2
from psycopg2.extras import RealDictCursor

from core.interfaces import (
    WordRepository, ProgressStore, SessionSink, QueryError, StoreError
)
from core.models import DailyProgress, MasteryLevel, SessionResult, UserStats, Word
from core.utils import last_studied_key

logger = logging.getLogger(__name__)

_WORD_COLUMNS = """
    id, term, translation, category, phonetic, part_of_speech, example_sentence,
    ease_factor, interval_days, repetitions, next_review_date, times_studied,
    times_correct, last_studied_date, mastery_level, is_favorite
"""


def _row_to_word(row: dict) -> Word:
    data = dict(row)
    data['interval'] = data.pop('interval_days')
    return Word.from_dict(data)


def _word_params(word: Word) -> tuple:
    return (
        word.id, word.term, word.translation, word.category, word.phonetic,
        word.part_of_speech, word.example_sentence, word.ease_factor, word.interval,
        word.repetitions, word.next_review_date, word.times_studied, word.times_correct,
        word.last_studied_date, word.mastery_level.value, word.is_favorite
    )


class PostgresStorage(WordRepository, ProgressStore, SessionSink):
    """PostgreSQL-based storage implementation."""

    def __init__(self, db_url: str = None):
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/lingo'
        )
        self._conn = None
        self._initialized = False

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS words (
                    id VARCHAR(64) PRIMARY KEY,
                    term VARCHAR(255) NOT NULL,
                    translation VARCHAR(500) NOT NULL,
                    category VARCHAR(100),
                    phonetic VARCHAR(255) DEFAULT '',
                    part_of_speech VARCHAR(50) DEFAULT '',
                    example_sentence TEXT DEFAULT '',
                    ease_factor DOUBLE PRECISION NOT NULL DEFAULT 2.5,
                    interval_days INTEGER NOT NULL DEFAULT 0,
                    repetitions INTEGER NOT NULL DEFAULT 0,
                    next_review_date TIMESTAMP,
                    times_studied INTEGER NOT NULL DEFAULT 0,
                    times_correct INTEGER NOT NULL DEFAULT 0,
                    last_studied_date TIMESTAMP,
                    mastery_level VARCHAR(20) NOT NULL DEFAULT 'new',
                    is_favorite BOOLEAN NOT NULL DEFAULT FALSE
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_words_next_review ON words(next_review_date)
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_words_category ON words(category)
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS daily_progress (
                    day DATE PRIMARY KEY,
                    words_learned INTEGER NOT NULL DEFAULT 0,
                    words_reviewed INTEGER NOT NULL DEFAULT 0,
                    total_study_time DOUBLE PRECISION NOT NULL DEFAULT 0,
                    sessions_completed INTEGER NOT NULL DEFAULT 0,
                    accuracy DOUBLE PRECISION NOT NULL DEFAULT 0
                )
            """)
            # Single-row table
            cur.execute("""
                CREATE TABLE IF NOT EXISTS user_stats (
                    id INTEGER PRIMARY KEY DEFAULT 1 CHECK (id = 1),
                    total_words_learned INTEGER NOT NULL DEFAULT 0,
                    total_study_time DOUBLE PRECISION NOT NULL DEFAULT 0,
                    current_streak INTEGER NOT NULL DEFAULT 0,
                    longest_streak INTEGER NOT NULL DEFAULT 0,
                    last_study_date TIMESTAMP
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS study_sessions (
                    id SERIAL PRIMARY KEY,
                    session_type VARCHAR(30) NOT NULL,
                    words_studied INTEGER NOT NULL,
                    words_correct INTEGER NOT NULL,
                    words_incorrect INTEGER NOT NULL,
                    duration DOUBLE PRECISION NOT NULL,
                    completed_at TIMESTAMP NOT NULL,
                    full_correct INTEGER NOT NULL DEFAULT 0,
                    partial_correct INTEGER NOT NULL DEFAULT 0,
                    zero_score INTEGER NOT NULL DEFAULT 0,
                    partial_score DOUBLE PRECISION NOT NULL DEFAULT 0,
                    completed BOOLEAN NOT NULL DEFAULT TRUE
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_sessions_completed_at ON study_sessions(completed_at)
            """)
        self._conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def _query(self, sql: str, params: tuple = ()) -> list[dict]:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                return cur.fetchall()
        except psycopg2.Error as e:
            if self._conn is not None and not self._conn.closed:
                self._conn.rollback()
            raise QueryError(str(e)) from e

    def _execute(self, sql: str, params: tuple = ()) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
            self.conn.commit()
        except psycopg2.Error as e:
            if self._conn is not None and not self._conn.closed:
                self._conn.rollback()
            raise StoreError(str(e)) from e

    # Words

    def list_words(self, category: str = None) -> list[Word]:
        if category is None:
            rows = self._query(f"SELECT {_WORD_COLUMNS} FROM words ORDER BY term")
        else:
            rows = self._query(
                f"SELECT {_WORD_COLUMNS} FROM words WHERE category = %s ORDER BY term",
                (category,)
            )
        return [_row_to_word(r) for r in rows]

    def get_word(self, word_id: str) -> Word | None:
        rows = self._query(f"SELECT {_WORD_COLUMNS} FROM words WHERE id = %s", (word_id,))
        return _row_to_word(rows[0]) if rows else None

    def get_categories(self) -> list[str]:
        rows = self._query(
            "SELECT DISTINCT category FROM words WHERE category IS NOT NULL ORDER BY category"
        )
        return [r['category'] for r in rows]

    def add_words(self, words: list[Word]) -> int:
        """Add words, skipping terms already stored in the same category.
        Returns number added."""
        added = 0
        for word in words:
            rows = self._query(
                "SELECT 1 FROM words WHERE term = %s AND category IS NOT DISTINCT FROM %s",
                (word.term, word.category)
            )
            if rows:
                continue
            self.save(word)
            added += 1
        return added

    def fetch_due(self, before, category: str = None) -> list[Word]:
        sql = f"""SELECT {_WORD_COLUMNS} FROM words
                  WHERE next_review_date IS NOT NULL AND next_review_date <= %s"""
        params = [before]
        if category is not None:
            sql += " AND category = %s"
            params.append(category)
        sql += " ORDER BY next_review_date ASC"
        return [_row_to_word(r) for r in self._query(sql, tuple(params))]

    def fetch_for_learning(self, min_study_count: int, session_limit: int,
                           category: str = None) -> list[Word]:
        category_clause = " AND category = %s" if category is not None else ""
        category_params = (category,) if category is not None else ()

        fresh = self._query(
            f"""SELECT {_WORD_COLUMNS} FROM words
                WHERE times_studied < %s{category_clause}
                ORDER BY last_studied_date ASC NULLS FIRST
                LIMIT %s""",
            (min_study_count, *category_params, session_limit)
        )
        weak = self._query(
            f"""SELECT {_WORD_COLUMNS} FROM words
                WHERE times_studied >= %s AND mastery_level IN (%s, %s){category_clause}
                ORDER BY last_studied_date ASC NULLS FIRST
                LIMIT %s""",
            (min_study_count, MasteryLevel.NEW.value, MasteryLevel.LEARNING.value,
             *category_params, session_limit)
        )
        words = [_row_to_word(r) for r in fresh + weak]
        return sorted(words, key=last_studied_key)

    def save(self, word: Word) -> None:
        self._execute(f"""
            INSERT INTO words ({_WORD_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                ease_factor = EXCLUDED.ease_factor,
                interval_days = EXCLUDED.interval_days,
                repetitions = EXCLUDED.repetitions,
                next_review_date = EXCLUDED.next_review_date,
                times_studied = EXCLUDED.times_studied,
                times_correct = EXCLUDED.times_correct,
                last_studied_date = EXCLUDED.last_studied_date,
                mastery_level = EXCLUDED.mastery_level,
                is_favorite = EXCLUDED.is_favorite
        """, _word_params(word))

    # Progress

    def fetch_or_create_today(self, day: date) -> DailyProgress:
        rows = self._query("SELECT * FROM daily_progress WHERE day = %s", (day,))
        if not rows:
            return DailyProgress(day)
        data = dict(rows[0])
        data['date'] = data.pop('day')
        return DailyProgress.from_dict(data)

    def save_daily_progress(self, progress: DailyProgress) -> None:
        self._execute("""
            INSERT INTO daily_progress
                (day, words_learned, words_reviewed, total_study_time, sessions_completed, accuracy)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (day) DO UPDATE SET
                words_learned = EXCLUDED.words_learned,
                words_reviewed = EXCLUDED.words_reviewed,
                total_study_time = EXCLUDED.total_study_time,
                sessions_completed = EXCLUDED.sessions_completed,
                accuracy = EXCLUDED.accuracy
        """, (progress.date, progress.words_learned, progress.words_reviewed,
              progress.total_study_time, progress.sessions_completed, progress.accuracy))

    def list_daily_progress(self) -> list[DailyProgress]:
        result = []
        for row in self._query("SELECT * FROM daily_progress ORDER BY day"):
            data = dict(row)
            data['date'] = data.pop('day')
            result.append(DailyProgress.from_dict(data))
        return result

    def fetch_or_create_user_stats(self) -> UserStats:
        rows = self._query("SELECT * FROM user_stats WHERE id = 1")
        if rows:
            return UserStats.from_dict(rows[0])
        return UserStats()

    def save_user_stats(self, stats: UserStats) -> None:
        self._execute("""
            INSERT INTO user_stats
                (id, total_words_learned, total_study_time, current_streak, longest_streak, last_study_date)
            VALUES (1, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                total_words_learned = EXCLUDED.total_words_learned,
                total_study_time = EXCLUDED.total_study_time,
                current_streak = EXCLUDED.current_streak,
                longest_streak = EXCLUDED.longest_streak,
                last_study_date = EXCLUDED.last_study_date
        """, (stats.total_words_learned, stats.total_study_time, stats.current_streak,
              stats.longest_streak, stats.last_study_date))

    # Sessions

    def record(self, result: SessionResult) -> None:
        try:
            self._execute("""
                INSERT INTO study_sessions
                    (session_type, words_studied, words_correct, words_incorrect, duration,
                     completed_at, full_correct, partial_correct, zero_score, partial_score, completed)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """, (result.session_type.value, result.words_studied, result.words_correct,
                  result.words_incorrect, result.duration, result.completed_at,
                  result.full_correct, result.partial_correct, result.zero_score,
                  result.partial_score, result.completed))
        except StoreError as e:
            logger.error(f"Failed to record session: {e}")

    def list_sessions(self, limit: int = 50) -> list[SessionResult]:
        rows = self._query(
            "SELECT * FROM study_sessions ORDER BY completed_at DESC LIMIT %s", (limit,)
        )
        return [SessionResult.from_dict(r) for r in reversed(rows)]
