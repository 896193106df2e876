"""File-based storage implementation."""

import json
import logging
import os
from datetime import date

from core.interfaces import (
    WordRepository, ProgressStore, SessionSink, QueryError, StoreError
)
from core.models import DailyProgress, SessionResult, UserStats, Word
from core.utils import select_due_words, select_learning_words

logger = logging.getLogger(__name__)


class FileStorage(WordRepository, ProgressStore, SessionSink):
    """Keeps words, progress aggregates and session history in JSON files."""

    def __init__(self, state_dir: str = None, config_file: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/lingo/config.json')
        # Project root is one level up from server/
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.state_dir = state_dir or project_root

    def _path(self, name: str) -> str:
        return os.path.join(self.state_dir, f'lingo_{name}.json')

    def _read(self, name: str, default):
        path = self._path(name)
        if not os.path.exists(path):
            return default
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise QueryError(f"Cannot read {path}: {e}") from e

    def _write(self, name: str, data) -> None:
        path = self._path(name)
        tmp_path = path + '.tmp'
        try:
            os.makedirs(self.state_dir, exist_ok=True)
            with open(tmp_path, 'w') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StoreError(f"Cannot write {path}: {e}") from e

    def load_config(self) -> dict:
        """Load optional user settings (e.g. daily_goal). Missing file means defaults."""
        if not os.path.exists(self.config_file):
            return {}
        with open(self.config_file, 'r') as f:
            return json.load(f)

    # Words

    def _load_words(self) -> dict[str, Word]:
        return {item['id']: Word.from_dict(item) for item in self._read('words', [])}

    def _save_words(self, words: dict[str, Word]) -> None:
        self._write('words', [w.to_dict() for w in words.values()])

    def list_words(self, category: str = None) -> list[Word]:
        words = list(self._load_words().values())
        if category is not None:
            words = [w for w in words if w.category == category]
        return words

    def get_word(self, word_id: str) -> Word | None:
        return self._load_words().get(word_id)

    def get_categories(self) -> list[str]:
        return sorted({w.category for w in self.list_words() if w.category})

    def add_words(self, words: list[Word]) -> int:
        """Add words, skipping terms already stored in the same category.
        Returns number added."""
        stored = self._load_words()
        existing = {(w.term, w.category) for w in stored.values()}
        added = 0
        for word in words:
            if (word.term, word.category) in existing:
                continue
            stored[word.id] = word
            existing.add((word.term, word.category))
            added += 1
        self._save_words(stored)
        return added

    def fetch_due(self, before, category: str = None) -> list[Word]:
        return select_due_words(self._load_words().values(), before, category)

    def fetch_for_learning(self, min_study_count: int, session_limit: int,
                           category: str = None) -> list[Word]:
        return select_learning_words(
            self._load_words().values(), min_study_count, session_limit, category
        )

    def save(self, word: Word) -> None:
        try:
            stored = self._load_words()
        except QueryError as e:
            raise StoreError(str(e)) from e
        stored[word.id] = word
        self._save_words(stored)

    # Progress

    def _load_progress(self) -> dict:
        return self._read('progress', {'daily': {}, 'user_stats': None})

    def fetch_or_create_today(self, day: date) -> DailyProgress:
        data = self._load_progress()
        entry = data['daily'].get(day.isoformat())
        if entry:
            return DailyProgress.from_dict(entry)
        return DailyProgress(day)

    def save_daily_progress(self, progress: DailyProgress) -> None:
        try:
            data = self._load_progress()
        except QueryError as e:
            raise StoreError(str(e)) from e
        data['daily'][progress.date.isoformat()] = progress.to_dict()
        self._write('progress', data)

    def list_daily_progress(self) -> list[DailyProgress]:
        daily = self._load_progress()['daily']
        return [DailyProgress.from_dict(daily[key]) for key in sorted(daily)]

    def fetch_or_create_user_stats(self) -> UserStats:
        entry = self._load_progress().get('user_stats')
        if entry:
            return UserStats.from_dict(entry)
        return UserStats()

    def save_user_stats(self, stats: UserStats) -> None:
        try:
            data = self._load_progress()
        except QueryError as e:
            raise StoreError(str(e)) from e
        data['user_stats'] = stats.to_dict()
        self._write('progress', data)

    # Sessions

    def record(self, result: SessionResult) -> None:
        try:
            sessions = self._read('sessions', [])
            sessions.append(result.to_dict())
            self._write('sessions', sessions)
        except (QueryError, StoreError) as e:
            logger.error(f"Failed to record session: {e}")

    def list_sessions(self, limit: int = 50) -> list[SessionResult]:
        sessions = self._read('sessions', [])
        return [SessionResult.from_dict(s) for s in sessions[-limit:]]
