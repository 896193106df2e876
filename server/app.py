"""FastAPI server for lingo application."""

import logging
import os
import random
import uuid
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from core.config import (
    DEFAULT_DAILY_GOAL, DEFAULT_TIME_LIMIT, MAX_QUIZ_QUESTIONS, SESSION_IDLE_MINUTES
)
from core.interfaces import AchievementEvaluator, QueryError
from core.models import (
    LearningMode, MasteryLevel, QUIZ_TYPES, SessionType, SwipeDirection, WordSort
)
from core.quiz import QuizEngine
from core.review import ReviewSession, SessionStatus
from core.timers import AsyncioPeriodicTimer, SystemClock
from core.utils import filter_words, goal_progress, mastery_counts, sort_words

from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage

logger = logging.getLogger(__name__)


# Pydantic models for API
class ReviewStartRequest(BaseModel):
    mode: str = LearningMode.LEARNING.value
    category: Optional[str] = None


class SwipeRequest(BaseModel):
    direction: str


class QuizStartRequest(BaseModel):
    test_type: str = SessionType.MULTIPLE_CHOICE.value
    count: int = Field(default=10, ge=1, le=MAX_QUIZ_QUESTIONS)
    category: Optional[str] = None
    time_limit: float = Field(default=DEFAULT_TIME_LIMIT, gt=0)


class AnswerRequest(BaseModel):
    answer: Optional[str] = None
    selection: Optional[list[str]] = None


class StartResponse(BaseModel):
    session_id: str
    state: dict


class ProgressResponse(BaseModel):
    today: dict
    user_stats: dict
    daily_goal: int
    goal_progress: float
    words_due: int
    recent_sessions: list


class NoAchievements(AchievementEvaluator):
    """Achievement catalogs live outside this service."""

    def evaluate(self, stats, context) -> list:
        return []


# Global state (in production, use proper DI)
storage = None
clock = SystemClock()
achievements = NoAchievements()
daily_goal = DEFAULT_DAILY_GOAL
review_sessions: dict[str, ReviewSession] = {}
quiz_sessions: dict[str, QuizEngine] = {}
last_used: dict = {}


def new_session_id() -> str:
    return str(uuid.uuid4())[:8]


def touch(session_id: str) -> None:
    last_used[session_id] = clock.now()


def drop_review(session_id: str) -> None:
    review_sessions.pop(session_id, None)
    last_used.pop(session_id, None)


def drop_quiz(session_id: str) -> None:
    quiz = quiz_sessions.pop(session_id, None)
    if quiz is not None:
        quiz.close()
    last_used.pop(session_id, None)


def sweep_sessions() -> None:
    """Drop finished sessions and ones idle for longer than SESSION_IDLE_MINUTES.

    Finished sessions stay readable until the next session is started.
    """
    cutoff = clock.now() - timedelta(minutes=SESSION_IDLE_MINUTES)

    def stale(session_id: str) -> bool:
        used = last_used.get(session_id)
        return used is None or used < cutoff

    for session_id, session in list(review_sessions.items()):
        if session.status == SessionStatus.COMPLETED or stale(session_id):
            drop_review(session_id)
    for session_id, quiz in list(quiz_sessions.items()):
        if quiz.completed or stale(session_id):
            drop_quiz(session_id)


def get_review(session_id: str) -> ReviewSession:
    session = review_sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Review session not found")
    touch(session_id)
    return session


def get_quiz(session_id: str) -> QuizEngine:
    quiz = quiz_sessions.get(session_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz not found")
    touch(session_id)
    return quiz


def review_payload(session: ReviewSession, effects: list = None) -> dict:
    data = session.state().to_dict()
    word = session.current_word
    data['word'] = word.to_dict() if word else None
    if effects is not None:
        data['effects'] = [e.kind for e in effects]
    return data


app = FastAPI(title="Lingo API", description="Spaced-repetition vocabulary practice API")


@app.on_event("startup")
async def startup():
    """Initialize storage on startup."""
    global storage, daily_goal

    if storage is None:
        # Use file storage by default, set LINGO_STORAGE=postgres to use PostgreSQL
        storage_type = os.environ.get('LINGO_STORAGE', 'file')
        if storage_type == 'postgres':
            storage = PostgresStorage()
            logger.info("Using PostgreSQL storage")
        else:
            storage = FileStorage(state_dir=os.environ.get('LINGO_STATE_DIR'))
            logger.info("Using file storage")

    goal = os.environ.get('LINGO_DAILY_GOAL')
    if goal is None and isinstance(storage, FileStorage):
        goal = storage.load_config().get('daily_goal')
    if goal is not None:
        daily_goal = int(goal)


@app.on_event("shutdown")
async def shutdown():
    """Cancel outstanding quiz timers."""
    for session_id in list(quiz_sessions):
        drop_quiz(session_id)
    review_sessions.clear()
    last_used.clear()


@app.get("/")
async def root():
    return {"status": "ok", "service": "lingo"}


@app.get("/api/words")
async def list_words(category: str = None, search: str = None, mastery: str = None,
                     favorite: Optional[bool] = None, sort: str = WordSort.ALPHABETICAL.value):
    """Word list with search, mastery/favorite filters, ordering and badge counts."""
    try:
        level = MasteryLevel(mastery) if mastery else None
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown mastery level: {mastery}")
    try:
        order = WordSort(sort)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown sort option: {sort}")

    try:
        words = storage.list_words(category)
    except QueryError as e:
        logger.error(f"Failed to list words: {e}")
        raise HTTPException(status_code=503, detail="Word store unavailable")

    matched = sort_words(filter_words(words, search, level, favorite), order)
    return {
        "total": len(matched),
        "counts": mastery_counts(words),
        "words": [w.to_dict() for w in matched]
    }


@app.get("/api/categories")
async def list_categories():
    return {"categories": storage.get_categories()}


@app.get("/api/progress", response_model=ProgressResponse)
async def get_progress():
    """Today's progress against the goal, words due, lifetime stats and recent sessions."""
    now = clock.now()
    today = storage.fetch_or_create_today(now.date())
    stats = storage.fetch_or_create_user_stats()
    try:
        words_due = len(storage.fetch_due(now))
    except QueryError as e:
        logger.error(f"Failed to count words due: {e}")
        words_due = 0
    return ProgressResponse(
        today=today.to_dict(),
        user_stats=stats.to_dict(),
        daily_goal=daily_goal,
        goal_progress=goal_progress(today, daily_goal),
        words_due=words_due,
        recent_sessions=[s.to_dict() for s in storage.list_sessions(10)]
    )


# Review sessions

@app.post("/api/review/start", response_model=StartResponse)
async def start_review(request: ReviewStartRequest):
    try:
        mode = LearningMode(request.mode)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown mode: {request.mode}")

    sweep_sessions()
    session = ReviewSession(
        storage, storage, storage, achievements,
        mode=mode, category=request.category, clock=clock, daily_goal=daily_goal
    )
    session.start()
    session_id = new_session_id()
    review_sessions[session_id] = session
    touch(session_id)
    logger.info(f"Review session {session_id} started: {mode.value}, {len(session.words)} words")
    return StartResponse(session_id=session_id, state=review_payload(session))


@app.get("/api/review/{session_id}")
async def get_review_state(session_id: str):
    return review_payload(get_review(session_id))


@app.post("/api/review/{session_id}/swipe")
async def swipe(session_id: str, request: SwipeRequest):
    session = get_review(session_id)
    try:
        direction = SwipeDirection(request.direction)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown direction: {request.direction}")
    effects = session.advance(direction)
    return review_payload(session, effects)


@app.post("/api/review/{session_id}/undo")
async def undo(session_id: str):
    session = get_review(session_id)
    effects = session.undo()
    return review_payload(session, effects)


@app.delete("/api/review/{session_id}")
async def close_review(session_id: str):
    get_review(session_id)
    drop_review(session_id)
    return {"closed": True}


# Quizzes

@app.post("/api/quiz/start", response_model=StartResponse)
async def start_quiz(request: QuizStartRequest):
    try:
        test_type = SessionType(request.test_type)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown test type: {request.test_type}")
    if test_type not in QUIZ_TYPES:
        raise HTTPException(status_code=400, detail=f"{test_type.value} is not a quiz type")

    try:
        pool = storage.list_words(request.category)
    except QueryError as e:
        logger.error(f"Failed to load quiz words: {e}")
        pool = []
    words = random.sample(pool, min(request.count, len(pool)))

    sweep_sessions()
    quiz = QuizEngine(
        words, test_type, time_limit=request.time_limit,
        timer=AsyncioPeriodicTimer(), clock=clock, sink=storage
    )
    quiz.start()
    session_id = new_session_id()
    quiz_sessions[session_id] = quiz
    touch(session_id)
    logger.info(f"Quiz {session_id} started: {test_type.value}, {quiz.total_questions} questions")
    return StartResponse(session_id=session_id, state=quiz.to_dict())


@app.get("/api/quiz/{session_id}")
async def get_quiz_state(session_id: str):
    return get_quiz(session_id).to_dict()


@app.post("/api/quiz/{session_id}/answer")
async def answer(session_id: str, request: AnswerRequest):
    quiz = get_quiz(session_id)
    try:
        if request.selection is not None:
            outcome = quiz.submit_selection(request.selection)
        else:
            outcome = quiz.submit(request.answer)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    data = quiz.to_dict()
    data['outcome'] = outcome.to_dict() if outcome else None
    question = quiz.current_question
    if outcome and question:
        data['question'] = question.to_dict(reveal=True)
    return data


@app.post("/api/quiz/{session_id}/next")
async def next_question(session_id: str):
    quiz = get_quiz(session_id)
    quiz.advance()
    return quiz.to_dict()


@app.delete("/api/quiz/{session_id}")
async def close_quiz(session_id: str):
    get_quiz(session_id)
    drop_quiz(session_id)
    return {"closed": True}


def create_app():
    """Factory function for creating the app (useful for testing)."""
    return app
