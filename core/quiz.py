"""Quiz generation, countdown sequencing and scoring."""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum

from .config import (
    DEFAULT_TIME_LIMIT, TIMER_INTERVAL, DISTRACTOR_COUNT,
    MULTI_SELECT_MAX_CORRECT, MULTI_SELECT_OPTION_COUNT
)
from .interfaces import Clock, FeedbackPort, PeriodicTimer, SessionSink
from .models import QUIZ_TYPES, Question, SessionResult, SessionType, WrongAnswer
from .timers import SystemClock
from .utils import normalize_answer, split_senses

logger = logging.getLogger(__name__)

TRUE_LABEL = 'True'
FALSE_LABEL = 'False'


class OptionMark(Enum):
    """How an option should be shown once its question is resolved."""

    CORRECT = 'correct'   # Right answer, chosen
    WRONG = 'wrong'       # Chosen but not right
    MISSED = 'missed'     # Right answer, not chosen
    NEUTRAL = 'neutral'


@dataclass(frozen=True)
class AnswerOutcome:
    question_index: int
    submitted: object
    score: float
    is_correct: bool
    timed_out: bool = False
    marks: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        submitted = self.submitted
        if isinstance(submitted, frozenset):
            submitted = sorted(submitted)
        return {
            'question_index': self.question_index,
            'submitted': submitted,
            'score': self.score,
            'is_correct': self.is_correct,
            'timed_out': self.timed_out,
            'marks': {option: mark.value for option, mark in self.marks.items()}
        }


def score_selection(selection: set, correct: frozenset) -> float:
    """Partial credit: net correct picks over the number of right answers, floored at 0."""
    correct_selected = len(selection & correct)
    incorrect_selected = len(selection - correct)
    return max(0, correct_selected - incorrect_selected) / len(correct)


def mark_options(options, chosen: set, correct: set) -> dict:
    marks = {}
    for option in options:
        if option in chosen and option in correct:
            marks[option] = OptionMark.CORRECT
        elif option in chosen:
            marks[option] = OptionMark.WRONG
        elif option in correct:
            marks[option] = OptionMark.MISSED
        else:
            marks[option] = OptionMark.NEUTRAL
    return marks


class QuizEngine:
    """Runs one quiz over a word pool: one question per word, timed per question."""

    def __init__(self, words: list, test_type, time_limit: float = DEFAULT_TIME_LIMIT,
                 timer: PeriodicTimer = None, clock: Clock = None,
                 sink: SessionSink = None, feedback: FeedbackPort = None,
                 rng: random.Random = None):
        if not isinstance(test_type, SessionType):
            test_type = SessionType(test_type)
        if test_type not in QUIZ_TYPES:
            raise ValueError(f"{test_type.value} is not a quiz type")

        self.words = list(words)
        self.test_type = test_type
        self.time_limit = time_limit
        self.timer = timer
        self.clock = clock or SystemClock()
        self.sink = sink
        self.feedback = feedback
        self.rng = rng or random.Random()

        self.questions = self._generate_questions()
        self.reset()

    def reset(self) -> None:
        """Cancel any countdown and clear all answers, keeping the questions."""
        self._stop_timer()
        self.current_question_index = 0
        self.correct_answers = 0
        self.wrong_answers = []
        self.outcomes = {}
        self.time_remaining = self.time_limit
        self.completed = False
        self.started_at = None
        self.result = None

        # Multi-select scoring
        self.multi_select_score = 0.0
        self.multi_select_full_correct = 0
        self.multi_select_partial_correct = 0
        self.multi_select_zero_score = 0

        self._selection = set()
        self._answer = ''

    # ------------------------------------------------------------------
    # Question generation
    # ------------------------------------------------------------------

    def _generate_questions(self) -> list[Question]:
        generate = {
            SessionType.MULTIPLE_CHOICE: self._multiple_choice_question,
            SessionType.FILL_IN_BLANK: self._fill_in_blank_question,
            SessionType.LISTENING: self._listening_question,
            SessionType.TRUE_FALSE: self._true_false_question,
            SessionType.MULTI_SELECT: self._multi_select_question,
        }[self.test_type]
        return [generate(word) for word in self.words]

    def _others(self, word) -> list:
        return [w for w in self.words if w.term != word.term]

    def _distractors(self, word, attr: str, count: int, exclude) -> list[str]:
        """Sample up to `count` distinct values of `attr` from other words."""
        pool = []
        for other in self._others(word):
            value = getattr(other, attr)
            if value not in exclude and value not in pool:
                pool.append(value)
        return self.rng.sample(pool, min(count, len(pool)))

    def _choice_question(self, word, attr: str, prompt: str | None) -> Question:
        correct = getattr(word, attr)
        options = [correct] + self._distractors(word, attr, DISTRACTOR_COUNT, {correct})
        self.rng.shuffle(options)
        return Question(word=word, options=tuple(options), correct_answer=correct, prompt=prompt)

    def _multiple_choice_question(self, word) -> Question:
        return self._choice_question(word, 'translation', word.term)

    def _listening_question(self, word) -> Question:
        # The term is spoken by the client, so only the pronunciation is shown
        return self._choice_question(word, 'term', word.phonetic or None)

    def _fill_in_blank_question(self, word) -> Question:
        return Question(word=word, options=(), correct_answer=word.term.lower(),
                        prompt=word.translation)

    def _true_false_question(self, word) -> Question:
        shown = word.translation
        others = self._others(word)
        if others and self.rng.random() >= 0.5:
            shown = self.rng.choice(others).translation
        is_true = shown == word.translation
        return Question(
            word=word,
            options=(TRUE_LABEL, FALSE_LABEL),
            correct_answer=TRUE_LABEL if is_true else FALSE_LABEL,
            statement=f"{word.term} / {shown}",
            correct_bool=is_true,
            prompt=word.term
        )

    def _multi_select_question(self, word) -> Question:
        correct = [word.translation]
        senses = split_senses(word.translation)
        if len(senses) > 1:
            correct = list(dict.fromkeys(senses))[:MULTI_SELECT_MAX_CORRECT]
        distractors = self._distractors(
            word, 'translation', MULTI_SELECT_OPTION_COUNT - len(correct), set(correct)
        )
        options = correct + distractors
        self.rng.shuffle(options)
        return Question(word=word, options=tuple(options), correct_answers=frozenset(correct),
                        prompt=word.term)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Question | None:
        if self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def current_resolved(self) -> bool:
        return self.current_question_index in self.outcomes

    @property
    def progress(self) -> float:
        if not self.questions:
            return 0.0
        return self.current_question_index / len(self.questions)

    @property
    def accuracy(self) -> float:
        """Percent of single-answer resolutions that were correct."""
        total = self.correct_answers + len(self.wrong_answers)
        if total == 0:
            return 0.0
        return self.correct_answers / total * 100

    @property
    def selection(self) -> frozenset:
        return frozenset(self._selection)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin (or restart) the quiz. An empty question set completes immediately."""
        self.reset()
        self.started_at = self.clock.now()
        if not self.questions:
            self._complete()
            return
        self._start_timer()

    def _start_timer(self) -> None:
        self.time_remaining = self.time_limit
        if self.timer is not None:
            self.timer.start(TIMER_INTERVAL, self.tick)

    def _stop_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()

    @property
    def is_timer_running(self) -> bool:
        return self.timer is not None and self.timer.active

    def tick(self) -> AnswerOutcome | None:
        """One countdown step. Auto-submits the pending answer when time runs out."""
        if self.completed or self.current_question is None or self.current_resolved:
            return None
        self.time_remaining = max(0.0, round(self.time_remaining - TIMER_INTERVAL, 6))
        if self.time_remaining > 0:
            return None
        logger.debug(f"Question {self.current_question_index} timed out")
        return self._resolve_pending(timed_out=True)

    def close(self) -> None:
        """Cancel any outstanding countdown."""
        self._stop_timer()

    # ------------------------------------------------------------------
    # Answering
    # ------------------------------------------------------------------

    def select(self, option: str) -> frozenset:
        """Toggle a multi-select option for the current question."""
        if self.completed or self.current_resolved:
            return self.selection
        if option in self._selection:
            self._selection.discard(option)
        else:
            self._selection.add(option)
        return self.selection

    def set_answer(self, answer: str) -> None:
        """Record the in-progress answer used if the countdown expires."""
        if not self.completed and not self.current_resolved:
            self._answer = answer

    def _resolve_pending(self, timed_out: bool = False) -> AnswerOutcome:
        question = self.current_question
        if question.is_multi_select:
            return self._submit_selection(set(self._selection), timed_out)
        return self._submit_answer(self._answer, timed_out)

    def submit(self, answer=None) -> AnswerOutcome | None:
        """Score the current question. Later submissions for it are ignored.

        Multi-select questions take a collection of options (or one option
        string); the others take a single string, or a bool for true/false.
        Anything else raises ValueError and leaves the question open.
        """
        question = self.current_question
        if self.completed or question is None:
            return None
        if self.current_resolved:
            return self.outcomes[self.current_question_index]
        if question.is_multi_select:
            selection = self._selection if answer is None else answer
            if isinstance(selection, str):
                selection = [selection]
            if (not isinstance(selection, (set, frozenset, list, tuple))
                    or not all(isinstance(option, str) for option in selection)):
                raise ValueError("multi-select questions take a collection of options")
            return self._submit_selection(set(selection))
        if answer is None:
            answer = self._answer
        if not isinstance(answer, (str, bool)):
            raise ValueError(f"{self.test_type.value} questions take a single answer")
        return self._submit_answer(answer)

    def submit_selection(self, selection) -> AnswerOutcome | None:
        return self.submit(set(selection))

    def _submit_answer(self, answer, timed_out: bool = False) -> AnswerOutcome:
        self._stop_timer()
        question = self.current_question

        if isinstance(answer, bool):
            answer = TRUE_LABEL if answer else FALSE_LABEL
        answer = answer or ''
        if question.is_free_text:
            is_correct = normalize_answer(answer) == question.correct_answer
            marks = {}
        else:
            is_correct = answer == question.correct_answer
            marks = mark_options(question.options, {answer}, {question.correct_answer})

        if is_correct:
            self.correct_answers += 1
            self._play('success')
        else:
            self.wrong_answers.append(WrongAnswer(question.word, answer, question.correct_answer))
            self._play('error')

        outcome = AnswerOutcome(
            question_index=self.current_question_index,
            submitted=answer,
            score=1.0 if is_correct else 0.0,
            is_correct=is_correct,
            timed_out=timed_out,
            marks=marks
        )
        self.outcomes[self.current_question_index] = outcome
        return outcome

    def _submit_selection(self, selection: set, timed_out: bool = False) -> AnswerOutcome:
        self._stop_timer()
        question = self.current_question
        correct = question.correct_answers

        score = score_selection(selection, correct)
        self.multi_select_score += score
        is_fully_correct = selection == set(correct)

        if is_fully_correct:
            self.multi_select_full_correct += 1
            self.correct_answers += 1
            self._play('success')
        elif score > 0:
            self.multi_select_partial_correct += 1
            self._play('tap')
        else:
            self.multi_select_zero_score += 1
            self.wrong_answers.append(WrongAnswer(
                question.word,
                ', '.join(sorted(selection)),
                ', '.join(sorted(correct))
            ))
            self._play('error')

        outcome = AnswerOutcome(
            question_index=self.current_question_index,
            submitted=frozenset(selection),
            score=score,
            is_correct=is_fully_correct,
            timed_out=timed_out,
            marks=mark_options(question.options, selection, correct)
        )
        self.outcomes[self.current_question_index] = outcome
        return outcome

    def _play(self, cue: str) -> None:
        if self.feedback:
            self.feedback.play(cue)

    # ------------------------------------------------------------------
    # Sequencing
    # ------------------------------------------------------------------

    def advance(self) -> Question | None:
        """Move to the next question, resolving the current one first if needed.
        Returns the new question, or None once the quiz is complete."""
        if self.completed:
            return None
        if self.current_question is not None and not self.current_resolved:
            self._resolve_pending()

        self.current_question_index += 1
        self._selection = set()
        self._answer = ''
        if self.current_question_index >= len(self.questions):
            self._complete()
            return None
        self._start_timer()
        return self.current_question

    def _complete(self) -> None:
        self._stop_timer()
        self.completed = True
        now = self.clock.now()
        started = self.started_at or now
        breakdown = {}
        if self.test_type == SessionType.MULTI_SELECT:
            breakdown = {
                'full_correct': self.multi_select_full_correct,
                'partial_correct': self.multi_select_partial_correct,
                'zero_score': self.multi_select_zero_score,
                'partial_score': self.multi_select_score,
            }
        self.result = SessionResult(
            session_type=self.test_type,
            words_studied=len(self.questions),
            words_correct=self.correct_answers,
            words_incorrect=len(self.wrong_answers),
            duration=(now - started).total_seconds(),
            completed_at=now,
            **breakdown
        )
        if self.sink is not None:
            self.sink.record(self.result)
        self._play('complete')
        logger.info(
            f"{self.test_type.value} quiz complete: {self.correct_answers}/{len(self.questions)} correct"
        )

    def to_dict(self) -> dict:
        question = self.current_question
        return {
            'test_type': self.test_type.value,
            'current_question_index': self.current_question_index,
            'total_questions': self.total_questions,
            'question': question.to_dict() if question else None,
            'resolved': self.current_resolved,
            'time_remaining': self.time_remaining,
            'correct_answers': self.correct_answers,
            'wrong_answers': [w.to_dict() for w in self.wrong_answers],
            'multi_select_score': self.multi_select_score,
            'completed': self.completed,
            'result': self.result.to_dict() if self.result else None
        }
