from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .clock import Clock
from .engine import RecommendationEngine
from .practice_core import Problem

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    PRESENTING = "presenting"
    FEEDBACK = "feedback"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    answer_tolerance: int = 0  # abs(user_answer - answer) <= tolerance


@dataclass(frozen=True, slots=True)
class Trial:
    index: int
    problem: Problem
    raw: str
    user_answer: int | None
    is_correct: bool
    presented_at_s: float
    answered_at_s: float
    response_time_s: float
    skipped: bool = False


@dataclass(frozen=True, slots=True)
class Feedback:
    is_correct: bool
    correct_answer: int
    message: str


@dataclass(frozen=True, slots=True)
class SessionSummary:
    attempted: int
    correct: int
    skipped: int
    accuracy: float
    mean_response_time_s: float | None


class PracticeSession:
    """Presents engine problems and reports timed outcomes back.

    IDLE -> PRESENTING -> FEEDBACK -> PRESENTING -> ...

    - Deterministic: problems come from the engine's seeded generator.
    - Time is entirely via injected Clock; a problem's time limit is shown
      to the learner but never enforced here.
    """

    def __init__(
        self,
        engine: RecommendationEngine,
        *,
        clock: Clock,
        config: SessionConfig | None = None,
    ) -> None:
        self._engine = engine
        self._clock = clock
        self._config = config or SessionConfig()
        if self._config.answer_tolerance < 0:
            raise ValueError("answer_tolerance must be >= 0")

        self._phase = SessionPhase.IDLE
        self._current: Problem | None = None
        self._presented_at_s: float | None = None
        self._trials: list[Trial] = []
        self._feedback: Feedback | None = None

    @property
    def engine(self) -> RecommendationEngine:
        return self._engine

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def current_problem(self) -> Problem | None:
        return self._current

    @property
    def feedback(self) -> Feedback | None:
        return self._feedback

    def trials(self) -> list[Trial]:
        return list(self._trials)

    def next_problem(self) -> Problem:
        if self._phase is SessionPhase.PRESENTING and self._current is not None:
            return self._current
        self._current = self._engine.get_next_problem()
        self._presented_at_s = self._clock.now()
        self._feedback = None
        self._phase = SessionPhase.PRESENTING
        return self._current

    def time_remaining_s(self) -> float | None:
        if self._phase is not SessionPhase.PRESENTING:
            return None
        assert self._current is not None
        assert self._presented_at_s is not None
        elapsed = self._clock.now() - self._presented_at_s
        return max(0.0, self._current.time_limit_s - elapsed)

    def is_overtime(self) -> bool:
        remaining = self.time_remaining_s()
        return remaining is not None and remaining <= 0.0

    def submit_answer(self, raw: str) -> bool:
        """Submit a typed answer. Returns True if accepted."""

        if self._phase is not SessionPhase.PRESENTING:
            return False
        value = _try_parse_int(raw)
        if value is None:
            return False
        self._record(raw=raw, user_answer=value)
        return True

    def choose_option(self, index: int) -> bool:
        """Pick a multiple-choice option by position. Returns True if accepted."""

        if self._phase is not SessionPhase.PRESENTING:
            return False
        assert self._current is not None
        choices = self._current.choices
        if choices is None or not (0 <= index < len(choices)):
            return False
        value = choices[index]
        self._record(raw=str(value), user_answer=value)
        return True

    def skip(self) -> bool:
        """Give up on the current problem; it counts as incorrect."""

        if self._phase is not SessionPhase.PRESENTING:
            return False
        self._record(raw="", user_answer=None)
        return True

    def summary(self) -> SessionSummary:
        attempted = len(self._trials)
        correct = sum(1 for t in self._trials if t.is_correct)
        skipped = sum(1 for t in self._trials if t.skipped)
        accuracy = 0.0 if attempted == 0 else correct / attempted
        rts = [t.response_time_s for t in self._trials]
        mean_rt = None if not rts else sum(rts) / len(rts)
        return SessionSummary(
            attempted=attempted,
            correct=correct,
            skipped=skipped,
            accuracy=accuracy,
            mean_response_time_s=mean_rt,
        )

    def _record(self, *, raw: str, user_answer: int | None) -> None:
        assert self._current is not None
        assert self._presented_at_s is not None

        answered_at_s = self._clock.now()
        response_time_s = max(0.0, answered_at_s - self._presented_at_s)
        answer = self._current.correct_answer
        is_correct = user_answer is not None and abs(user_answer - answer) <= self._config.answer_tolerance

        self._engine.record_outcome(is_correct, response_time_s * 1000.0)

        self._trials.append(
            Trial(
                index=len(self._trials),
                problem=self._current,
                raw=raw,
                user_answer=user_answer,
                is_correct=is_correct,
                presented_at_s=self._presented_at_s,
                answered_at_s=answered_at_s,
                response_time_s=response_time_s,
                skipped=user_answer is None,
            )
        )
        message = "Correct!" if is_correct else f"Incorrect. Answer: {answer}"
        self._feedback = Feedback(is_correct=is_correct, correct_answer=answer, message=message)
        self._phase = SessionPhase.FEEDBACK
        logger.debug("trial %d %s in %.2fs", len(self._trials) - 1, self._current.id, response_time_s)


def _try_parse_int(text: str) -> int | None:
    s = text.strip()
    if not s:
        return None
    try:
        return int(s)
    except ValueError:
        return None
