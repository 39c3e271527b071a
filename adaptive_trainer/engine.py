"""Adaptive problem-recommendation engine.

The engine wires the four components together behind the public surface the
presentation layer uses:

* ``get_next_problem`` picks a category and a difficulty from the tracked
  state, applies the new difficulty, and builds a concrete exercise.
* ``record_outcome`` reports how the learner did on the last issued problem.
* ``get_performance_state`` / ``get_analysis`` back progress summaries.
* ``reset`` / ``restore`` return to a neutral or a caller-persisted state.

One engine serves one learner. It performs no I/O and is not thread safe;
callers serialize access.
"""

from __future__ import annotations

import logging
from collections import deque

from .analysis import Analysis, analyze, encouragement
from .clock import Clock
from .difficulty import evaluate_difficulty
from .generator import ProblemGenerator
from .practice_core import (
    ALL_TYPES,
    Attempt,
    EngineConfig,
    NoActiveProblemError,
    OperationType,
    PerformanceState,
    Problem,
    SeededRng,
)
from .tracker import PerformanceTracker
from .type_selector import TypeSelector

logger = logging.getLogger(__name__)


class RecommendationEngine:
    def __init__(
        self,
        *,
        seed: int | None = None,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
        categories: tuple[OperationType, ...] = ALL_TYPES,
    ) -> None:
        self._config = config or EngineConfig()
        self._seed = seed
        self._tracker = PerformanceTracker(config=self._config, clock=clock)
        self._selector = TypeSelector(config=self._config, categories=categories)
        self._generator = ProblemGenerator(rng=SeededRng(seed), config=self._config)
        self._last_problem: Problem | None = None

    @property
    def seed(self) -> int | None:
        return self._seed

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def last_problem(self) -> Problem | None:
        return self._last_problem

    def get_next_problem(self) -> Problem:
        state = self._tracker.state

        decision = evaluate_difficulty(state, self._config)
        state.current_difficulty = decision.level

        last_type = None if self._last_problem is None else self._last_problem.type
        op = self._selector.next_type(state, last_type)

        problem = self._generator.generate(op, decision.level)
        self._last_problem = problem

        logger.debug(
            "issued %s (rule=%s, difficulty %d->%d)",
            problem.id,
            decision.rule.value,
            decision.previous,
            decision.level,
        )
        return problem

    def record_outcome(self, was_correct: bool, elapsed_ms: float) -> Attempt:
        if self._last_problem is None:
            raise NoActiveProblemError("record_outcome called before any problem was issued")
        attempt = self._tracker.record_outcome(
            self._last_problem.type,
            self._last_problem.difficulty,
            was_correct,
            elapsed_ms,
        )
        s = self._tracker.state
        logger.debug(
            "recorded %s correct=%s elapsed_ms=%.0f accuracy=%.1f total=%d",
            attempt.type.value,
            attempt.was_correct,
            attempt.elapsed_ms,
            s.accuracy,
            s.total_problems,
        )
        return attempt

    def get_performance_state(self) -> PerformanceState:
        return self._tracker.state.copy()

    def get_analysis(self) -> Analysis:
        return analyze(self._tracker.state, self._config)

    def get_encouragement(self) -> str:
        return encouragement(self._tracker.state)

    def reset(self) -> None:
        """Return to the neutral state; a seeded engine replays its problem stream."""

        self._tracker.reset()
        self._selector.reset()
        self._generator = ProblemGenerator(rng=SeededRng(self._seed), config=self._config)
        self._last_problem = None
        logger.info("engine reset to neutral state")

    def restore(self, state: PerformanceState) -> None:
        """Install a state the caller persisted earlier.

        The warm-up rotation starts over and no problem is active until the
        next ``get_next_problem`` call.
        """

        installed = state.copy()
        installed.history = deque(installed.history, maxlen=self._config.history_limit)
        self._tracker.replace_state(installed)
        self._selector.reset()
        self._last_problem = None
        logger.info("engine restored (total_problems=%d)", state.total_problems)
