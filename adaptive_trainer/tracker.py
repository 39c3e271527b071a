from __future__ import annotations

import math
from numbers import Real

from .clock import Clock, WallClock
from .practice_core import (
    Attempt,
    EngineConfig,
    InvalidAttemptError,
    OperationType,
    PerformanceState,
    clamp_difficulty,
)


class PerformanceTracker:
    """Ingests one outcome at a time into a PerformanceState.

    Accuracy is a weighted running average whose weight is capped at
    ``config.accuracy_window`` so very old outcomes stop dominating once the
    window is full. Per-category stats use that category's own count with no
    cap. Average time is a plain running mean over every attempt ever seen.
    """

    def __init__(self, *, config: EngineConfig | None = None, clock: Clock | None = None) -> None:
        self._config = config or EngineConfig()
        self._clock: Clock = clock if clock is not None else WallClock()
        self._state = PerformanceState.initial(self._config)

    @property
    def state(self) -> PerformanceState:
        return self._state

    @property
    def config(self) -> EngineConfig:
        return self._config

    def reset(self) -> None:
        self._state = PerformanceState.initial(self._config)

    def replace_state(self, state: PerformanceState) -> None:
        self._state = state

    def record_outcome(
        self,
        type: OperationType,
        difficulty: int,
        was_correct: bool,
        elapsed_ms: float,
    ) -> Attempt:
        elapsed = validate_elapsed_ms(elapsed_ms)
        s = self._state

        attempt = Attempt(
            type=OperationType(type),
            difficulty_at_time=clamp_difficulty(difficulty),
            elapsed_ms=elapsed,
            was_correct=bool(was_correct),
            timestamp=self._clock.now(),
        )
        s.history.append(attempt)

        s.total_problems += 1
        if attempt.was_correct:
            s.consecutive_correct += 1
            s.consecutive_wrong = 0
        else:
            s.consecutive_wrong += 1
            s.consecutive_correct = 0

        score = 100.0 if attempt.was_correct else 0.0
        weight = min(self._config.accuracy_window, s.total_problems)
        s.accuracy = _clamp_pct((s.accuracy * (weight - 1) + score) / weight)

        elapsed_s = attempt.elapsed_s
        n = s.total_problems
        s.average_time_s = (s.average_time_s * (n - 1) + elapsed_s) / n

        stats = s.type_stats[attempt.type]
        stats.count += 1
        c = stats.count
        stats.accuracy = _clamp_pct((stats.accuracy * (c - 1) + score) / c)
        stats.average_time_s = (stats.average_time_s * (c - 1) + elapsed_s) / c

        return attempt


def validate_elapsed_ms(elapsed_ms: object) -> float:
    """Return ``elapsed_ms`` as a float, or raise InvalidAttemptError."""

    if isinstance(elapsed_ms, bool) or not isinstance(elapsed_ms, Real):
        raise InvalidAttemptError(f"elapsed_ms must be a number, got {elapsed_ms!r}")
    value = float(elapsed_ms)
    if not math.isfinite(value):
        raise InvalidAttemptError(f"elapsed_ms must be finite, got {value!r}")
    if value < 0:
        raise InvalidAttemptError(f"elapsed_ms must be >= 0, got {value!r}")
    return value


def recent_average_time_s(state: PerformanceState, window: int = 5) -> float:
    """Mean elapsed seconds over the last ``window`` attempts."""

    recent = list(state.history)[-window:]
    if not recent:
        return state.average_time_s
    return sum(a.elapsed_s for a in recent) / len(recent)


def recent_accuracy(state: PerformanceState, window: int = 10) -> float:
    """Percent correct over the last ``window`` attempts."""

    recent = list(state.history)[-window:]
    if not recent:
        return state.accuracy
    correct = sum(1 for a in recent if a.was_correct)
    return correct / len(recent) * 100.0


def _clamp_pct(x: float) -> float:
    return 0.0 if x <= 0.0 else 100.0 if x >= 100.0 else float(x)
