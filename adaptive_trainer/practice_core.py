from __future__ import annotations

import math
import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5

T = TypeVar("T")


class OperationType(str, Enum):
    """Operation categories, in declaration (tie-break) order."""

    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"


ALL_TYPES: tuple[OperationType, ...] = tuple(OperationType)

# Neutral per-category average solve time (seconds) before any practice.
DEFAULT_TYPE_TIMES_S: dict[OperationType, float] = {
    OperationType.ADDITION: 20.0,
    OperationType.SUBTRACTION: 25.0,
    OperationType.MULTIPLICATION: 30.0,
    OperationType.DIVISION: 35.0,
}


class InvalidAttemptError(ValueError):
    """Raised when an outcome report carries an unusable elapsed time."""


class InvalidStateError(ValueError):
    """Raised when a serialized PerformanceState violates an invariant."""


class NoActiveProblemError(RuntimeError):
    """Raised when an outcome is reported before any problem was issued."""


@dataclass(frozen=True, slots=True)
class EngineConfig:
    history_limit: int = 50
    accuracy_window: int = 20
    initial_accuracy: float = 50.0
    initial_average_time_s: float = 25.0
    initial_difficulty: int = 2

    raise_accuracy: float = 80.0
    raise_streak: int = 2
    lower_accuracy: float = 60.0
    lower_streak: int = 2
    slow_factor: float = 1.3
    recent_time_window: int = 5
    sustained_streak: int = 5

    warmup_problems: int = 4
    weak_accuracy: float = 70.0

    trend_window: int = 10
    trend_margin: float = 5.0

    multiple_choice_max_difficulty: int = 2

    def __post_init__(self) -> None:
        if self.history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        if self.accuracy_window < 1:
            raise ValueError("accuracy_window must be >= 1")
        if not (0.0 <= self.initial_accuracy <= 100.0):
            raise ValueError("initial_accuracy must be in [0, 100]")
        if self.initial_average_time_s < 0:
            raise ValueError("initial_average_time_s must be >= 0")
        if not (MIN_DIFFICULTY <= self.initial_difficulty <= MAX_DIFFICULTY):
            raise ValueError("initial_difficulty must be in [1, 5]")
        if self.recent_time_window < 1 or self.trend_window < 1:
            raise ValueError("recent windows must be >= 1")
        if self.slow_factor <= 0:
            raise ValueError("slow_factor must be > 0")


@dataclass(frozen=True, slots=True)
class Attempt:
    type: OperationType
    difficulty_at_time: int
    elapsed_ms: float
    was_correct: bool
    timestamp: float

    @property
    def elapsed_s(self) -> float:
        return self.elapsed_ms / 1000.0


@dataclass(slots=True)
class TypeStats:
    accuracy: float
    average_time_s: float
    count: int = 0


@dataclass(frozen=True, slots=True)
class Problem:
    id: str
    type: OperationType
    difficulty: int
    question_text: str
    correct_answer: int
    choices: tuple[int, ...] | None
    time_limit_s: int
    expected_solve_s: float

    @property
    def is_multiple_choice(self) -> bool:
        return self.choices is not None


def default_type_stats(config: EngineConfig | None = None) -> dict[OperationType, TypeStats]:
    cfg = config or EngineConfig()
    return {
        t: TypeStats(accuracy=cfg.initial_accuracy, average_time_s=DEFAULT_TYPE_TIMES_S[t], count=0)
        for t in ALL_TYPES
    }


@dataclass(slots=True)
class PerformanceState:
    """Rolling learner statistics for one session.

    Mutated only by the tracker (outcomes) and by the engine's difficulty
    apply step. ``history`` is a bounded deque: appending past its maxlen
    evicts the oldest attempt.
    """

    accuracy: float = 50.0
    average_time_s: float = 25.0
    current_difficulty: int = 2
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    total_problems: int = 0
    history: deque[Attempt] = field(default_factory=lambda: deque(maxlen=50))
    type_stats: dict[OperationType, TypeStats] = field(default_factory=default_type_stats)

    @classmethod
    def initial(cls, config: EngineConfig | None = None) -> "PerformanceState":
        cfg = config or EngineConfig()
        return cls(
            accuracy=cfg.initial_accuracy,
            average_time_s=cfg.initial_average_time_s,
            current_difficulty=cfg.initial_difficulty,
            history=deque(maxlen=cfg.history_limit),
            type_stats=default_type_stats(cfg),
        )

    def copy(self) -> "PerformanceState":
        """Independent snapshot; Attempts are immutable and shared."""

        return PerformanceState(
            accuracy=self.accuracy,
            average_time_s=self.average_time_s,
            current_difficulty=self.current_difficulty,
            consecutive_correct=self.consecutive_correct,
            consecutive_wrong=self.consecutive_wrong,
            total_problems=self.total_problems,
            history=deque(self.history, maxlen=self.history.maxlen),
            type_stats={
                t: TypeStats(accuracy=s.accuracy, average_time_s=s.average_time_s, count=s.count)
                for t, s in self.type_stats.items()
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "accuracy": self.accuracy,
            "average_time_s": self.average_time_s,
            "current_difficulty": self.current_difficulty,
            "consecutive_correct": self.consecutive_correct,
            "consecutive_wrong": self.consecutive_wrong,
            "total_problems": self.total_problems,
            "history": [
                {
                    "type": a.type.value,
                    "difficulty_at_time": a.difficulty_at_time,
                    "elapsed_ms": a.elapsed_ms,
                    "was_correct": a.was_correct,
                    "timestamp": a.timestamp,
                }
                for a in self.history
            ],
            "type_stats": {
                t.value: {"accuracy": s.accuracy, "average_time_s": s.average_time_s, "count": s.count}
                for t, s in self.type_stats.items()
            },
        }

    @classmethod
    def from_dict(cls, data: object, *, config: EngineConfig | None = None) -> "PerformanceState":
        """Rebuild a state persisted with :meth:`to_dict`, checking invariants."""

        cfg = config or EngineConfig()
        if not isinstance(data, dict):
            raise InvalidStateError("state must be a mapping")
        try:
            accuracy = float(data["accuracy"])
            average_time_s = float(data["average_time_s"])
            current_difficulty = int(data["current_difficulty"])
            consecutive_correct = int(data["consecutive_correct"])
            consecutive_wrong = int(data["consecutive_wrong"])
            total_problems = int(data["total_problems"])
            raw_history = list(data["history"])
            raw_stats = dict(data["type_stats"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidStateError(f"malformed state: {exc}") from exc

        _require(0.0 <= accuracy <= 100.0, "accuracy must be in [0, 100]")
        _require(math.isfinite(average_time_s) and average_time_s >= 0, "average_time_s must be finite and >= 0")
        _require(MIN_DIFFICULTY <= current_difficulty <= MAX_DIFFICULTY, "current_difficulty must be in [1, 5]")
        _require(consecutive_correct >= 0 and consecutive_wrong >= 0, "streak counters must be >= 0")
        _require(consecutive_correct == 0 or consecutive_wrong == 0, "only one streak counter may be nonzero")
        _require(total_problems >= 0, "total_problems must be >= 0")
        _require(
            total_problems == 0 or (consecutive_correct == 0) != (consecutive_wrong == 0),
            "exactly one streak counter must be nonzero once an attempt is recorded",
        )
        _require(len(raw_history) <= cfg.history_limit, "history exceeds the configured limit")
        _require(len(raw_history) <= total_problems, "history is longer than total_problems")

        history: deque[Attempt] = deque(maxlen=cfg.history_limit)
        type_stats: dict[OperationType, TypeStats] = {}
        try:
            for item in raw_history:
                was_correct = item["was_correct"]
                _require(isinstance(was_correct, bool), "history was_correct must be a boolean")
                history.append(
                    Attempt(
                        type=OperationType(item["type"]),
                        difficulty_at_time=int(item["difficulty_at_time"]),
                        elapsed_ms=float(item["elapsed_ms"]),
                        was_correct=was_correct,
                        timestamp=float(item["timestamp"]),
                    )
                )
            for t in ALL_TYPES:
                s = raw_stats[t.value]
                type_stats[t] = TypeStats(
                    accuracy=float(s["accuracy"]),
                    average_time_s=float(s["average_time_s"]),
                    count=int(s["count"]),
                )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidStateError(f"malformed state: {exc}") from exc

        for a in history:
            _require(math.isfinite(a.elapsed_ms) and a.elapsed_ms >= 0, "history elapsed_ms must be finite and >= 0")
            _require(
                MIN_DIFFICULTY <= a.difficulty_at_time <= MAX_DIFFICULTY,
                "history difficulty_at_time must be in [1, 5]",
            )
        for t, s in type_stats.items():
            _require(0.0 <= s.accuracy <= 100.0, f"{t.value} accuracy must be in [0, 100]")
            _require(
                math.isfinite(s.average_time_s) and s.average_time_s >= 0,
                f"{t.value} average_time_s must be finite and >= 0",
            )
            _require(s.count >= 0, f"{t.value} count must be >= 0")

        return cls(
            accuracy=accuracy,
            average_time_s=average_time_s,
            current_difficulty=current_difficulty,
            consecutive_correct=consecutive_correct,
            consecutive_wrong=consecutive_wrong,
            total_problems=total_problems,
            history=history,
            type_stats=type_stats,
        )


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise InvalidStateError(message)


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit.

    ``seed=None`` draws from OS entropy (non-reproducible).
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(None if seed is None else int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def randrange(self, start: int, stop: int) -> int:
        return self._rng.randrange(start, stop)

    def shuffled(self, items: list[T]) -> list[T]:
        """Return a Fisher-Yates shuffled copy of ``items``."""

        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = self._rng.randint(0, i)
            out[i], out[j] = out[j], out[i]
        return out


def clamp_difficulty(level: int) -> int:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(level)))
