"""Difficulty rule ladder.

Rules are evaluated top to bottom and the first match wins:

1. ``RAISE``: accuracy above ``raise_accuracy`` with a short correct streak.
2. ``LOWER``: accuracy below ``lower_accuracy`` or a short wrong streak.
3. ``HOLD_SLOW``: recent answers are much slower than the running average.
4. ``NUDGE``: a sustained correct streak that did not qualify for RAISE.
5. ``HOLD``: nothing else matched.

Rule 3 is checked before rule 4, so a slow learner on a long streak holds.
The functions here are pure; the caller applies the result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from .practice_core import MAX_DIFFICULTY, MIN_DIFFICULTY, EngineConfig, PerformanceState
from .tracker import recent_average_time_s


class DifficultyRule(str, Enum):
    RAISE = "raise"
    LOWER = "lower"
    HOLD_SLOW = "hold_slow"
    NUDGE = "nudge"
    HOLD = "hold"


@dataclass(frozen=True, slots=True)
class DifficultyDecision:
    rule: DifficultyRule
    previous: int
    level: int

    @property
    def changed(self) -> bool:
        return self.level != self.previous


def evaluate_difficulty(state: PerformanceState, config: EngineConfig | None = None) -> DifficultyDecision:
    cfg = config or EngineConfig()
    d = state.current_difficulty

    if state.accuracy > cfg.raise_accuracy and state.consecutive_correct >= cfg.raise_streak:
        return DifficultyDecision(DifficultyRule.RAISE, d, min(MAX_DIFFICULTY, d + 1))

    if state.accuracy < cfg.lower_accuracy or state.consecutive_wrong >= cfg.lower_streak:
        return DifficultyDecision(DifficultyRule.LOWER, d, max(MIN_DIFFICULTY, d - 1))

    if recent_average_time_s(state, cfg.recent_time_window) > state.average_time_s * cfg.slow_factor:
        return DifficultyDecision(DifficultyRule.HOLD_SLOW, d, d)

    if state.consecutive_correct >= cfg.sustained_streak:
        # Half-step rounded up: on integer levels this is a full step.
        return DifficultyDecision(DifficultyRule.NUDGE, d, min(MAX_DIFFICULTY, math.ceil(d + 0.5)))

    return DifficultyDecision(DifficultyRule.HOLD, d, d)


def next_difficulty(state: PerformanceState, config: EngineConfig | None = None) -> int:
    return evaluate_difficulty(state, config).level
