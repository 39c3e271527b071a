from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .practice_core import ALL_TYPES, EngineConfig, OperationType, PerformanceState
from .tracker import recent_accuracy


class Trend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass(frozen=True, slots=True)
class Analysis:
    strongest_type: OperationType
    weakest_type: OperationType
    recommended_focus: OperationType
    overall_trend: Trend


def analyze(state: PerformanceState, config: EngineConfig | None = None) -> Analysis:
    """Summarize strengths, weaknesses and direction of the learner.

    Ranking is by accuracy, highest first, with ties kept in declaration
    order; the strongest category is the head of that ranking and the
    weakest its tail. Only practiced categories are ranked. The focus
    recommendation considers every category, practiced or not.
    """

    cfg = config or EngineConfig()
    stats = state.type_stats

    practiced = [t for t in ALL_TYPES if stats[t].count > 0]
    ranked = sorted(practiced, key=lambda t: stats[t].accuracy, reverse=True)
    strongest = ranked[0] if ranked else OperationType.ADDITION
    weakest = ranked[-1] if ranked else OperationType.ADDITION

    weak = [t for t in ALL_TYPES if stats[t].accuracy < cfg.weak_accuracy]
    focus = min(weak, key=lambda t: stats[t].accuracy) if weak else weakest

    recent = recent_accuracy(state, cfg.trend_window)
    if recent > state.accuracy + cfg.trend_margin:
        trend = Trend.IMPROVING
    elif recent < state.accuracy - cfg.trend_margin:
        trend = Trend.DECLINING
    else:
        trend = Trend.STABLE

    return Analysis(
        strongest_type=strongest,
        weakest_type=weakest,
        recommended_focus=focus,
        overall_trend=trend,
    )


_LEVEL_TITLES = {
    1: "Brave Apprentice",
    2: "Capable Explorer",
    3: "Expert Adventurer",
    4: "Math Master",
    5: "Math Master",
}


def level_title(level: int) -> str:
    return _LEVEL_TITLES.get(level, "New Adventurer")


def encouragement(state: PerformanceState) -> str:
    """Short motivational line for the progress screen."""

    streak = state.consecutive_correct
    if streak > 5:
        return "Incredible streak! You're unstoppable!"
    if streak > 3:
        return "Excellent work! Keep it up!"
    if state.total_problems == 0:
        return "Take your time! You can do it!"
    rate = state.accuracy / 100.0
    if rate > 0.8:
        return "You're doing great!"
    if rate > 0.6:
        return "Good job! You've got this!"
    if rate > 0.4:
        return "Don't give up! You're improving!"
    return "Take your time! You can do it!"
