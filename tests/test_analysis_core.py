from __future__ import annotations

from adaptive_trainer.analysis import Trend, analyze, encouragement, level_title
from adaptive_trainer.practice_core import Attempt, OperationType, PerformanceState

ADD = OperationType.ADDITION
SUB = OperationType.SUBTRACTION
MUL = OperationType.MULTIPLICATION
DIV = OperationType.DIVISION


def _with_stats(stats: dict[OperationType, tuple[float, int]]) -> PerformanceState:
    s = PerformanceState.initial()
    for t, (acc, count) in stats.items():
        s.type_stats[t].accuracy = acc
        s.type_stats[t].count = count
    return s


def _with_history(accuracy: float, outcomes: list[bool]) -> PerformanceState:
    s = PerformanceState.initial()
    s.accuracy = accuracy
    for ok in outcomes:
        s.history.append(Attempt(type=ADD, difficulty_at_time=2, elapsed_ms=1000.0, was_correct=ok, timestamp=0.0))
    s.total_problems = len(outcomes)
    return s


def test_fresh_state_defaults() -> None:
    a = analyze(PerformanceState.initial())
    assert a.strongest_type is ADD
    assert a.weakest_type is ADD
    # every category sits at the neutral 50%, below the weak threshold
    assert a.recommended_focus is ADD
    assert a.overall_trend is Trend.STABLE


def test_strongest_weakest_and_focus() -> None:
    s = _with_stats({ADD: (90, 3), SUB: (40, 2), MUL: (75, 1), DIV: (50, 0)})
    a = analyze(s)
    assert a.strongest_type is ADD
    assert a.weakest_type is SUB
    assert a.recommended_focus is SUB


def test_unpracticed_categories_are_not_ranked() -> None:
    s = _with_stats({ADD: (70, 1), SUB: (80, 1), MUL: (90, 1), DIV: (10, 0)})
    a = analyze(s)
    assert a.strongest_type is MUL
    assert a.weakest_type is ADD
    # focus still considers the unpracticed division
    assert a.recommended_focus is DIV


def test_focus_falls_back_to_weakest() -> None:
    s = _with_stats({ADD: (90, 1), SUB: (80, 1), MUL: (70, 1), DIV: (95, 0)})
    a = analyze(s)
    assert a.weakest_type is MUL
    assert a.recommended_focus is MUL


def test_accuracy_ties_keep_declaration_order() -> None:
    s = _with_stats({ADD: (80, 1), SUB: (80, 1), MUL: (80, 1), DIV: (80, 1)})
    a = analyze(s)
    assert a.strongest_type is ADD
    assert a.weakest_type is DIV


def test_trend_improving_declining_stable() -> None:
    assert analyze(_with_history(50.0, [True] * 10)).overall_trend is Trend.IMPROVING
    assert analyze(_with_history(50.0, [False] * 10)).overall_trend is Trend.DECLINING
    assert analyze(_with_history(50.0, [True, False] * 5)).overall_trend is Trend.STABLE
    # exactly on the margin stays stable
    assert analyze(_with_history(75.0, [True] * 8 + [False] * 2)).overall_trend is Trend.STABLE


def test_trend_uses_only_the_last_ten_attempts() -> None:
    s = _with_history(60.0, [False] * 20 + [True] * 10)
    assert analyze(s).overall_trend is Trend.IMPROVING


def test_level_titles() -> None:
    assert level_title(1) == "Brave Apprentice"
    assert level_title(3) == "Expert Adventurer"
    assert level_title(5) == "Math Master"


def test_encouragement_prefers_streaks_then_accuracy() -> None:
    s = PerformanceState.initial()
    assert encouragement(s) == "Take your time! You can do it!"

    s.total_problems = 10
    s.consecutive_correct = 6
    assert encouragement(s) == "Incredible streak! You're unstoppable!"
    s.consecutive_correct = 4
    assert encouragement(s) == "Excellent work! Keep it up!"

    s.consecutive_correct = 0
    s.accuracy = 85.0
    assert encouragement(s) == "You're doing great!"
    s.accuracy = 65.0
    assert encouragement(s) == "Good job! You've got this!"
    s.accuracy = 45.0
    assert encouragement(s) == "Don't give up! You're improving!"
    s.accuracy = 20.0
    assert encouragement(s) == "Take your time! You can do it!"
