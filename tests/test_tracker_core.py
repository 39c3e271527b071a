from __future__ import annotations

import math
import random
from dataclasses import dataclass

import pytest

from adaptive_trainer.practice_core import ALL_TYPES, InvalidAttemptError, OperationType
from adaptive_trainer.tracker import PerformanceTracker, recent_accuracy, recent_average_time_s


@dataclass
class FakeClock:
    t: float = 1_700_000_000.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


ADD = OperationType.ADDITION
SUB = OperationType.SUBTRACTION


def test_fresh_state_has_neutral_defaults() -> None:
    s = PerformanceTracker().state
    assert s.accuracy == 50.0
    assert s.average_time_s == 25.0
    assert s.current_difficulty == 2
    assert (s.consecutive_correct, s.consecutive_wrong, s.total_problems) == (0, 0, 0)
    assert len(s.history) == 0
    assert set(s.type_stats) == set(ALL_TYPES)
    assert all(stats.count == 0 and stats.accuracy == 50.0 for stats in s.type_stats.values())
    assert s.type_stats[OperationType.DIVISION].average_time_s == 35.0


def test_first_outcome_replaces_neutral_values() -> None:
    tracker = PerformanceTracker(clock=FakeClock())
    tracker.record_outcome(ADD, 2, True, 3000)
    s = tracker.state
    assert s.accuracy == 100.0
    assert s.average_time_s == 3.0
    assert s.type_stats[ADD].accuracy == 100.0
    assert s.type_stats[ADD].average_time_s == 3.0
    assert s.type_stats[ADD].count == 1


def test_weighted_accuracy_and_running_mean_time() -> None:
    tracker = PerformanceTracker()
    tracker.record_outcome(ADD, 2, True, 1000)
    tracker.record_outcome(SUB, 2, False, 3000)
    s = tracker.state
    # weight 2: (100 * 1 + 0) / 2
    assert s.accuracy == 50.0
    assert s.average_time_s == 2.0
    assert s.total_problems == 2


def test_accuracy_weight_is_capped_at_window() -> None:
    tracker = PerformanceTracker()
    for _ in range(25):
        tracker.record_outcome(ADD, 3, True, 2000)
    assert tracker.state.accuracy == 100.0
    tracker.record_outcome(ADD, 3, False, 2000)
    # weight stays 20 once 20+ attempts have been seen
    assert math.isclose(tracker.state.accuracy, 95.0)


def test_type_stats_are_weighted_by_their_own_count_without_cap() -> None:
    tracker = PerformanceTracker()
    for _ in range(30):
        tracker.record_outcome(SUB, 3, True, 1000)
    tracker.record_outcome(SUB, 3, False, 4100)
    stats = tracker.state.type_stats[SUB]
    assert stats.count == 31
    assert math.isclose(stats.accuracy, 100.0 * 30 / 31)
    assert math.isclose(stats.average_time_s, (30 * 1.0 + 4.1) / 31)
    # untouched categories keep their defaults
    assert tracker.state.type_stats[ADD].count == 0


def test_streak_counters_are_mutually_exclusive() -> None:
    tracker = PerformanceTracker()
    tracker.record_outcome(ADD, 2, True, 1000)
    tracker.record_outcome(ADD, 2, True, 1000)
    assert (tracker.state.consecutive_correct, tracker.state.consecutive_wrong) == (2, 0)
    tracker.record_outcome(ADD, 2, False, 1000)
    assert (tracker.state.consecutive_correct, tracker.state.consecutive_wrong) == (0, 1)
    tracker.record_outcome(ADD, 2, False, 1000)
    tracker.record_outcome(ADD, 2, False, 1000)
    assert (tracker.state.consecutive_correct, tracker.state.consecutive_wrong) == (0, 3)


def test_history_is_a_fifo_capped_at_fifty() -> None:
    tracker = PerformanceTracker()
    for i in range(55):
        tracker.record_outcome(ADD, 2, True, float(i))
        assert len(tracker.state.history) <= 50
    history = list(tracker.state.history)
    assert len(history) == 50
    assert history[0].elapsed_ms == 5.0
    assert history[-1].elapsed_ms == 54.0
    assert tracker.state.total_problems == 55


def test_attempt_records_type_difficulty_and_clock_timestamp() -> None:
    clock = FakeClock()
    tracker = PerformanceTracker(clock=clock)
    clock.advance(12.5)
    attempt = tracker.record_outcome(OperationType.MULTIPLICATION, 4, False, 2500)
    assert attempt.type is OperationType.MULTIPLICATION
    assert attempt.difficulty_at_time == 4
    assert attempt.elapsed_s == 2.5
    assert attempt.was_correct is False
    assert attempt.timestamp == clock.t
    assert tracker.state.history[-1] is attempt


@pytest.mark.parametrize("bad", [-1, -0.001, float("nan"), float("inf"), float("-inf"), None, "1200", True])
def test_invalid_elapsed_time_is_rejected_without_mutation(bad: object) -> None:
    tracker = PerformanceTracker()
    tracker.record_outcome(ADD, 2, True, 1000)
    before = tracker.state.to_dict()
    with pytest.raises(InvalidAttemptError):
        tracker.record_outcome(ADD, 2, True, bad)  # type: ignore[arg-type]
    assert tracker.state.to_dict() == before


def test_zero_elapsed_time_is_accepted() -> None:
    tracker = PerformanceTracker()
    tracker.record_outcome(ADD, 2, True, 0)
    assert tracker.state.average_time_s == 0.0


def test_accuracy_stays_in_bounds_for_random_sequences() -> None:
    rng = random.Random(2024)
    tracker = PerformanceTracker()
    for _ in range(400):
        op = rng.choice(ALL_TYPES)
        tracker.record_outcome(op, rng.randint(1, 5), rng.random() < 0.6, rng.uniform(0, 60_000))
        s = tracker.state
        assert 0.0 <= s.accuracy <= 100.0
        assert all(0.0 <= st.accuracy <= 100.0 for st in s.type_stats.values())
        assert s.consecutive_correct == 0 or s.consecutive_wrong == 0
        assert s.consecutive_correct + s.consecutive_wrong >= 1


def test_recent_helpers_fall_back_and_use_windows() -> None:
    tracker = PerformanceTracker()
    s = tracker.state
    assert recent_average_time_s(s) == s.average_time_s
    assert recent_accuracy(s) == s.accuracy

    for i in range(12):
        tracker.record_outcome(ADD, 2, i >= 4, 1000 * (i + 1))
    # last 5 elapsed: 8..12 seconds
    assert recent_average_time_s(s, 5) == 10.0
    # last 10 attempts: indices 2..11, of which 4..11 are correct
    assert recent_accuracy(s, 10) == 80.0


def test_reset_restores_neutral_state() -> None:
    tracker = PerformanceTracker()
    fresh = tracker.state.to_dict()
    tracker.record_outcome(ADD, 2, False, 5000)
    tracker.reset()
    assert tracker.state.to_dict() == fresh
