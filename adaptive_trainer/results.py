from __future__ import annotations

from dataclasses import dataclass

from .session import PracticeSession, Trial


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Persistable summary + trial log for a practice session."""

    seed: int | None
    attempted: int
    correct: int
    accuracy: float
    mean_rt_ms: float | None
    median_rt_ms: float | None
    final_difficulty: int

    trials: list[Trial]


def session_result(session: PracticeSession) -> SessionResult:
    """Build a SessionResult from a PracticeSession at any point in its life."""

    summary = session.summary()
    trials = session.trials()
    rts_ms = sorted(int(round(t.response_time_s * 1000.0)) for t in trials)

    mean_ms: float | None
    median_ms: float | None
    if not rts_ms:
        mean_ms = None
        median_ms = None
    else:
        mean_ms = float(sum(rts_ms)) / float(len(rts_ms))
        mid = len(rts_ms) // 2
        if len(rts_ms) % 2 == 1:
            median_ms = float(rts_ms[mid])
        else:
            median_ms = float(rts_ms[mid - 1] + rts_ms[mid]) / 2.0

    engine = session.engine
    return SessionResult(
        seed=engine.seed,
        attempted=int(summary.attempted),
        correct=int(summary.correct),
        accuracy=float(summary.accuracy),
        mean_rt_ms=mean_ms,
        median_rt_ms=median_ms,
        final_difficulty=engine.get_performance_state().current_difficulty,
        trials=trials,
    )
