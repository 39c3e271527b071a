from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path

import pytest

from adaptive_trainer.engine import RecommendationEngine
from adaptive_trainer.persistence import delete_state, load_state, open_db, record_session, save_state, session_count
from adaptive_trainer.practice_core import InvalidStateError
from adaptive_trainer.results import session_result
from adaptive_trainer.session import PracticeSession


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def _played_session(seed: int = 5, n: int = 6) -> PracticeSession:
    clock = FakeClock()
    engine = RecommendationEngine(seed=seed, clock=clock)
    session = PracticeSession(engine, clock=clock)
    for i in range(n):
        p = session.next_problem()
        clock.advance(1.5 + i)
        session.submit_answer(str(p.correct_answer if i % 2 == 0 else p.correct_answer + 7))
    return session


def test_state_round_trips_through_sqlite(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "progress.sqlite3"
    session = _played_session()
    state = session.engine.get_performance_state()

    save_state(db_path=db, learner_id="ana", state=state)
    loaded = load_state(db_path=db, learner_id="ana")
    assert loaded is not None
    assert loaded.to_dict() == state.to_dict()

    restored = RecommendationEngine(seed=1)
    restored.restore(loaded)
    assert restored.get_performance_state().total_problems == 6


def test_save_overwrites_previous_snapshot(tmp_path: Path) -> None:
    db = tmp_path / "p.sqlite3"
    engine = _played_session(n=2).engine
    save_state(db_path=db, learner_id="ana", state=engine.get_performance_state())
    engine.reset()
    save_state(db_path=db, learner_id="ana", state=engine.get_performance_state())
    loaded = load_state(db_path=db, learner_id="ana")
    assert loaded is not None
    assert loaded.total_problems == 0


def test_missing_database_or_learner_loads_none(tmp_path: Path) -> None:
    db = tmp_path / "absent.sqlite3"
    assert load_state(db_path=db, learner_id="ana") is None
    assert not db.exists()

    save_state(db_path=db, learner_id="ana", state=_played_session(n=1).engine.get_performance_state())
    assert load_state(db_path=db, learner_id="ben") is None


def test_corrupt_snapshot_raises_invalid_state(tmp_path: Path) -> None:
    db = tmp_path / "p.sqlite3"
    conn = open_db(db)
    with conn:
        conn.execute(
            "INSERT INTO learner_state(learner_id, state_json, updated_at_utc) VALUES (?, ?, ?)",
            ("ana", "{not json", "2024-01-01T00:00:00Z"),
        )
        conn.execute(
            "INSERT INTO learner_state(learner_id, state_json, updated_at_utc) VALUES (?, ?, ?)",
            ("ben", '{"accuracy": 500}', "2024-01-01T00:00:00Z"),
        )
    conn.close()

    with pytest.raises(InvalidStateError):
        load_state(db_path=db, learner_id="ana")
    with pytest.raises(InvalidStateError):
        load_state(db_path=db, learner_id="ben")


def test_delete_state(tmp_path: Path) -> None:
    db = tmp_path / "p.sqlite3"
    save_state(db_path=db, learner_id="ana", state=_played_session(n=1).engine.get_performance_state())
    delete_state(db_path=db, learner_id="ana")
    assert load_state(db_path=db, learner_id="ana") is None


def test_record_session_writes_trials(tmp_path: Path) -> None:
    db = tmp_path / "p.sqlite3"
    result = session_result(_played_session(n=6))

    sid = record_session(db_path=db, learner_id="ana", result=result)
    record_session(db_path=db, learner_id="ana", result=result)
    assert session_count(db_path=db, learner_id="ana") == 2
    assert session_count(db_path=db, learner_id="ben") == 0

    conn = sqlite3.connect(db)
    try:
        row = conn.execute(
            "SELECT rng_seed, attempted, correct, final_difficulty FROM session WHERE id = ?",
            (sid,),
        ).fetchone()
        trials = conn.execute(
            "SELECT seq, op_type, is_correct, rt_ms FROM trial WHERE session_id = ? ORDER BY seq",
            (sid,),
        ).fetchall()
    finally:
        conn.close()

    assert row == (5, 6, 3, result.final_difficulty)
    assert [t[0] for t in trials] == list(range(6))
    assert trials[0][1] == "addition"
    assert [t[2] for t in trials] == [1, 0, 1, 0, 1, 0]
    assert trials[0][3] == 1500


def test_schema_version_is_set(tmp_path: Path) -> None:
    conn = open_db(tmp_path / "p.sqlite3")
    try:
        assert conn.execute("PRAGMA user_version;").fetchone()[0] == 1
    finally:
        conn.close()
