"""SQLite storage for a learner's engine state and practice sessions.

The engine itself is in-memory; this module is the caller-side layer that
keeps a learner's PerformanceState across restarts and logs finished
sessions:

  learner_state (one JSON snapshot per learner)
  session -> trial
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path

from .practice_core import EngineConfig, InvalidStateError, PerformanceState
from .results import SessionResult

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS learner_state (
                learner_id TEXT PRIMARY KEY,
                state_json TEXT NOT NULL,
                updated_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session (
                id INTEGER PRIMARY KEY,
                learner_id TEXT NOT NULL,
                rng_seed INTEGER,
                attempted INTEGER NOT NULL,
                correct INTEGER NOT NULL,
                accuracy REAL NOT NULL,
                mean_rt_ms REAL,
                median_rt_ms REAL,
                final_difficulty INTEGER NOT NULL,
                created_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS trial (
                id INTEGER PRIMARY KEY,
                session_id INTEGER NOT NULL REFERENCES session(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                problem_id TEXT NOT NULL,
                op_type TEXT NOT NULL,
                difficulty INTEGER NOT NULL,
                prompt TEXT NOT NULL,
                expected INTEGER NOT NULL,
                response TEXT NOT NULL,
                is_correct INTEGER NOT NULL,
                rt_ms INTEGER NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_trial_session_seq ON trial(session_id, seq);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


def save_state(*, db_path: Path, learner_id: str, state: PerformanceState) -> None:
    payload = json.dumps(state.to_dict(), sort_keys=True)
    conn = open_db(db_path)
    try:
        with conn:
            conn.execute(
                """
                INSERT INTO learner_state(learner_id, state_json, updated_at_utc)
                VALUES (?, ?, ?)
                ON CONFLICT(learner_id) DO UPDATE SET
                    state_json = excluded.state_json,
                    updated_at_utc = excluded.updated_at_utc
                """,
                (learner_id, payload, _utc_now_iso()),
            )
    finally:
        conn.close()
    logger.info("saved state for learner %r (total_problems=%d)", learner_id, state.total_problems)


def load_state(
    *,
    db_path: Path,
    learner_id: str,
    config: EngineConfig | None = None,
) -> PerformanceState | None:
    """Return the stored state, or None if the learner has none.

    Raises InvalidStateError when the stored snapshot is corrupt.
    """

    if not db_path.exists():
        return None
    conn = open_db(db_path)
    try:
        row = conn.execute(
            "SELECT state_json FROM learner_state WHERE learner_id = ?",
            (learner_id,),
        ).fetchone()
    finally:
        conn.close()
    if row is None:
        return None
    try:
        data = json.loads(row[0])
    except ValueError as exc:
        raise InvalidStateError(f"stored state for {learner_id!r} is not valid JSON") from exc
    return PerformanceState.from_dict(data, config=config)


def delete_state(*, db_path: Path, learner_id: str) -> None:
    conn = open_db(db_path)
    try:
        with conn:
            conn.execute("DELETE FROM learner_state WHERE learner_id = ?", (learner_id,))
    finally:
        conn.close()


def record_session(*, db_path: Path, learner_id: str, result: SessionResult) -> int:
    """
    Log one practice session:
      session -> trial
    """
    conn = open_db(db_path)
    try:
        session_id = _insert_session(conn=conn, learner_id=learner_id, result=result)
    finally:
        conn.close()
    logger.info("recorded session %d for learner %r (%d trials)", session_id, learner_id, len(result.trials))
    return session_id


def _insert_session(*, conn: sqlite3.Connection, learner_id: str, result: SessionResult) -> int:
    with conn:
        cur = conn.execute(
            """
            INSERT INTO session(
                learner_id, rng_seed, attempted, correct, accuracy,
                mean_rt_ms, median_rt_ms, final_difficulty, created_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                learner_id,
                result.seed,
                int(result.attempted),
                int(result.correct),
                float(result.accuracy),
                result.mean_rt_ms,
                result.median_rt_ms,
                int(result.final_difficulty),
                _utc_now_iso(),
            ),
        )
        session_id = int(cur.lastrowid)

        for t in result.trials:
            conn.execute(
                """
                INSERT INTO trial(
                    session_id, seq, problem_id, op_type, difficulty, prompt,
                    expected, response, is_correct, rt_ms
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    int(t.index),
                    t.problem.id,
                    t.problem.type.value,
                    int(t.problem.difficulty),
                    t.problem.question_text,
                    int(t.problem.correct_answer),
                    t.raw.strip(),
                    1 if t.is_correct else 0,
                    int(round(t.response_time_s * 1000.0)),
                ),
            )

    return session_id


def session_count(*, db_path: Path, learner_id: str) -> int:
    conn = open_db(db_path)
    try:
        row = conn.execute("SELECT COUNT(*) FROM session WHERE learner_id = ?", (learner_id,)).fetchone()
    finally:
        conn.close()
    return int(row[0])
