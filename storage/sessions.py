"""Persistence helpers for practice sessions."""
from __future__ import annotations

import json
import sqlite3
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from agents.types import FeedbackRecord, InterviewStage, Persona, PracticeSession, SessionStage

from .sqlite import get_conn, transaction, utc_now


class SessionPayload(BaseModel):
    user_id: str
    position: str
    company: str
    industry: Optional[str] = None
    interview_stage: InterviewStage
    job_description_id: Optional[str] = None
    language: str = "English"
    persona: Persona
    voice: str


_JSON_COLUMNS = {
    "persona_json": "persona",
    "criteria_scores_json": "criteria_scores",
    "criteria_feedback_json": "criteria_feedback",
    "star_analysis_json": "star_analysis",
    "improvements_json": "improvements",
    "feedback_provenance_json": "feedback_provenance",
}
_TRANSITION_COLUMNS = {"started_at", "completed_at", "duration"}


def insert_session(**data: Any) -> PracticeSession:
    """Insert a new session in the setup stage."""

    payload = SessionPayload(**data)
    session_id = uuid.uuid4().hex
    now = utc_now()
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO practice_sessions
               (id, user_id, position, company, industry, interview_stage, job_description_id,
                language, stage, persona_json, voice, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'setup', ?, ?, ?, ?)""",
            (
                session_id,
                payload.user_id,
                payload.position,
                payload.company,
                payload.industry,
                payload.interview_stage,
                payload.job_description_id,
                payload.language,
                payload.persona.model_dump_json(),
                payload.voice,
                now,
                now,
            ),
        )
    return PracticeSession(
        id=session_id,
        stage="setup",
        created_at=now,
        updated_at=now,
        **payload.model_dump(),
    )


def get_session(session_id: str, conn: Optional[sqlite3.Connection] = None) -> Optional[PracticeSession]:
    if conn is not None:
        row = conn.execute("SELECT * FROM practice_sessions WHERE id = ?", (session_id,)).fetchone()
        return _to_session(row) if row else None
    with get_conn() as own:
        row = own.execute("SELECT * FROM practice_sessions WHERE id = ?", (session_id,)).fetchone()
    return _to_session(row) if row else None


def list_user_sessions(user_id: str) -> List[PracticeSession]:
    """Return a user's sessions, newest first."""

    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM practice_sessions WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
            (user_id,),
        ).fetchall()
    return [_to_session(row) for row in rows]


def transition_stage(
    session_id: str,
    expected: SessionStage,
    target: SessionStage,
    conn: Optional[sqlite3.Connection] = None,
    **fields: Any,
) -> bool:
    """Compare-and-set the stage; False when the session is not in ``expected``."""

    unknown = set(fields) - _TRANSITION_COLUMNS
    if unknown:
        raise ValueError(f"Unsupported transition fields: {sorted(unknown)}")
    assignments = ["stage = ?", "updated_at = ?"]
    params: List[Any] = [target, utc_now()]
    for column in sorted(fields):
        assignments.append(f"{column} = ?")
        params.append(fields[column])
    params.extend([session_id, expected])
    with transaction(conn) as tx:
        cur = tx.execute(
            f"UPDATE practice_sessions SET {', '.join(assignments)} WHERE id = ? AND stage = ?",
            params,
        )
        return cur.rowcount == 1


def complete_session(session_id: str, duration: int, record: FeedbackRecord) -> bool:
    """Move active -> completed and write the outcome fields once."""

    now = utc_now()
    with get_conn(immediate=True) as conn:
        cur = conn.execute(
            """UPDATE practice_sessions
               SET stage = 'completed', completed_at = ?, updated_at = ?, duration = ?,
                   overall_score = ?, criteria_scores_json = ?, criteria_feedback_json = ?,
                   star_analysis_json = ?, feedback = ?, improvements_json = ?,
                   feedback_provenance_json = ?
               WHERE id = ? AND stage = 'active' AND overall_score IS NULL""",
            (
                now,
                now,
                duration,
                record.overall_score,
                json.dumps(record.criteria_scores),
                json.dumps({k: v.model_dump() for k, v in record.criteria_feedback.items()}),
                record.star_analysis.model_dump_json(),
                record.feedback,
                json.dumps(record.improvements),
                json.dumps(record.provenance),
                session_id,
            ),
        )
        return cur.rowcount == 1


def _to_session(row: sqlite3.Row) -> PracticeSession:
    data: Dict[str, Any] = {key: row[key] for key in row.keys()}
    for column, field in _JSON_COLUMNS.items():
        raw = data.pop(column)
        data[field] = json.loads(raw) if raw is not None else None
    return PracticeSession.model_validate(data)
