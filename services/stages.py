"""Session stage machine: setup -> active -> completed."""
from __future__ import annotations

import datetime as dt
import math
import sqlite3
from typing import Optional

from agents.types import FeedbackRecord, PracticeSession, SessionStage
from observability import log_event
from services.errors import InvalidStateError, NotFoundError
from storage import sessions as session_store
from storage.sqlite import utc_now

TRANSITIONS = {("setup", "active"), ("active", "completed")}
SEND_STAGES = ("setup", "active")


def can_transition(current: SessionStage, target: SessionStage) -> bool:
    return (current, target) in TRANSITIONS


def require_stage(session: PracticeSession, *allowed: SessionStage) -> None:
    if session.stage not in allowed:
        raise InvalidStateError(session.stage, "/".join(allowed))


def duration_seconds(started_at: Optional[str], now: Optional[dt.datetime] = None) -> int:
    """Whole seconds since ``started_at``, never negative."""

    if not started_at:
        return 0
    started = dt.datetime.fromisoformat(started_at)
    if started.tzinfo is None:
        started = started.replace(tzinfo=dt.timezone.utc)
    current = now or dt.datetime.now(dt.timezone.utc)
    return max(0, math.floor((current - started).total_seconds()))


def activate(session_id: str, conn: Optional[sqlite3.Connection] = None) -> None:
    """setup -> active, stamping ``started_at``."""

    if not session_store.transition_stage(session_id, "setup", "active", conn=conn, started_at=utc_now()):
        _raise_for(session_id, "setup", conn)
    log_event("stage_transition", session_id, from_stage="setup", to_stage="active")


def complete(session_id: str, started_at: Optional[str], record: FeedbackRecord) -> int:
    """active -> completed, persisting the normalized feedback once. Returns the duration."""

    duration = duration_seconds(started_at)
    if not session_store.complete_session(session_id, duration, record):
        _raise_for(session_id, "active")
    log_event("stage_transition", session_id, from_stage="active", to_stage="completed")
    return duration


def _raise_for(session_id: str, required: str, conn: Optional[sqlite3.Connection] = None) -> None:
    session = session_store.get_session(session_id, conn=conn)
    if session is None:
        raise NotFoundError(f"Session {session_id} not found")
    raise InvalidStateError(session.stage, required)


__all__ = ["TRANSITIONS", "SEND_STAGES", "activate", "can_transition", "complete", "duration_seconds", "require_stage"]
