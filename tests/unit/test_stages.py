from __future__ import annotations

import datetime as dt

import pytest

from agents.persona_manager import fallback_persona
from services import stages
from services.errors import InvalidStateError, NotFoundError
from services.scoring import normalize_feedback
from storage import sessions as session_store


def _session():
    return session_store.insert_session(
        user_id="u1",
        position="Analyst",
        company="Acme",
        interview_stage="phone-screening",
        persona=fallback_persona("phone-screening", "Acme", "Analyst"),
        voice="nova",
    )


def test_legal_transitions_only():
    assert stages.can_transition("setup", "active")
    assert stages.can_transition("active", "completed")
    assert not stages.can_transition("setup", "completed")
    assert not stages.can_transition("completed", "active")
    assert not stages.can_transition("active", "setup")


def test_require_stage_names_current_and_required():
    session = _session()
    with pytest.raises(InvalidStateError) as excinfo:
        stages.require_stage(session, "active")
    assert excinfo.value.current == "setup"
    assert excinfo.value.required == "active"
    assert "setup" in str(excinfo.value) and "active" in str(excinfo.value)


def test_activate_sets_started_at_once():
    session = _session()
    stages.activate(session.id)
    loaded = session_store.get_session(session.id)
    assert loaded.stage == "active" and loaded.started_at
    with pytest.raises(InvalidStateError):
        stages.activate(session.id)


def test_activate_missing_session():
    with pytest.raises(NotFoundError):
        stages.activate("nope")


def test_complete_requires_active_and_writes_once():
    session = _session()
    record = normalize_feedback(None)
    with pytest.raises(InvalidStateError):
        stages.complete(session.id, None, record)

    stages.activate(session.id)
    started = session_store.get_session(session.id).started_at
    duration = stages.complete(session.id, started, record)
    assert duration >= 0
    loaded = session_store.get_session(session.id)
    assert loaded.stage == "completed"
    assert loaded.overall_score == record.overall_score
    assert loaded.completed_at

    with pytest.raises(InvalidStateError) as excinfo:
        stages.complete(session.id, started, record)
    assert excinfo.value.current == "completed"


def test_duration_is_floored_and_non_negative():
    now = dt.datetime(2024, 5, 1, 12, 0, 10, 900000, tzinfo=dt.timezone.utc)
    assert stages.duration_seconds("2024-05-01T12:00:00+00:00", now) == 10
    assert stages.duration_seconds("2024-05-01T12:05:00+00:00", now) == 0
    assert stages.duration_seconds(None, now) == 0
