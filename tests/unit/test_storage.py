"""Tests for the SQLite schema and persistence helpers."""
from __future__ import annotations

import sqlite3
import threading

import pytest

from agents.persona_manager import fallback_persona
from storage import job_descriptions as jd_store
from storage import messages as message_store
from storage import sessions as session_store
from storage.sqlite import get_conn


def _session(**overrides):
    data = dict(
        user_id="u1",
        position="Backend Engineer",
        company="Acme",
        interview_stage="hiring-manager",
        persona=fallback_persona("hiring-manager", "Acme", "Backend Engineer"),
        voice="onyx",
    )
    data.update(overrides)
    return session_store.insert_session(**data)


def test_insert_and_load_session_round_trip():
    session = _session(industry="Fintech")
    loaded = session_store.get_session(session.id)
    assert loaded is not None
    assert loaded == session
    assert loaded.stage == "setup"
    assert loaded.industry == "Fintech"
    assert loaded.persona.name == "Ahmad Rizal"
    assert loaded.overall_score is None and loaded.completed_at is None


def test_list_user_sessions_newest_first():
    first = _session()
    second = _session()
    _session(user_id="someone-else")
    listed = session_store.list_user_sessions("u1")
    assert [s.id for s in listed] == [second.id, first.id]


def test_append_messages_assigns_consecutive_orders():
    session = _session()
    first = message_store.append_messages(session.id, [("assistant", "Hello")])
    pair = message_store.append_messages(session.id, [("user", "Hi"), ("assistant", "Tell me more")])
    assert [m.message_order for m in first + pair] == [1, 2, 3]
    assert [m.content for m in message_store.list_messages(session.id)] == ["Hello", "Hi", "Tell me more"]


def test_orders_are_per_session():
    a = _session()
    b = _session()
    message_store.append_messages(a.id, [("assistant", "a1")])
    (msg,) = message_store.append_messages(b.id, [("assistant", "b1")])
    assert msg.message_order == 1


def test_concurrent_appends_never_collide():
    session = _session()
    errors = []

    def worker(n):
        try:
            for i in range(5):
                message_store.append_messages(session.id, [("user", f"{n}-{i}"), ("assistant", "ok")])
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    orders = [m.message_order for m in message_store.list_messages(session.id)]
    assert orders == list(range(1, 41))


def test_unique_constraint_rejects_duplicate_order():
    session = _session()
    message_store.append_messages(session.id, [("assistant", "Hello")])
    with pytest.raises(sqlite3.IntegrityError):
        with get_conn() as conn:
            conn.execute(
                """INSERT INTO conversation_messages (id, session_id, role, content, message_order, timestamp)
                   VALUES ('dup', ?, 'user', 'x', 1, 'now')""",
                (session.id,),
            )


def test_rolled_back_transaction_leaves_no_messages():
    session = _session()
    with pytest.raises(RuntimeError):
        with get_conn(immediate=True) as conn:
            message_store.append_messages(session.id, [("assistant", "Hello")], conn=conn)
            raise RuntimeError("boom")
    assert message_store.list_messages(session.id) == []


def test_transition_stage_is_compare_and_set():
    session = _session()
    assert session_store.transition_stage(session.id, "setup", "active", started_at="2024-01-01T00:00:00+00:00")
    assert not session_store.transition_stage(session.id, "setup", "active")
    loaded = session_store.get_session(session.id)
    assert loaded.stage == "active"
    assert loaded.started_at == "2024-01-01T00:00:00+00:00"


def test_transition_stage_rejects_unknown_columns():
    session = _session()
    with pytest.raises(ValueError):
        session_store.transition_stage(session.id, "setup", "active", overall_score=35)


def test_job_description_crud():
    record = jd_store.insert_job_description(user_id="u1", file_name="jd.txt", extracted_text="Build APIs")
    assert record.file_size == len("Build APIs")
    assert jd_store.get_job_description(record.id) == record
    assert jd_store.get_job_description("missing") is None
    assert [r.id for r in jd_store.list_user_job_descriptions("u1")] == [record.id]
