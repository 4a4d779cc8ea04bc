from __future__ import annotations

import datetime as dt

from agents.persona_manager import fallback_persona
from agents.types import ConversationMessage, PracticeSession
from services.scoring import normalize_feedback
from services.transcript import render_transcript, transcript_filename


def _session(**overrides):
    data = dict(
        id="s1",
        user_id="u1",
        position="Senior  Data Engineer",
        company="Acme Corp",
        industry="Fintech",
        interview_stage="hiring-manager",
        stage="active",
        persona=fallback_persona("hiring-manager", "Acme Corp", "Senior Data Engineer"),
        started_at="2026-03-04T09:15:00+00:00",
        created_at="2026-03-04T09:14:00+00:00",
        updated_at="2026-03-04T09:15:00+00:00",
    )
    data.update(overrides)
    return PracticeSession(**data)


def _message(order, role, content, ts):
    return ConversationMessage(
        id=f"m{order}", session_id="s1", role=role, content=content, message_order=order, timestamp=ts
    )


def test_filename_collapses_whitespace():
    name = transcript_filename(_session(), today=dt.date(2026, 3, 5))
    assert name == "interview-transcript-Senior-Data-Engineer-Acme-Corp-2026-03-05.txt"


def test_renders_header_and_ordered_conversation():
    session = _session()
    messages = [
        _message(2, "user", "I build pipelines.", "2026-03-04T09:16:30+00:00"),
        _message(1, "assistant", "Welcome! Tell me about yourself.", "2026-03-04T09:15:05+00:00"),
    ]
    text = render_transcript(session, messages)
    assert text.startswith("INTERVIEW TRANSCRIPT\n")
    assert "Position: Senior  Data Engineer" in text
    assert "Industry: Fintech" in text
    assert "Date: 2026-03-04" in text
    assert "Duration: N/A minutes" in text
    assert "1. " in text.split("Interview Objectives:")[1]
    persona_name = session.persona.name
    first = text.index(f"[09:15:05] {persona_name}: Welcome!")
    second = text.index("[09:16:30] Candidate: I build pipelines.")
    assert first < second
    assert "END OF TRANSCRIPT" in text
    assert "Performance Summary" not in text


def test_scored_session_adds_summary_footer():
    record = normalize_feedback(None, response_text="I shipped it and revenue grew 20%.")
    session = _session(
        stage="completed",
        duration=1830,
        overall_score=record.overall_score,
        criteria_scores=record.criteria_scores,
        feedback=record.feedback,
        improvements=record.improvements,
    )
    text = render_transcript(session, [])
    assert "Duration: 30 minutes" in text
    assert f"Overall Score: {record.overall_score}/35" in text
    assert f"- relevance: {record.criteria_scores['relevance']}/5" in text
    assert f"1. {record.improvements[0]}" in text


def test_missing_persona_and_industry():
    text = render_transcript(_session(persona=None, industry=None), [])
    assert "Industry: Not specified" in text
    assert "Name: Interviewer" in text
    assert "No objectives specified" in text
