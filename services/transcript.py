"""Plain-text transcript rendering for completed or in-progress sessions."""
from __future__ import annotations

import datetime as dt
import re
from typing import List, Optional, Sequence

from agents.types import CRITERIA, MAX_OVERALL_SCORE, ConversationMessage, PracticeSession

_WHITESPACE = re.compile(r"\s+")


def transcript_filename(session: PracticeSession, today: Optional[dt.date] = None) -> str:
    day = (today or dt.datetime.now(dt.timezone.utc).date()).isoformat()
    position = _WHITESPACE.sub("-", session.position.strip())
    company = _WHITESPACE.sub("-", session.company.strip())
    return f"interview-transcript-{position}-{company}-{day}.txt"


def render_transcript(session: PracticeSession, messages: Sequence[ConversationMessage]) -> str:
    """Render header, ordered conversation and (when scored) the performance footer."""

    persona = session.persona
    interviewer = persona.name if persona else "Interviewer"
    lines: List[str] = [
        "INTERVIEW TRANSCRIPT",
        "====================",
        "",
        "Interview Details:",
        "------------------",
        f"Position: {session.position}",
        f"Company: {session.company}",
        f"Industry: {session.industry or 'Not specified'}",
        f"Interview Stage: {session.interview_stage}",
        f"Date: {_date(session.started_at or session.created_at)}",
        f"Duration: {session.duration // 60 if session.duration is not None else 'N/A'} minutes",
        "",
        "Interviewer Profile:",
        "--------------------",
        f"Name: {interviewer}",
        f"Role: {persona.role if persona else 'N/A'}",
        f"Background: {persona.background if persona else 'N/A'}",
        "",
        "Interview Objectives:",
        "---------------------",
    ]
    objectives = persona.objectives if persona else []
    lines.extend(_numbered(objectives) or ["No objectives specified"])
    lines.extend(["", "CONVERSATION TRANSCRIPT:", "========================", ""])

    for message in sorted(messages, key=lambda m: m.message_order):
        speaker = interviewer if message.role == "assistant" else "Candidate"
        lines.append(f"[{_time(message.timestamp)}] {speaker}: {message.content}")
        lines.append("")

    lines.extend(["========================", "END OF TRANSCRIPT"])
    if session.overall_score is not None:
        lines.extend(
            [
                "",
                "Performance Summary:",
                "--------------------",
                f"Overall Score: {session.overall_score}/{MAX_OVERALL_SCORE}",
                "Individual Scores:",
            ]
        )
        scores = session.criteria_scores or {}
        lines.extend(f"- {name}: {scores[name]}/5" for name in CRITERIA if name in scores)
        lines.extend(["", "Feedback:", "---------", session.feedback or "No feedback provided"])
        lines.extend(["", "Suggested Improvements:", "-----------------------"])
        lines.extend(_numbered(session.improvements or []) or ["No improvements suggested"])
    return "\n".join(lines) + "\n"


def _numbered(items: Sequence[str]) -> List[str]:
    return [f"{index}. {item}" for index, item in enumerate(items, start=1)]


def _parse(value: str) -> Optional[dt.datetime]:
    try:
        return dt.datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _date(value: Optional[str]) -> str:
    parsed = _parse(value) if value else None
    return parsed.date().isoformat() if parsed else "N/A"


def _time(value: str) -> str:
    parsed = _parse(value)
    return parsed.strftime("%H:%M:%S") if parsed else value
