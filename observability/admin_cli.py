"""Lightweight CLI helpers for inspecting practice session tables."""
from __future__ import annotations

import argparse
import sqlite3
from typing import Optional

from config.settings import settings


def tail_sessions(limit: int = 20, db_path: Optional[str] = None) -> None:
    conn = sqlite3.connect(db_path or settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT updated_at, id, user_id, interview_stage, stage, overall_score
            FROM practice_sessions
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, session_id, user_id, interview_stage, stage, score = row
            score_text = "-" if score is None else f"{score}/35"
            print(f"[{ts}] {session_id} user={user_id} {interview_stage} -> {stage} score={score_text}")
    finally:
        conn.close()


def tail_messages(session_id: str, db_path: Optional[str] = None) -> None:
    conn = sqlite3.connect(db_path or settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT timestamp, message_order, role, content
            FROM conversation_messages
            WHERE session_id = ?
            ORDER BY message_order
            """,
            (session_id,),
        )
        for row in cursor.fetchall():
            ts, order, role, content = row
            line = content.splitlines()[0] if content else ""
            print(f"[{ts}] #{order} {role}: {line}")
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-sessions", type=int, help="Show the latest practice sessions")
    parser.add_argument("--tail-messages", help="Show the transcript of one session")
    args = parser.parse_args()

    if args.tail_sessions:
        tail_sessions(args.tail_sessions)
    if args.tail_messages:
        tail_messages(args.tail_messages)


if __name__ == "__main__":
    main()
