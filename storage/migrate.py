"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS job_descriptions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  file_name TEXT NOT NULL,
  extracted_text TEXT NOT NULL,
  mime_type TEXT NOT NULL,
  file_size INTEGER NOT NULL,
  uploaded_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS practice_sessions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  position TEXT NOT NULL,
  company TEXT NOT NULL,
  industry TEXT,
  interview_stage TEXT NOT NULL,
  job_description_id TEXT REFERENCES job_descriptions(id),
  language TEXT NOT NULL DEFAULT 'English',
  stage TEXT NOT NULL CHECK (stage IN ('setup', 'active', 'completed')),
  persona_json TEXT,
  voice TEXT NOT NULL,
  started_at TEXT,
  completed_at TEXT,
  duration INTEGER,
  overall_score INTEGER,
  criteria_scores_json TEXT,
  criteria_feedback_json TEXT,
  star_analysis_json TEXT,
  feedback TEXT,
  improvements_json TEXT,
  feedback_provenance_json TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_practice_sessions_user
  ON practice_sessions (user_id, created_at);
""",
    """
CREATE TABLE IF NOT EXISTS conversation_messages (
  id TEXT PRIMARY KEY,
  session_id TEXT NOT NULL REFERENCES practice_sessions(id),
  role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
  content TEXT NOT NULL,
  message_order INTEGER NOT NULL CHECK (message_order >= 1),
  timestamp TEXT NOT NULL,
  UNIQUE (session_id, message_order)
);
""",
]


def migrate(db_path: str = "data/practice.db") -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
