"""Persistence helpers for uploaded job descriptions."""
from __future__ import annotations

import uuid
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from agents.types import JobDescription

from .sqlite import get_conn, utc_now


class JobDescriptionPayload(BaseModel):
    user_id: str
    file_name: str
    extracted_text: str
    mime_type: str = "text/plain"
    file_size: Optional[int] = Field(default=None, ge=0)


def insert_job_description(**data: Any) -> JobDescription:
    """Register a job description whose text is already extracted."""

    payload = JobDescriptionPayload(**data)
    record = JobDescription(
        id=uuid.uuid4().hex,
        user_id=payload.user_id,
        file_name=payload.file_name,
        extracted_text=payload.extracted_text,
        mime_type=payload.mime_type,
        file_size=payload.file_size if payload.file_size is not None else len(payload.extracted_text.encode("utf-8")),
        uploaded_at=utc_now(),
    )
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO job_descriptions
               (id, user_id, file_name, extracted_text, mime_type, file_size, uploaded_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                record.id,
                record.user_id,
                record.file_name,
                record.extracted_text,
                record.mime_type,
                record.file_size,
                record.uploaded_at,
            ),
        )
    return record


def get_job_description(job_description_id: str) -> Optional[JobDescription]:
    with get_conn() as conn:
        row = conn.execute("SELECT * FROM job_descriptions WHERE id = ?", (job_description_id,)).fetchone()
    return JobDescription.model_validate(dict(row)) if row else None


def list_user_job_descriptions(user_id: str) -> List[JobDescription]:
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM job_descriptions WHERE user_id = ? ORDER BY uploaded_at DESC, rowid DESC",
            (user_id,),
        ).fetchall()
    return [JobDescription.model_validate(dict(row)) for row in rows]
