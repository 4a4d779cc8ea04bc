"""Persistence helpers for the append-only conversation transcript."""
from __future__ import annotations

import sqlite3
import uuid
from typing import List, Optional, Sequence, Tuple

from agents.types import ConversationMessage, Role

from .sqlite import get_conn, transaction, utc_now


def append_messages(
    session_id: str,
    turns: Sequence[Tuple[Role, str]],
    conn: Optional[sqlite3.Connection] = None,
) -> List[ConversationMessage]:
    """Append turns with consecutive orders following the current maximum.

    Orders are assigned inside one immediate transaction; the
    ``UNIQUE(session_id, message_order)`` constraint rejects any collision.
    """

    appended: List[ConversationMessage] = []
    with transaction(conn) as tx:
        row = tx.execute(
            "SELECT COALESCE(MAX(message_order), 0) FROM conversation_messages WHERE session_id = ?",
            (session_id,),
        ).fetchone()
        next_order = int(row[0]) + 1
        for role, content in turns:
            message = ConversationMessage(
                id=uuid.uuid4().hex,
                session_id=session_id,
                role=role,
                content=content,
                message_order=next_order,
                timestamp=utc_now(),
            )
            tx.execute(
                """INSERT INTO conversation_messages
                   (id, session_id, role, content, message_order, timestamp)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    message.id,
                    message.session_id,
                    message.role,
                    message.content,
                    message.message_order,
                    message.timestamp,
                ),
            )
            appended.append(message)
            next_order += 1
    return appended


def list_messages(session_id: str) -> List[ConversationMessage]:
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM conversation_messages WHERE session_id = ? ORDER BY message_order",
            (session_id,),
        ).fetchall()
    return [ConversationMessage.model_validate(dict(row)) for row in rows]


def count_messages(session_id: str, conn: Optional[sqlite3.Connection] = None) -> int:
    with transaction(conn) as tx:
        row = tx.execute(
            "SELECT COUNT(*) FROM conversation_messages WHERE session_id = ?",
            (session_id,),
        ).fetchone()
    return int(row[0])
