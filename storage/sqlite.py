"""SQLite helpers for the persistence layer."""
from __future__ import annotations

import datetime as dt
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from config.settings import settings


def utc_now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


@contextmanager
def get_conn(immediate: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a SQLite connection, ensuring the data directory exists.

    With ``immediate`` the connection takes the write lock up front
    (``BEGIN IMMEDIATE``) so read-then-write sequences are serialized.
    """

    directory = os.path.dirname(settings.DB_PATH) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(settings.DB_PATH, timeout=30.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transaction(conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
    """Reuse a caller's transaction when given one, else open an immediate one."""

    if conn is not None:
        yield conn
        return
    with get_conn(immediate=True) as own:
        yield own
