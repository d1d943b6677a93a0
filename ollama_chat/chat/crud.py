from __future__ import annotations

from typing import Any, Dict, List, Optional

from ollama_chat.schema import SENDERS
from ollama_chat.util.time import utcnow_iso


def get_session(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM chat_sessions WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def get_or_create_session(conn: Any, user_id: int) -> int:
    """Return the user's session_id, creating the session on first use.

    `ON CONFLICT DO NOTHING` keeps this safe when two requests from the same
    user race to create it.
    """
    now = utcnow_iso()
    conn.execute(
        """
        INSERT INTO chat_sessions (user_id, created_at, updated_at)
        VALUES (?,?,?)
        ON CONFLICT(user_id) DO NOTHING
        """,
        (int(user_id), now, now),
    )
    row = get_session(conn, user_id)
    assert row is not None
    return int(row["session_id"])


def append_message(conn: Any, user_id: int, sender: str, text: str) -> Dict[str, Any]:
    if sender not in SENDERS:
        raise ValueError("invalid_sender")

    session_id = get_or_create_session(conn, user_id)
    now = utcnow_iso()
    conn.execute(
        "INSERT INTO chat_messages (session_id, sender, text, timestamp) VALUES (?,?,?,?)",
        (session_id, sender, str(text), now),
    )
    conn.execute(
        "UPDATE chat_sessions SET updated_at=? WHERE session_id=?",
        (now, session_id),
    )
    return {"sender": sender, "text": str(text), "timestamp": now}


def get_history(conn: Any, user_id: int) -> List[Dict[str, Any]]:
    """Messages in send order. A user without a session has an empty history."""
    rows = conn.execute(
        """
        SELECT m.sender, m.text, m.timestamp
        FROM chat_messages m
        JOIN chat_sessions s ON s.session_id = m.session_id
        WHERE s.user_id=?
        ORDER BY m.message_id
        """,
        (int(user_id),),
    ).fetchall()
    return [{"sender": r["sender"], "text": r["text"], "timestamp": r["timestamp"]} for r in rows]


def clear_history(conn: Any, user_id: int) -> bool:
    """Delete the user's session and its messages. False if there was none."""
    cur = conn.execute("DELETE FROM chat_sessions WHERE user_id=?", (int(user_id),))
    return int(cur.rowcount or 0) > 0
