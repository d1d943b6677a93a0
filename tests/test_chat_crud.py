import pytest

from conftest import make_user

from ollama_chat.auth.crud import delete_user
from ollama_chat.chat.crud import (
    append_message,
    clear_history,
    get_history,
    get_or_create_session,
    get_session,
)
from ollama_chat.db import connect


def test_session_created_lazily_and_once(cfg):
    u = make_user(cfg, "alice", "user")
    with connect(cfg.DB_DSN) as conn:
        assert get_session(conn, u["id"]) is None
        first = get_or_create_session(conn, u["id"])
        assert get_or_create_session(conn, u["id"]) == first
        n = conn.execute("SELECT COUNT(*) AS n FROM chat_sessions WHERE user_id=?", (u["id"],)).fetchone()["n"]
        assert n == 1


def test_messages_keep_order(cfg):
    u = make_user(cfg, "alice", "user")
    with connect(cfg.DB_DSN) as conn:
        for i in range(5):
            append_message(conn, u["id"], "user" if i % 2 == 0 else "ai", f"m{i}")
        assert [m["text"] for m in get_history(conn, u["id"])] == ["m0", "m1", "m2", "m3", "m4"]


def test_invalid_sender(cfg):
    u = make_user(cfg, "alice", "user")
    with connect(cfg.DB_DSN) as conn:
        with pytest.raises(ValueError, match="invalid_sender"):
            append_message(conn, u["id"], "system", "x")


def test_clear_history_reports_absence(cfg):
    u = make_user(cfg, "alice", "user")
    with connect(cfg.DB_DSN) as conn:
        assert clear_history(conn, u["id"]) is False
        append_message(conn, u["id"], "user", "hi")
        assert clear_history(conn, u["id"]) is True
        assert get_history(conn, u["id"]) == []
        assert conn.execute("SELECT COUNT(*) AS n FROM chat_messages").fetchone()["n"] == 0


def test_deleting_user_removes_chat(cfg):
    u = make_user(cfg, "alice", "user")
    with connect(cfg.DB_DSN) as conn:
        append_message(conn, u["id"], "user", "hi")
        delete_user(conn, u["id"])
        assert conn.execute("SELECT COUNT(*) AS n FROM chat_sessions").fetchone()["n"] == 0
        assert conn.execute("SELECT COUNT(*) AS n FROM chat_messages").fetchone()["n"] == 0
