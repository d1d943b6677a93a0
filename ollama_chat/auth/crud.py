from __future__ import annotations

from typing import Any, Dict, List, Optional

from ollama_chat.config import Config
from ollama_chat.db import connect
from ollama_chat.schema import ROLES
from ollama_chat.util.time import utcnow_iso

from .security import hash_password, verify_password


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def normalize_username(username: str) -> str:
    return (username or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    """User as returned to clients: never includes the password hash."""
    d = dict(row)
    return {
        "id": int(d["user_id"]),
        "username": d["username"],
        "role": d["role"],
        "created_at": d.get("created_at"),
    }


def get_user_by_username(conn: Any, username: str) -> Optional[Any]:
    u = normalize_username(username)
    if not u:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE username=?",
        (u,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def verify_user_credentials(conn: Any, username: str, password: str) -> Optional[Any]:
    """Return the user row when the password matches, else None.

    Unknown usernames and wrong passwords are indistinguishable to the caller.
    """
    row = get_user_by_username(conn, username)
    if row is None:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    username: str,
    password: str,
    role: str = "user",
) -> Dict[str, Any]:
    u = normalize_username(username)
    if not u:
        raise ValueError("username_blank")
    if role not in ROLES:
        raise ValueError("invalid_role")

    # Cheap check first so a taken name doesn't pay for hashing.
    existing = conn.execute("SELECT 1 FROM users WHERE username=?", (u,)).fetchone()
    if existing is not None:
        raise ValueError("username_exists")

    # ON CONFLICT covers a concurrent insert of the same name between the check and here,
    # on both SQLite and Postgres, without engine-specific IntegrityError classes.
    now = utcnow_iso()
    row = conn.execute(
        """
        INSERT INTO users (username, password_hash, role, created_at, updated_at)
        VALUES (?,?,?,?,?)
        ON CONFLICT(username) DO NOTHING
        RETURNING *
        """,
        (u, hash_password(password), role, now, now),
    ).fetchone()
    if row is None:
        raise ValueError("username_exists")
    return public_user(row)


def update_password(conn: Any, user_id: int, new_password: str) -> None:
    """Replace the stored hash. The plaintext is hashed here, never stored."""
    conn.execute(
        "UPDATE users SET password_hash=?, updated_at=? WHERE user_id=?",
        (hash_password(new_password), utcnow_iso(), int(user_id)),
    )


def touch_last_login(conn: Any, user_id: int) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE users SET last_login_at=?, updated_at=? WHERE user_id=?",
        (now, now, int(user_id)),
    )


def list_users(conn: Any) -> List[Dict[str, Any]]:
    rows = conn.execute("SELECT * FROM users ORDER BY user_id").fetchall()
    return [public_user(r) for r in rows]


def update_role(conn: Any, user_id: int, role: str) -> Optional[Dict[str, Any]]:
    """Set a user's role. Returns the updated user, or None if not found."""
    if role not in ROLES:
        raise ValueError("invalid_role")
    row = conn.execute(
        "UPDATE users SET role=?, updated_at=? WHERE user_id=? RETURNING *",
        (role, utcnow_iso(), int(user_id)),
    ).fetchone()
    if row is None:
        return None
    return public_user(row)


def delete_user(conn: Any, user_id: int) -> Optional[Dict[str, Any]]:
    """Delete a user (their chat session cascades). Returns the deleted user or None."""
    row = conn.execute(
        "DELETE FROM users WHERE user_id=? RETURNING *",
        (int(user_id),),
    ).fetchone()
    if row is None:
        return None
    return public_user(row)


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first super admin if the users table is empty.

    Controlled via environment variables so a fresh deployment has a
    deterministic way to reach the admin endpoints:

    - AUTH_BOOTSTRAP_ADMIN_USERNAME
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD

    Nothing is created unless both are set and there are 0 rows in `users`.
    """
    username = normalize_username(cfg.AUTH_BOOTSTRAP_ADMIN_USERNAME)
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD
    if not username or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        if int(n) > 0:
            return None

        u = create_user(conn, username=username, password=password, role="super_admin")
        _debug(f"Bootstrapped initial super admin: username={u['username']}")
        return u
