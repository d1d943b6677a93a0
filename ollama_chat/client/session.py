"""Client-side session context.

The web frontend kept the token and user in browser-global storage. Here the
same state is an explicit `SessionContext` object that callers pass around,
persisted through a small `SessionStore` interface (in-memory or a JSON file).
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol


ADMIN_ROLES = ("admin", "super_admin")


@dataclass(frozen=True)
class SessionUser:
    id: int
    username: str
    role: str


@dataclass(frozen=True)
class Session:
    token: str
    user: SessionUser

    @property
    def is_admin(self) -> bool:
        return self.user.role in ADMIN_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.user.role == "super_admin"

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "user": asdict(self.user)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        u = data["user"]
        return cls(
            token=str(data["token"]),
            user=SessionUser(id=int(u["id"]), username=str(u["username"]), role=str(u["role"])),
        )


class SessionStore(Protocol):
    def load(self) -> Optional[Session]: ...

    def save(self, session: Session) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStore:
    def __init__(self, session: Optional[Session] = None):
        self._session = session

    def load(self) -> Optional[Session]:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStore:
    """Persist the session as JSON (owner-readable only)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[Session]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return Session.from_dict(data)
        except (ValueError, KeyError, TypeError):
            # Corrupt file: behave as logged out.
            return None

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(session.to_dict()), encoding="utf-8")
        os.chmod(self.path, 0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SessionContext:
    """Current login state, read by commands and guards."""

    def __init__(self, store: SessionStore):
        self.store = store
        self._session = store.load()

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    @property
    def user(self) -> Optional[SessionUser]:
        return self._session.user if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None and bool(self._session.token)

    def login(self, token: str, user: Dict[str, Any]) -> Session:
        session = Session.from_dict({"token": token, "user": user})
        self.store.save(session)
        self._session = session
        return session

    def logout(self) -> None:
        self.store.clear()
        self._session = None
