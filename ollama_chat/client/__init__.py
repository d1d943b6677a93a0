"""Client side: session context, API client and CLI."""

from .api import ApiClient, ApiError
from .session import FileSessionStore, MemorySessionStore, Session, SessionContext, SessionStore, SessionUser

__all__ = [
    "ApiClient",
    "ApiError",
    "FileSessionStore",
    "MemorySessionStore",
    "Session",
    "SessionContext",
    "SessionStore",
    "SessionUser",
]
