from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request

from ollama_chat.schema import ROLES

from .security import decode_access_token


TOKEN_HEADER = "x-auth-token"


def get_current_user(
    request: Request,
    token: Optional[str] = Header(default=None, alias=TOKEN_HEADER),
) -> Dict[str, Any]:
    """Authenticate a request from the `x-auth-token` header.

    Returns the identity embedded in the token ({"id", "role"}). No database
    lookup: a token stays valid until it expires, even if the user's role
    changes or the user is deleted in the meantime.
    """

    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="Server configuration missing")

    if not token:
        raise HTTPException(status_code=401, detail="No token, authorization denied")

    try:
        identity = decode_access_token(token=token, secret=cfg.AUTH_JWT_SECRET)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Token is not valid")

    request.state.user = identity
    return identity


def allowed(identity: Optional[Dict[str, Any]], roles: Iterable[str]) -> bool:
    """True when the identity's role is one of `roles`."""
    if not identity:
        return False
    return identity.get("role") in set(roles)


def authorize(identity: Optional[Dict[str, Any]], roles: Iterable[str]) -> Dict[str, Any]:
    """Role gate: 401 without an identity, 403 when the role is not allowed."""
    if not identity:
        raise HTTPException(status_code=401, detail="No user found, authorization denied")
    if not allowed(identity, roles):
        raise HTTPException(
            status_code=403,
            detail="Forbidden: You do not have the necessary permissions",
        )
    return identity


def require_roles(*roles: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory: authenticate, then require one of `roles`."""
    unknown = [r for r in roles if r not in ROLES]
    if unknown:
        raise ValueError(f"unknown roles: {unknown}")

    def _dep(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        return authorize(user, roles)

    return _dep


require_admin = require_roles("admin", "super_admin")
require_super_admin = require_roles("super_admin")
