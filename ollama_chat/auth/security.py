from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except (ValueError, TypeError):
        # Malformed / unknown hash format.
        return False


def create_access_token(
    *,
    secret: str,
    user_id: int,
    role: str,
    expires_minutes: int = 60,
    now: Optional[datetime] = None,
) -> str:
    """Sign a session token carrying {"user": {"id", "role"}}.

    `now` defaults to the current UTC time; pass it to issue a token as of
    another instant.
    """
    if not secret:
        raise ValueError("jwt_secret_blank")

    issued = now or datetime.now(timezone.utc)
    exp = issued + timedelta(minutes=max(1, int(expires_minutes)))

    payload: Dict[str, Any] = {
        "user": {"id": int(user_id), "role": role},
        "iat": int(issued.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    """Verify signature + expiry and return the identity {"id", "role"}.

    Raises jwt.InvalidTokenError (incl. ExpiredSignatureError) on any failure.
    """
    if not token:
        raise jwt.InvalidTokenError("token_blank")
    if not secret:
        raise ValueError("jwt_secret_blank")

    payload = jwt.decode(
        token,
        secret,
        algorithms=[_JWT_ALG],
        options={"require": ["exp"]},
    )
    user = payload.get("user")
    if not isinstance(user, dict) or user.get("id") is None or not user.get("role"):
        raise jwt.InvalidTokenError("token_missing_user")
    return {"id": user["id"], "role": str(user["role"])}
