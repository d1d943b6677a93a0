"""Authentication / authorization helpers.

Auth is intentionally lightweight:

- Users table (username/password hash + role: user | admin | super_admin)
- Stateless JWT session tokens (1 hour by default), sent in the
  `x-auth-token` request header

Tokens are never stored server-side, so they cannot be revoked before they
expire.
"""

from .deps import allowed, get_current_user, require_admin, require_roles, require_super_admin
from .crud import bootstrap_admin_if_needed, create_user

__all__ = [
    "allowed",
    "get_current_user",
    "require_admin",
    "require_roles",
    "require_super_admin",
    "bootstrap_admin_if_needed",
    "create_user",
]
