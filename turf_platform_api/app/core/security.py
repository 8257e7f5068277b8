"""
Caller identity and role checks for the API.

Authentication happens upstream (an API gateway or auth proxy verifies
the session and forwards the result).  This module only reads the
identity the gateway attaches to each request:

* ``X-User-Id``: identifier of the authenticated user.
* ``X-User-Role``: one of ``user``, ``owner`` or ``admin``.

The role decides which endpoints may be called.  Whether an owner may
act on a particular turf is decided by the services, which compare the
caller's id with the turf's ``owner_id`` loaded from the store.
"""

from typing import Callable, Dict, Optional

from fastapi import Depends, Header, HTTPException, status


ROLE_USER = "user"
ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLES = frozenset({ROLE_USER, ROLE_OWNER, ROLE_ADMIN})


def get_current_user(
    x_user_id: Optional[str] = Header(None, description="Authenticated user id"),
    x_user_role: Optional[str] = Header(None, description="Role of the authenticated user"),
) -> Dict[str, str]:
    """Dependency returning ``{"user_id": ..., "role": ...}`` for the caller.

    Raises HTTP 401 when the identity headers are missing or the role is
    unknown.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    role = (x_user_role or ROLE_USER).strip().lower()
    if role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role: {role}",
        )
    return {"user_id": x_user_id.strip(), "role": role}


def require_roles(*roles: str) -> Callable[[Dict[str, str]], Dict[str, str]]:
    """Dependency factory enforcing that the caller has one of ``roles``.

    Use as ``Depends(require_roles(ROLE_ADMIN))``.  Callers with any
    other role get HTTP 403.
    """

    def _role_dependency(current_user: Dict[str, str] = Depends(get_current_user)) -> Dict[str, str]:
        if current_user["role"] not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _role_dependency
