"""
LittleNest Backend: Request Principal Dependencies
====================================================

What:  FastAPI dependencies that resolve the authenticated principal.
How:   Authentication itself happens upstream at the gateway, which
       forwards the caller as headers on every proxied request:

           X-API-Key:    shared secret proving the request came through
                         the gateway (must equal settings.gateway_api_key)
           X-User-Id:    the authenticated user's id
           X-User-Role:  "user" or "admin" (defaults to "user")

Who:   Blog writes depend on get_principal; admin name routes and
       admin-counts depend on require_admin.

Failure modes:
    missing/wrong key or missing user id  → AuthenticationError (401)
    unknown role                          → AuthenticationError (401)
    non-admin on an admin route           → PermissionDeniedError (403)
"""

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from littlenest.config import settings
from littlenest.exceptions import AuthenticationError, PermissionDeniedError

ROLES = ("user", "admin")


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_principal(
    x_api_key: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Principal:
    expected = settings.gateway_api_key.encode()
    if not x_api_key or not expected or not hmac.compare_digest(x_api_key.encode(), expected):
        raise AuthenticationError(message="Missing or invalid gateway API key")

    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AuthenticationError(message="Missing authenticated user id")

    role = (x_user_role or "user").strip().lower()
    if role not in ROLES:
        raise AuthenticationError(
            message=f"Unknown role '{role}'",
            context={"allowed": list(ROLES)},
        )
    return Principal(user_id=user_id, role=role)


async def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise PermissionDeniedError(message="Admin access required")
    return principal
