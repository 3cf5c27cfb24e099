"""
Auth Module - Dependencies
===========================
FastAPI dependencies for user authentication and authorization.
These are injected into route handlers via Depends().

Identity comes from a signed JWT (Authorization: Bearer ... or the
auth_token cookie). There is no local user table: `sub` is the identity the
auth provider assigned, and orders/carts are keyed by it.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Depends

from common.exceptions import AuthenticationError, AuthorizationError
from common.security import decode_token, get_request_token

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class AuthUser:
    user_id: str
    role: str = ROLE_CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def get_current_user(request: Request) -> Optional[AuthUser]:
    """
    Identify the caller from the request token.
    Returns AuthUser or None.
    """
    token = get_request_token(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    sub = payload.get("sub")
    if not sub:
        return None

    return AuthUser(user_id=str(sub), role=payload.get("role") or ROLE_CUSTOMER)


def require_customer(user: Optional[AuthUser] = Depends(get_current_user)) -> AuthUser:
    """Require any signed-in user. Raises 401 if not logged in."""
    if not user:
        raise AuthenticationError("Unauthorized - please sign in")
    return user


def require_admin(user: Optional[AuthUser] = Depends(get_current_user)) -> AuthUser:
    """Only allow admin tokens. 401 without a valid token, 403 for non-admins."""
    if not user:
        raise AuthenticationError("Unauthorized. Admin access required.")
    if not user.is_admin:
        raise AuthorizationError("Not authorized as admin")
    return user
