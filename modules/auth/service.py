"""
Auth Module - Service Layer
=============================
Admin credential check and token issuing.
Customers sign in with the external auth provider; only their tokens are
verified here (see deps.py).
"""

import hmac
import logging

from common.exceptions import AuthenticationError
from common.security import create_token, decode_token
from config.settings import ADMIN_USERNAME, ADMIN_PASSWORD
from modules.auth.deps import AuthUser, ROLE_ADMIN

logger = logging.getLogger("loopcraft.auth")


class AuthService:

    def login_admin(self, username: str, password: str) -> dict:
        """
        Exchange admin credentials for a signed admin token.
        Raises AuthenticationError on any mismatch (same message either way).
        """
        username = (username or "").strip()
        password = password or ""

        if not ADMIN_PASSWORD:
            logger.error("Admin login attempted but ADMIN_PASSWORD is not configured")
            raise AuthenticationError("Invalid username or password")

        user_ok = hmac.compare_digest(username.encode(), ADMIN_USERNAME.encode())
        pass_ok = hmac.compare_digest(password.encode(), ADMIN_PASSWORD.encode())
        if not (user_ok and pass_ok):
            logger.warning(f"Failed admin login for '{username}'")
            raise AuthenticationError("Invalid username or password")

        token = create_token({"sub": username, "role": ROLE_ADMIN})
        logger.info(f"Admin '{username}' signed in")
        return {"token": token, "user": {"username": username, "role": ROLE_ADMIN}}

    def verify(self, token: str) -> AuthUser:
        payload = decode_token(token) if token else None
        if not payload or not payload.get("sub"):
            raise AuthenticationError("Invalid or expired token")
        return AuthUser(user_id=str(payload["sub"]), role=payload.get("role") or "customer")


auth_service = AuthService()
