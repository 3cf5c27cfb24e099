"""
Loopcraft - Security Utilities
================================
JWT tokens, request rate limiting, and input sanitization.

NOTE: Customer tokens are issued by the external auth provider with the same
signing secret; admin tokens are issued by POST /auth.
"""

import logging
import math
import threading
import time
from datetime import timedelta
from typing import Optional

from fastapi import Request
from jose import jwt
from markupsafe import Markup

from config.settings import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from common.helpers import now_utc
from common.exceptions import RateLimitedError

logger = logging.getLogger("loopcraft.security")


# ==========================================
# JWT Tokens
# ==========================================

def create_token(data: dict, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Create JWT token for any user type."""
    to_encode = data.copy()
    to_encode["exp"] = now_utc() + timedelta(minutes=expires_minutes)
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns payload or None."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except Exception:
        return None


def get_request_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the auth_token cookie."""
    auth_header = request.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return request.cookies.get("auth_token")


def get_real_ip(request: Request) -> str:
    """Extract real client IP from request (handles X-Forwarded-For proxy header)."""
    x_forwarded = request.headers.get("X-Forwarded-For")
    if x_forwarded:
        return x_forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# ==========================================
# Rate limiting
# ==========================================

class RateLimiter:
    """
    Fixed-window request counter keyed by client.

    One instance is built per process (see main.py) and stored on app.state,
    so tests get a fresh limiter with every app they construct.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> tuple[bool, int]:
        """
        Count one request for `key`.
        Returns (allowed, retry_after_seconds).
        """
        now = self._clock()
        with self._lock:
            # Drop expired windows so the map does not grow without bound
            expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
            for k in expired:
                del self._windows[k]

            start, count = self._windows.get(key, (now, 0))
            count += 1
            self._windows[key] = (start, count)

            if count > self.max_requests:
                retry_after = max(1, math.ceil(self.window_seconds - (now - start)))
                return False, retry_after
            return True, 0

    def reset(self):
        with self._lock:
            self._windows.clear()


# ==========================================
# Sanitization
# ==========================================

def sanitize_text(value: Optional[str], max_length: int = None) -> str:
    """Strip all HTML tags and surrounding whitespace from user-supplied text."""
    if not value:
        return ""
    cleaned = Markup(value).striptags().strip()
    if max_length:
        cleaned = cleaned[:max_length]
    return cleaned


def enforce_rate_limit(request: Request):
    """FastAPI dependency: count the request against the app's limiter (429 when over)."""
    limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return
    key = f"{get_real_ip(request)}:{request.url.path}"
    allowed, retry_after = limiter.hit(key)
    if not allowed:
        logger.warning(f"Rate limit exceeded for {key}")
        raise RateLimitedError(retry_after)
