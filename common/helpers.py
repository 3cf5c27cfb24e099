"""
Loopcraft - Shared Helpers
===========================
Pure utility functions with NO database or module dependencies.
"""

import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def now_millis() -> int:
    return int(now_utc().timestamp() * 1000)


def to_decimal(value) -> Decimal:
    """Coerce a number or numeric string to Decimal. Returns 0 on failure."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")


def format_inr(value) -> str:
    """Format an amount as rupees with comma separators, e.g. ₹1,299.00"""
    if value is None:
        return "₹0.00"
    try:
        return "₹{:,.2f}".format(to_decimal(value))
    except (ValueError, TypeError):
        return str(value)


# ==========================================
# Order reference generators
# ==========================================

_REF_ALPHABET = string.ascii_uppercase + string.digits


def generate_cod_order_id() -> str:
    """Public id for a Cash on Delivery order: COD_<millis>_<6 chars>."""
    suffix = "".join(secrets.choice(_REF_ALPHABET) for _ in range(6))
    return f"COD_{now_millis()}_{suffix}"


def generate_receipt_id() -> str:
    """Gateway receipt reference (gateway limit: 40 chars)."""
    return f"rcpt_{now_millis()}_{secrets.token_hex(4)}"[:40]
