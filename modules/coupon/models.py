"""
Coupon Module - Models
========================
Order-level discount codes.

  - Percentage (floored to a whole rupee) or fixed amount
  - Optional minimum order value
  - Optional usage cap (max_uses NULL = unlimited)
  - Optional expiry (valid_until NULL = never; the instant itself is already expired)
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Numeric, CheckConstraint,
)
from sqlalchemy.sql import func
from config.database import Base


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False, index=True)  # stored uppercase

    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)
    min_order_value = Column(Numeric(10, 2), default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    max_uses = Column(Integer, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("discount_value >= 0", name="ck_coupon_discount_value"),
        CheckConstraint("usage_count >= 0", name="ck_coupon_usage_count"),
    )

    @property
    def discount_display(self) -> str:
        if self.discount_type == DiscountType.PERCENTAGE:
            return f"{self.discount_value.normalize():f}%"
        return f"₹{self.discount_value:,.2f}"

    @property
    def uses_left(self):
        if self.max_uses is None:
            return None
        return max(0, self.max_uses - (self.usage_count or 0))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "discountType": self.discount_type,
            "discountValue": self.discount_value,
            "discountDisplay": self.discount_display,
            "minOrderValue": self.min_order_value,
            "isActive": self.is_active,
            "usageCount": self.usage_count,
            "maxUses": self.max_uses,
            "usesLeft": self.uses_left,
            "validUntil": self.valid_until.isoformat() if self.valid_until else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Coupon {self.code} ({self.discount_type} {self.discount_value})>"
