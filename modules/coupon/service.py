"""
Coupon Service
================
Validate, redeem, and manage coupons.

Validation chain (first failure wins):
  1. Code exists (case-insensitive)
  2. Coupon is active
  3. Not expired (valid_until is exclusive: expired once now >= valid_until)
  4. Usage cap not reached (max_uses set and usage_count >= max_uses)
  5. Order value reaches the minimum
  6. Calculate discount (floored percentage or flat, clamped to the order value)

Validation has no side effects. usage_count moves only through redeem(),
once per placed order.
"""

import logging
from decimal import Decimal
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session
from sqlalchemy import func as sa_func, desc, or_, update

from common.exceptions import ValidationError, NotFoundError, ConflictError
from common.helpers import now_utc, as_utc, format_inr, to_decimal
from modules.coupon.models import Coupon, DiscountType
from modules.pricing.calculator import calculate_discount

logger = logging.getLogger("loopcraft.coupon")


# ==========================================
# Validation errors
# ==========================================

class CouponValidationError(ValidationError):
    """Raised when coupon validation fails. `reason` is machine-readable."""
    reason = "invalid"


class CouponNotFoundError(CouponValidationError):
    status_code = 404
    reason = "not_found"

    def __init__(self, message: str = "Invalid coupon code"):
        super().__init__(message)


class CouponInactiveError(CouponValidationError):
    reason = "inactive"

    def __init__(self, message: str = "This coupon is no longer active"):
        super().__init__(message)


class CouponExpiredError(CouponValidationError):
    reason = "expired"

    def __init__(self, message: str = "This coupon has expired"):
        super().__init__(message)


class CouponUsageExceededError(CouponValidationError):
    reason = "usage_exceeded"

    def __init__(self, message: str = "This coupon has reached its usage limit"):
        super().__init__(message)


class CouponBelowMinimumError(CouponValidationError):
    reason = "below_minimum"

    def __init__(self, minimum):
        self.minimum = minimum
        super().__init__(f"Order must be at least {format_inr(minimum)} to use this coupon")


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


class CouponService:

    # ------------------------------------------
    # Validate coupon (raises CouponValidationError)
    # ------------------------------------------

    def get_valid_coupon(self, db: Session, code: str, order_value=None) -> Coupon:
        """
        Run the validation chain and return the coupon record.
        `order_value` None skips the minimum-order check.
        """
        code = normalize_code(code)
        if not code:
            raise ValidationError("Please provide a coupon code")

        coupon = db.query(Coupon).filter(Coupon.code == code).first()
        if not coupon:
            raise CouponNotFoundError()

        if not coupon.is_active:
            raise CouponInactiveError()

        valid_until = as_utc(coupon.valid_until)
        if valid_until is not None and now_utc() >= valid_until:
            raise CouponExpiredError()

        if coupon.max_uses is not None and (coupon.usage_count or 0) >= coupon.max_uses:
            raise CouponUsageExceededError()

        if order_value is not None and to_decimal(order_value) < to_decimal(coupon.min_order_value):
            raise CouponBelowMinimumError(coupon.min_order_value)

        return coupon

    def validate(self, db: Session, code: str, order_value=None) -> Dict[str, Any]:
        """
        Full validation chain. Returns coupon info + calculated discount.
        Raises CouponValidationError on failure.
        """
        coupon = self.get_valid_coupon(db, code, order_value)

        discount_amount = Decimal("0")
        if order_value is not None:
            discount_amount = calculate_discount(coupon.discount_type, coupon.discount_value, order_value)

        return {
            "id": coupon.id,
            "code": coupon.code,
            "discountType": coupon.discount_type,
            "discountValue": coupon.discount_value,
            "discountAmount": discount_amount,
        }

    # ------------------------------------------
    # Redeem (order placed)
    # ------------------------------------------

    def redeem(self, db: Session, code: str) -> bool:
        """
        Count one use of the coupon.
        Conditional atomic increment: succeeds only while under max_uses.
        """
        code = normalize_code(code)
        result = db.execute(
            update(Coupon)
            .where(
                Coupon.code == code,
                or_(Coupon.max_uses.is_(None), Coupon.usage_count < Coupon.max_uses),
            )
            .values(usage_count=Coupon.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            logger.info(f"Coupon {code} redeemed")
            return True

        if db.query(Coupon.id).filter(Coupon.code == code).first():
            logger.warning(f"Coupon {code} already at its usage limit; redemption not counted")
        else:
            logger.error(f"Coupon {code} not found while redeeming")
        return False

    # ------------------------------------------
    # Admin: CRUD
    # ------------------------------------------

    def list_coupons(self, db: Session) -> List[Coupon]:
        return db.query(Coupon).order_by(desc(Coupon.created_at), desc(Coupon.id)).all()

    def get_coupon_by_id(self, db: Session, coupon_id: int) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.id == coupon_id).first()

    def create_coupon(self, db: Session, data: dict) -> Coupon:
        code = normalize_code(data.get("code"))
        if not code or not data.get("discount_type") or data.get("discount_value") is None:
            raise ValidationError("Code, discount type, and value are required")
        if data["discount_type"] not in (DiscountType.PERCENTAGE.value, DiscountType.FIXED.value):
            raise ValidationError("Discount type must be 'percentage' or 'fixed'")

        if db.query(Coupon.id).filter(Coupon.code == code).first():
            raise ConflictError("Coupon code already exists")

        coupon = Coupon(
            code=code,
            discount_type=data["discount_type"],
            discount_value=to_decimal(data["discount_value"]),
            min_order_value=to_decimal(data.get("min_order_value")),
            is_active=data.get("is_active", True) is not False,
            max_uses=data.get("max_uses"),
            valid_until=as_utc(data.get("valid_until")),
            usage_count=0,
        )
        db.add(coupon)
        db.flush()
        logger.info(f"Coupon {code} created")
        return coupon

    def update_coupon(self, db: Session, coupon_id: int, data: dict) -> Coupon:
        coupon = self.get_coupon_by_id(db, coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found")

        if "is_active" in data and data["is_active"] is not None:
            coupon.is_active = bool(data["is_active"])
        if "discount_value" in data and data["discount_value"] is not None:
            coupon.discount_value = to_decimal(data["discount_value"])
        if "min_order_value" in data:
            coupon.min_order_value = to_decimal(data["min_order_value"])
        if "max_uses" in data:
            coupon.max_uses = data["max_uses"]
        if "valid_until" in data:
            coupon.valid_until = as_utc(data["valid_until"])

        db.flush()
        logger.info(f"Coupon {coupon.code} updated: {sorted(data)}")
        return coupon

    def delete_coupon(self, db: Session, coupon_id: int) -> Coupon:
        coupon = self.get_coupon_by_id(db, coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found")
        if (coupon.usage_count or 0) > 0:
            raise ConflictError("This coupon has already been used and cannot be deleted. Deactivate it instead.")
        db.delete(coupon)
        db.flush()
        logger.info(f"Coupon {coupon.code} deleted")
        return coupon

    # ------------------------------------------
    # Stats
    # ------------------------------------------

    def get_stats(self, db: Session) -> Dict[str, Any]:
        total = db.query(Coupon).count()
        active = db.query(Coupon).filter(Coupon.is_active == True).count()  # noqa: E712
        redemptions = db.query(sa_func.coalesce(sa_func.sum(Coupon.usage_count), 0)).scalar()
        return {
            "total": total,
            "active": active,
            "redemptions": int(redemptions or 0),
        }


coupon_service = CouponService()
