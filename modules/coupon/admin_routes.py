"""
Coupon Module - Admin Routes
===============================
List, create, update and delete coupons. Requires an admin token.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from config.database import get_db
from common.exceptions import ConflictError
from modules.auth.deps import require_admin
from modules.coupon.service import coupon_service

router = APIRouter(prefix="/coupons", tags=["coupon-admin"])


class CouponCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., min_length=1, max_length=50)
    discount_type: Literal["percentage", "fixed"] = Field(..., alias="discountType")
    discount_value: Decimal = Field(..., alias="discountValue", ge=0)
    min_order_value: Decimal = Field(Decimal("0"), alias="minOrderValue", ge=0)
    is_active: bool = Field(True, alias="isActive")
    max_uses: Optional[int] = Field(None, alias="maxUses", ge=0)
    valid_until: Optional[datetime] = Field(None, alias="validUntil")


class CouponUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    is_active: Optional[bool] = Field(None, alias="isActive")
    discount_value: Optional[Decimal] = Field(None, alias="discountValue", ge=0)
    min_order_value: Optional[Decimal] = Field(None, alias="minOrderValue", ge=0)
    max_uses: Optional[int] = Field(None, alias="maxUses", ge=0)
    valid_until: Optional[datetime] = Field(None, alias="validUntil")


@router.get("")
async def list_coupons(db: Session = Depends(get_db), admin=Depends(require_admin)):
    coupons = coupon_service.list_coupons(db)
    return {
        "success": True,
        "count": len(coupons),
        "data": [c.to_dict() for c in coupons],
    }


@router.post("", status_code=201)
async def create_coupon(body: CouponCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    try:
        coupon = coupon_service.create_coupon(db, body.model_dump())
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Coupon code already exists")
    except Exception:
        db.rollback()
        raise
    return {"success": True, "message": "Coupon created successfully", "data": coupon.to_dict()}


@router.put("")
async def update_coupon(body: CouponUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    changes = body.model_dump(exclude_unset=True)
    changes.pop("id", None)
    try:
        coupon = coupon_service.update_coupon(db, body.id, changes)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"success": True, "message": "Coupon updated successfully", "data": coupon.to_dict()}


@router.delete("")
async def delete_coupon(
    id: int = Query(...),
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    try:
        coupon = coupon_service.delete_coupon(db, id)
        data = coupon.to_dict()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"success": True, "message": "Coupon deleted successfully", "data": data}
