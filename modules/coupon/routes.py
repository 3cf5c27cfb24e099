"""
Coupon Routes - Customer Facing
==================================
Coupon check for the cart/checkout page. No side effects: validating the
same code repeatedly never consumes a use.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import ValidationError
from common.security import enforce_rate_limit
from modules.coupon.service import coupon_service

router = APIRouter(prefix="/coupon", tags=["coupon"])


class ValidateCouponRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: Optional[str] = None
    order_value: Optional[Decimal] = Field(None, alias="orderValue", ge=0)


@router.post("/validate", dependencies=[Depends(enforce_rate_limit)])
async def validate_coupon(body: ValidateCouponRequest, db: Session = Depends(get_db)):
    if not (body.code or "").strip():
        raise ValidationError("Please provide a coupon code")
    data = coupon_service.validate(db, body.code, body.order_value)
    return {"success": True, "data": data}
