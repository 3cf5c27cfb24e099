"""
Payment Routes
================
Online checkout: open a gateway order, verify the checkout signature,
fetch the caller's order.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import ValidationError
from modules.auth.deps import AuthUser, require_customer
from modules.notification.service import notification_service
from modules.order.schemas import CheckoutRequest
from modules.order.service import order_service
from modules.payment.service import payment_service

router = APIRouter(prefix="/payment", tags=["payment"])


class VerifyPaymentRequest(BaseModel):
    gateway_order_id: str = Field(
        "", validation_alias=AliasChoices("gatewayOrderId", "razorpay_order_id", "orderId"),
    )
    payment_id: str = Field(
        "", validation_alias=AliasChoices("paymentId", "razorpay_payment_id"),
    )
    signature: str = Field(
        "", validation_alias=AliasChoices("signature", "razorpay_signature"),
    )


# ==========================================
# 🏦 Create gateway order
# ==========================================

@router.post("/create-order")
async def create_order(
    body: CheckoutRequest,
    db: Session = Depends(get_db),
    me: AuthUser = Depends(require_customer),
):
    try:
        checkout = order_service.prepare_checkout(
            db,
            body.item_pairs(),
            body.customer.model_dump(),
            coupon_code=body.coupon_code,
            client_amount=body.amount,
            client_discount=body.discount_amount,
        )
        order, amount_minor = payment_service.create_online_order(db, checkout, owner_user_id=me.user_id)
    except Exception:
        db.rollback()
        raise

    return {
        "success": True,
        "orderId": order.order_id,
        "amount": amount_minor,
        "currency": order.currency,
        "dbOrderId": order.id,
    }


# ==========================================
# ✅ Verify checkout signature
# ==========================================

@router.post("/verify")
async def verify_payment(
    body: VerifyPaymentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    me: AuthUser = Depends(require_customer),
):
    try:
        order, newly_paid = payment_service.verify_payment(
            db, body.gateway_order_id.strip(), body.payment_id.strip(), body.signature.strip(), me.user_id,
        )
    except Exception:
        db.rollback()
        raise

    response = {
        "success": True,
        "orderId": order.order_id,
        "paymentId": order.payment_id,
        "amount": order.amount,
    }
    if newly_paid:
        order_service.apply_placement_effects(db, order)
        notification_service.schedule_order_confirmation(background_tasks, order)
    return response


# ==========================================
# 🔎 Caller's order
# ==========================================

@router.get("/get-order")
async def get_order(
    orderId: str = Query(""),
    db: Session = Depends(get_db),
    me: AuthUser = Depends(require_customer),
):
    if not orderId.strip():
        raise ValidationError("Order ID required")
    order = order_service.get_order_for_owner(db, orderId, me.user_id)
    return {"success": True, "order": order.to_dict()}
