"""
Order Routes - Customer Facing
=================================
Cash on Delivery checkout and the signed-in customer's order history.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import AuthUser, get_current_user, require_customer
from modules.notification.service import notification_service
from modules.order.schemas import CheckoutRequest
from modules.order.service import order_service

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/create-cod", status_code=201)
async def create_cod_order(
    body: CheckoutRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    """Place a COD order: born `pending`, no gateway step."""
    try:
        checkout = order_service.prepare_checkout(
            db,
            body.item_pairs(),
            body.customer.model_dump(),
            coupon_code=body.coupon_code,
            client_amount=body.amount,
            client_discount=body.discount_amount,
        )
        order = order_service.create_cod_order(db, checkout, owner_user_id=user.user_id if user else None)
    except Exception:
        db.rollback()
        raise

    response = {
        "success": True,
        "orderId": order.order_id,
        "dbOrderId": order.id,
    }
    # The order is committed; nothing past this point may fail the request
    order_service.apply_placement_effects(db, order)
    notification_service.schedule_order_confirmation(background_tasks, order)
    return response


@router.get("/user")
async def my_orders(db: Session = Depends(get_db), me: AuthUser = Depends(require_customer)):
    orders = order_service.get_customer_orders(db, me.user_id)
    return {"success": True, "data": [o.to_dict() for o in orders]}
