"""
Payment Service
=================
Online checkout through the active gateway (Razorpay by default).

  create_online_order:  gateway order opened, Order persisted as `created`
  verify_payment:       signature check -> `paid` or `failed` (no retry)
"""

import logging
from typing import Tuple

from sqlalchemy.orm import Session

from common.exceptions import ValidationError, NotFoundError, ConflictError, PaymentError, ExternalServiceError
from common.helpers import now_utc, generate_receipt_id
from config.settings import ACTIVE_GATEWAY, CURRENCY
from modules.order.models import Order, OrderStatus, PaymentMethod
from modules.order.service import order_service, Checkout, SYSTEM, SYSTEM_TRANSITIONS
from modules.pricing.calculator import to_minor_units

# Import gateway modules to trigger register_gateway() calls
from modules.payment.gateways import get_gateway, get_all_gateway_names, BaseGateway, GatewayPaymentRequest
import modules.payment.gateways.razorpay  # noqa: F401

logger = logging.getLogger("loopcraft.payment")


class PaymentService:

    def gateway(self) -> BaseGateway:
        gw = get_gateway(ACTIVE_GATEWAY)
        if not gw:
            logger.error(
                f"Payment gateway '{ACTIVE_GATEWAY}' is not registered "
                f"(available: {', '.join(get_all_gateway_names()) or 'none'})"
            )
            raise ExternalServiceError("Payment gateway unavailable")
        return gw

    # ==========================================
    # Create
    # ==========================================

    def create_online_order(
        self, db: Session, checkout: Checkout, owner_user_id: str,
    ) -> Tuple[Order, int]:
        """
        Open a gateway order for the recomputed total and persist the Order
        as `created`. No lock is held across the gateway call.
        Returns (order, amount_in_paise).
        """
        amount = checkout.grand_total
        if amount <= 0:
            raise ValidationError(f"Invalid amount: {amount}. Amount must be greater than 0.")

        customer = checkout.customer
        req = GatewayPaymentRequest(
            amount_minor=to_minor_units(amount),
            currency=CURRENCY,
            receipt=generate_receipt_id(),
            notes={
                "customerUserId": owner_user_id or "",
                "customerName": customer["name"],
                "customerPhone": customer["phone"],
                "customerEmail": customer["email"] or "",
                "itemCount": str(len(checkout.lines)),
            },
        )
        result = self.gateway().create_payment(req)
        if not result.success:
            logger.error(f"Gateway order creation failed (receipt {req.receipt}): {result.error_message}")
            raise ExternalServiceError("Failed to create payment order")

        order = order_service.build_order(
            checkout,
            order_id=result.gateway_order_id,
            status=OrderStatus.CREATED,
            payment_method=PaymentMethod.ONLINE,
            owner_user_id=owner_user_id,
        )
        db.add(order)
        db.flush()
        order_service._log(db, order, None, order.status, SYSTEM, f"Gateway order {result.gateway_order_id} opened")
        db.commit()

        logger.info(f"Online order {order.order_id} created (amount={order.amount}, owner={owner_user_id})")
        return order, result.amount_minor or req.amount_minor

    # ==========================================
    # Verify
    # ==========================================

    def verify_payment(
        self, db: Session, gateway_order_id: str, payment_id: str, signature: str, user_id: str,
    ) -> Tuple[Order, bool]:
        """
        Confirm a checkout signature for the caller's own order.

        Returns (order, newly_paid). newly_paid is False when the order was
        already paid (repeat callback): the caller must not redo side effects.
        A mismatch marks the order failed and raises PaymentError.
        """
        if not gateway_order_id or not payment_id or not signature:
            raise ValidationError("Missing payment details")

        order = order_service.get_by_order_id(db, gateway_order_id)
        if not order or order.customer_user_id != user_id:
            raise NotFoundError("Order not found or unauthorized")

        if order.status == OrderStatus.PAID.value:
            logger.info(f"Order {order.order_id} already paid; verify is a no-op")
            return order, False
        if order.status != OrderStatus.CREATED.value:
            raise ValidationError(f"Order is {order.status} and cannot be paid")

        gw = self.gateway()
        if not gw.is_configured:
            # The customer may already be charged; leave the order open for a retry
            logger.error(f"Order {order.order_id}: verify attempted but gateway '{gw.name}' has no credentials")
            raise ExternalServiceError("Payment verification is not configured")

        result = gw.verify_payment({
            "order_id": gateway_order_id,
            "payment_id": payment_id,
            "signature": signature,
        })

        try:
            if not result.success:
                order_service.transition(
                    db, order, OrderStatus.FAILED.value, SYSTEM,
                    allowed=SYSTEM_TRANSITIONS, note=result.error_message,
                )
                db.commit()
                logger.warning(f"Order {order.order_id} marked failed: {result.error_message}")
                raise PaymentError(result.error_message or "Invalid payment signature")

            order_service.transition(
                db, order, OrderStatus.PAID.value, SYSTEM,
                allowed=SYSTEM_TRANSITIONS, note="Signature verified",
                payment_id=payment_id, signature=signature, paid_at=now_utc(),
            )
            db.commit()
        except ConflictError:
            # Another request moved the order first (double callback)
            db.rollback()
            db.refresh(order)
            if order.status == OrderStatus.PAID.value:
                return order, False
            raise

        logger.info(f"Order {order.order_id} paid (payment {payment_id})")
        return order, True


payment_service = PaymentService()
