"""
Order Module - Service Layer
===============================
Checkout preparation, order creation, status transitions, and the
once-per-order placement side effects (stock + coupon usage).

Lifecycle:
  online:  created -> paid | failed            (signature outcome, system)
  COD:     born pending
  admin:   paid/pending -> processing -> shipped -> delivered
           any non-terminal state -> cancelled
  terminal: delivered, failed, cancelled
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy.orm import Session
from sqlalchemy import desc, update

from common.exceptions import ValidationError, NotFoundError, ConflictError
from common.helpers import now_utc, generate_cod_order_id
from common.security import sanitize_text
from config.settings import CURRENCY, ORDERS_PAGE_LIMIT
from modules.cart.ledger import CartLine
from modules.catalog.service import catalog_service
from modules.coupon.models import Coupon
from modules.coupon.service import coupon_service
from modules.order.models import (
    Order, OrderItem, OrderStatusLog, OrderStatus, PaymentMethod, ORDER_STATUSES,
)
from modules.pricing.calculator import calculate_order_total, to_money

logger = logging.getLogger("loopcraft.order")

SYSTEM = "system"

SYSTEM_TRANSITIONS: Dict[str, Set[str]] = {
    OrderStatus.CREATED.value: {OrderStatus.PAID.value, OrderStatus.FAILED.value},
}

ADMIN_TRANSITIONS: Dict[str, Set[str]] = {
    OrderStatus.CREATED.value: {OrderStatus.CANCELLED.value},
    OrderStatus.PAID.value: {OrderStatus.PROCESSING.value, OrderStatus.CANCELLED.value},
    OrderStatus.PENDING.value: {OrderStatus.PROCESSING.value, OrderStatus.CANCELLED.value},
    OrderStatus.PROCESSING.value: {OrderStatus.SHIPPED.value, OrderStatus.CANCELLED.value},
    OrderStatus.SHIPPED.value: {OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value},
}

PLACED_STATUSES = (OrderStatus.PAID.value, OrderStatus.PENDING.value)


@dataclass
class Checkout:
    """A priced, validated checkout, ready to become an order."""
    lines: List[CartLine]
    customer: dict
    totals: dict
    coupon: Optional[Coupon] = None

    @property
    def grand_total(self) -> Decimal:
        return self.totals["grand_total"]

    @property
    def cod_available(self) -> bool:
        return bool(self.lines) and all(line.cod_available for line in self.lines)


class OrderService:

    # ==========================================
    # Checkout
    # ==========================================

    def prepare_checkout(
        self,
        db: Session,
        items,
        customer: dict,
        coupon_code: str = None,
        client_amount=None,
        client_discount=None,
    ) -> Checkout:
        """
        Validate the customer, price the items from the catalog and apply
        the coupon against the recomputed subtotal.

        `items` are (product_id, quantity) pairs. Client totals are only
        compared and logged, never charged.
        """
        customer = {
            "name": sanitize_text(customer.get("name"), 100),
            "email": (customer.get("email") or "").strip() or None,
            "phone": sanitize_text(customer.get("phone"), 20),
            "address": sanitize_text(customer.get("address"), 500),
            "notes": sanitize_text(customer.get("notes"), 500),
        }
        if not customer["phone"] or not customer["address"]:
            raise ValidationError("Phone and address are required")

        items = list(items or [])
        if not items:
            raise ValidationError("Cart is empty")

        lines = catalog_service.resolve_lines(db, items)

        coupon = None
        if (coupon_code or "").strip():
            subtotal = calculate_order_total(lines)["subtotal"]
            coupon = coupon_service.get_valid_coupon(db, coupon_code, subtotal)

        totals = calculate_order_total(lines, coupon)

        if client_amount is not None and to_money(client_amount) != totals["grand_total"]:
            logger.warning(
                f"Client amount {client_amount} differs from computed total {totals['grand_total']}; "
                f"charging the computed total"
            )
        if client_discount is not None and to_money(client_discount) != totals["discount"]:
            logger.warning(
                f"Client discount {client_discount} differs from computed discount {totals['discount']}"
            )

        return Checkout(lines=lines, customer=customer, totals=totals, coupon=coupon)

    def create_cod_order(self, db: Session, checkout: Checkout, owner_user_id: str = None) -> Order:
        """
        Create a Cash on Delivery order, born `pending`, and commit it.
        Placement side effects run afterwards (see apply_placement_effects).
        """
        if not checkout.cod_available:
            names = ", ".join(line.name for line in checkout.lines if not line.cod_available)
            raise ValidationError(f"Cash on Delivery is not available for: {names}")

        order = self.build_order(
            checkout,
            order_id=generate_cod_order_id(),
            status=OrderStatus.PENDING,
            payment_method=PaymentMethod.COD,
            owner_user_id=owner_user_id,
        )
        db.add(order)
        db.flush()
        self._log(db, order, None, order.status, SYSTEM, "COD order placed")
        db.commit()

        logger.info(f"COD order {order.order_id} created (amount={order.amount}, owner={owner_user_id})")
        return order

    def build_order(
        self,
        checkout: Checkout,
        order_id: str,
        status: OrderStatus,
        payment_method: PaymentMethod,
        owner_user_id: str = None,
    ) -> Order:
        """Order + item snapshot from a prepared checkout (not added to the session)."""
        totals = checkout.totals
        order = Order(
            order_id=order_id,
            amount=totals["grand_total"],
            currency=CURRENCY,
            status=status.value,
            payment_method=payment_method.value,
            subtotal=totals["subtotal"],
            shipping_charges=totals["shipping"],
            coupon_code=checkout.coupon.code if checkout.coupon else None,
            discount_amount=totals["discount"] if checkout.coupon else None,
            customer_user_id=owner_user_id,
            customer_name=checkout.customer["name"],
            customer_email=checkout.customer["email"],
            customer_phone=checkout.customer["phone"],
            customer_address=checkout.customer["address"],
            customer_notes=checkout.customer["notes"],
            effects_applied=False,
        )
        for line in checkout.lines:
            order.items.append(OrderItem(
                product_id=line.id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                image=line.image,
                shipping_charges=line.shipping_charges,
            ))
        return order

    # ==========================================
    # Placement side effects
    # ==========================================

    def apply_placement_effects(self, db: Session, order: Order) -> bool:
        """
        Decrement stock per item and count the coupon use, once per order.

        The order must already be committed as paid or pending. Each effect
        is committed on its own; failures are logged and never raised, since
        the order row is what says the customer was charged.
        Returns False if the effects were already claimed, the order is not
        placed, or the claim itself failed.
        """
        order_ref = None
        try:
            order_ref = order.order_id
            items = [(item.product_id, item.quantity) for item in order.items]
            coupon_code = order.coupon_code
            if not self._claim_effects(db, order.id):
                db.rollback()
                logger.info(f"Placement effects for {order_ref} already applied or order not placed; skipped")
                return False
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(f"Order {order_ref or '?'}: placement effects could not be claimed")
            return False

        for product_id, quantity in items:
            try:
                if not catalog_service.decrement_stock(db, product_id, quantity):
                    logger.warning(f"Order {order_ref}: stock short for product #{product_id} (qty {quantity})")
                db.commit()
            except Exception:
                db.rollback()
                logger.exception(f"Order {order_ref}: stock decrement failed for product #{product_id}")

        if coupon_code:
            try:
                coupon_service.redeem(db, coupon_code)
                db.commit()
            except Exception:
                db.rollback()
                logger.exception(f"Order {order_ref}: coupon {coupon_code} usage increment failed")

        return True

    def _claim_effects(self, db: Session, order_db_id: int) -> bool:
        """Flip effects_applied false -> true; only one caller ever wins."""
        claimed = db.execute(
            update(Order)
            .where(
                Order.id == order_db_id,
                Order.effects_applied == False,  # noqa: E712
                Order.status.in_(PLACED_STATUSES),
            )
            .values(effects_applied=True)
            .execution_options(synchronize_session=False)
        )
        return claimed.rowcount == 1

    # ==========================================
    # Status transitions
    # ==========================================

    def transition(
        self,
        db: Session,
        order: Order,
        new_status: str,
        actor: str,
        allowed: Dict[str, Set[str]] = ADMIN_TRANSITIONS,
        note: str = None,
        **values,
    ) -> bool:
        """
        Move `order` to `new_status` if the transition is allowed.

        Conditional UPDATE on the current status: of two concurrent callers
        only one wins; the other gets ConflictError. Setting the current
        status again is a no-op (returns False). Does not commit.
        """
        new_status = OrderStatus(new_status).value
        expected = order.status

        if new_status == expected:
            return False

        if new_status not in allowed.get(expected, set()):
            raise ValidationError(f"Cannot change order status from {expected} to {new_status}")

        result = db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == expected)
            .values(status=new_status, updated_at=now_utc(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Order status was changed by another request. Reload and try again.")

        self._log(db, order, expected, new_status, actor, note)
        db.flush()
        db.refresh(order)
        logger.info(f"Order {order.order_id}: {expected} -> {new_status} by {actor}")
        return True

    def update_status(self, db: Session, order_ref, status: str, actor: str) -> Order:
        """Admin status change by internal id or public order id."""
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")
        order = self.find_order(db, order_ref)
        if not order:
            raise NotFoundError("Order not found")
        self.transition(db, order, status, actor, allowed=ADMIN_TRANSITIONS)
        return order

    def _log(self, db: Session, order: Order, old: Optional[str], new: str, actor: str, note: str = None):
        db.add(OrderStatusLog(
            order_id=order.id,
            old_status=old,
            new_status=new,
            changed_by=actor,
            note=note,
        ))

    # ==========================================
    # Queries
    # ==========================================

    def find_order(self, db: Session, order_ref) -> Optional[Order]:
        """Look up by internal id (int or digit string) or public order id."""
        if order_ref is None or str(order_ref).strip() == "":
            return None
        ref = str(order_ref).strip()
        if ref.isdigit():
            order = db.query(Order).filter(Order.id == int(ref)).first()
            if order:
                return order
        return db.query(Order).filter(Order.order_id == ref).first()

    def get_by_order_id(self, db: Session, order_id: str) -> Optional[Order]:
        return db.query(Order).filter(Order.order_id == order_id).first()

    def get_order_for_owner(self, db: Session, order_id: str, user_id: str) -> Order:
        """The caller's own order, by public order id. 404 for anyone else's."""
        order = db.query(Order).filter(
            Order.order_id == (order_id or "").strip(),
            Order.customer_user_id == user_id,
        ).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_customer_orders(self, db: Session, user_id: str) -> List[Order]:
        return (
            db.query(Order)
            .filter(Order.customer_user_id == user_id)
            .order_by(desc(Order.created_at), desc(Order.id))
            .all()
        )

    def list_orders(
        self, db: Session, status: str = None, page: int = 1, limit: int = ORDERS_PAGE_LIMIT,
    ) -> Tuple[List[Order], int, int]:
        """Paginated admin list, newest first. Returns (orders, total, total_pages)."""
        page = max(1, page or 1)
        limit = min(max(1, limit or ORDERS_PAGE_LIMIT), 200)

        q = db.query(Order)
        if status and status != "all":
            q = q.filter(Order.status == status)

        total = q.count()
        orders = (
            q.order_by(desc(Order.created_at), desc(Order.id))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return orders, total, math.ceil(total / limit)


order_service = OrderService()
