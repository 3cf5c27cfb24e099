"""
Loopcraft - Notification Service
==================================
Order confirmation email. Dispatched through BackgroundTasks so it runs
after the response; a failure is logged and never reaches the order flow.
"""

import logging
from typing import Optional

from fastapi import BackgroundTasks

from common.email import email_sender
from common.templating import render_template
from modules.order.models import Order

logger = logging.getLogger("loopcraft.notification")

TEMPLATE = "email/order_confirmation.html"


def order_snapshot(order: Order) -> dict:
    """Plain data copy of the order: the task must not touch the request's session."""
    return {
        "order_id": order.order_id,
        "is_cod": order.is_cod,
        "amount": order.amount,
        "shipping_charges": order.shipping_charges,
        "coupon_code": order.coupon_code,
        "discount_amount": order.discount_amount,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_address": order.customer_address,
        "date": (order.created_at.strftime("%d %B %Y") if order.created_at else ""),
        "lines": [
            {"name": item.name, "quantity": item.quantity, "line_total": item.line_total}
            for item in order.items
        ],
    }


class NotificationService:

    def order_confirmation_subject(self, snapshot: dict) -> str:
        short_id = str(snapshot["order_id"])[-8:].upper()
        if snapshot["is_cod"]:
            return f"Order Confirmed! #{short_id}"
        return f"Payment Successful! #{short_id}"

    def send_order_confirmation(self, snapshot: dict) -> bool:
        """Render and send. Own error boundary: never raises."""
        try:
            to = snapshot.get("customer_email")
            if not to:
                logger.info(f"Order {snapshot.get('order_id')}: no customer email, confirmation skipped")
                return False
            html = render_template(TEMPLATE, order=snapshot)
            return email_sender.send(to, self.order_confirmation_subject(snapshot), html)
        except Exception:
            logger.exception(f"Order {snapshot.get('order_id')}: confirmation email failed")
            return False

    def schedule_order_confirmation(
        self, background_tasks: Optional[BackgroundTasks], order: Order,
    ) -> None:
        try:
            snapshot = order_snapshot(order)
        except Exception:
            logger.exception("Order confirmation not scheduled: order could not be read")
            return
        if background_tasks is None:
            self.send_order_confirmation(snapshot)
            return
        background_tasks.add_task(self.send_order_confirmation, snapshot)


notification_service = NotificationService()
