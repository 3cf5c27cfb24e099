"""
Admin Dashboard Service
=========================
Aggregated statistics for the admin dashboard.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.orm import Session
from sqlalchemy import func as sa_func

from config.settings import LOW_STOCK_THRESHOLD
from modules.catalog.models import Product
from modules.coupon.service import coupon_service
from modules.order.models import Order, OrderStatus, ORDER_STATUSES
from modules.pricing.calculator import to_money
from common.helpers import now_utc

# Money actually collected or committed; pending COD counts once processed
REVENUE_STATUSES = (
    OrderStatus.PAID.value,
    OrderStatus.PROCESSING.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
)


class DashboardService:

    def get_overview_stats(self, db: Session) -> Dict[str, Any]:
        """Key business metrics."""
        now = now_utc()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        month_ago = today_start - timedelta(days=30)

        # Orders
        counts = dict(
            db.query(Order.status, sa_func.count(Order.id))
            .group_by(Order.status)
            .all()
        )
        by_status = {status: counts.get(status, 0) for status in ORDER_STATUSES}
        total_orders = sum(by_status.values())
        today_orders = db.query(Order).filter(Order.created_at >= today_start).count()

        # Revenue
        total_revenue = (
            db.query(sa_func.coalesce(sa_func.sum(Order.amount), 0))
            .filter(Order.status.in_(REVENUE_STATUSES))
            .scalar()
        )
        month_revenue = (
            db.query(sa_func.coalesce(sa_func.sum(Order.amount), 0))
            .filter(Order.status.in_(REVENUE_STATUSES), Order.created_at >= month_ago)
            .scalar()
        )

        return {
            "orders": {
                "total": total_orders,
                "today": today_orders,
                "byStatus": by_status,
            },
            "revenue": {
                "total": to_money(total_revenue or Decimal("0")),
                "last30Days": to_money(month_revenue or Decimal("0")),
            },
            "coupons": coupon_service.get_stats(db),
            "lowStock": self.get_low_stock_products(db),
        }

    def get_low_stock_products(self, db: Session, threshold: int = LOW_STOCK_THRESHOLD) -> List[Dict[str, Any]]:
        products = (
            db.query(Product)
            .filter(Product.active == True, Product.stock <= threshold)  # noqa: E712
            .order_by(Product.stock, Product.name)
            .all()
        )
        return [{"id": p.id, "name": p.name, "stock": p.stock} for p in products]


dashboard_service = DashboardService()
