"""
Order Module - Admin Routes
==============================
Order list (paginated, filter by status) and status changes.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import ORDERS_PAGE_LIMIT
from modules.auth.deps import AuthUser, require_admin
from modules.order.schemas import OrderStatusUpdate
from modules.order.service import order_service

router = APIRouter(prefix="/orders", tags=["order-admin"])


@router.get("")
async def admin_orders(
    status: str = Query(None),
    page: int = Query(1),
    limit: int = Query(ORDERS_PAGE_LIMIT),
    db: Session = Depends(get_db),
    admin: AuthUser = Depends(require_admin),
):
    orders, total, total_pages = order_service.list_orders(db, status=status, page=page, limit=limit)
    return {
        "success": True,
        "data": [o.to_dict() for o in orders],
        "total": total,
        "page": max(1, page),
        "totalPages": total_pages,
    }


@router.put("")
async def update_order_status(
    body: OrderStatusUpdate,
    db: Session = Depends(get_db),
    admin: AuthUser = Depends(require_admin),
):
    """Admin status change. Illegal transitions and unknown statuses are 400."""
    try:
        order = order_service.update_status(db, body.order_id, body.status.strip(), actor=f"admin:{admin.user_id}")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    return {"success": True, "data": order.to_dict()}
