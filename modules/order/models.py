"""
Order Module - Models
======================
Order with an item snapshot copied at checkout, independent of the live
product record. Orders are never deleted; every status change is logged.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, Text,
    ForeignKey, DateTime, Index, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class OrderStatus(str, enum.Enum):
    CREATED = "created"          # gateway order opened, awaiting payment
    PAID = "paid"
    FAILED = "failed"            # signature mismatch
    PENDING = "pending"          # COD accepted
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    ONLINE = "online"
    COD = "cod"


ORDER_STATUSES = [s.value for s in OrderStatus]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(64), unique=True, nullable=False, index=True)  # gateway order id or COD_...
    payment_id = Column(String(64), nullable=True)
    signature = Column(String(128), nullable=True)

    amount = Column(Numeric(10, 2), nullable=False)  # authoritative grand total
    currency = Column(String(3), default="INR", nullable=False)
    status = Column(String(20), default=OrderStatus.CREATED.value, nullable=False, index=True)
    payment_method = Column(String(10), default=PaymentMethod.ONLINE.value, nullable=False)

    subtotal = Column(Numeric(10, 2), default=0, nullable=False)
    shipping_charges = Column(Numeric(10, 2), default=0, nullable=False)
    coupon_code = Column(String(50), nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=True)

    # Customer (owner identity comes from the auth provider)
    customer_user_id = Column(String(128), nullable=True, index=True)
    customer_name = Column(String(100), nullable=False, default="")
    customer_email = Column(String(254), nullable=True)
    customer_phone = Column(String(20), nullable=False)
    customer_address = Column(Text, nullable=False)
    customer_notes = Column(Text, nullable=True)

    # Set once stock/coupon side effects have been claimed for this order
    effects_applied = Column(Boolean, server_default=text("false"), default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    paid_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderItem.id",
    )
    status_logs = relationship(
        "OrderStatusLog", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderStatusLog.id",
    )

    __table_args__ = (
        Index("ix_order_status_created", "status", "created_at"),
    )

    @property
    def status_label(self) -> str:
        labels = {
            OrderStatus.CREATED: "Awaiting payment",
            OrderStatus.PAID: "Paid",
            OrderStatus.FAILED: "Payment failed",
            OrderStatus.PENDING: "Pending (COD)",
            OrderStatus.PROCESSING: "Processing",
            OrderStatus.SHIPPED: "Shipped",
            OrderStatus.DELIVERED: "Delivered",
            OrderStatus.CANCELLED: "Cancelled",
        }
        return labels.get(self.status, self.status)

    @property
    def is_cod(self) -> bool:
        return self.payment_method == PaymentMethod.COD

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "paymentId": self.payment_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "statusLabel": self.status_label,
            "paymentMethod": self.payment_method,
            "subtotal": self.subtotal,
            "shippingCharges": self.shipping_charges,
            "couponCode": self.coupon_code,
            "discountAmount": self.discount_amount,
            "items": [item.to_dict() for item in self.items],
            "customer": {
                "userId": self.customer_user_id,
                "name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone,
                "address": self.customer_address,
                "notes": self.customer_notes,
            },
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "paidAt": self.paid_at.isoformat() if self.paid_at else None,
        }

    def __repr__(self):
        return f"<Order {self.order_id} ({self.status})>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)  # snapshot, not a live reference

    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String, nullable=True)
    shipping_charges = Column(Numeric(10, 2), default=0, nullable=False)

    order = relationship("Order", back_populates="items")

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "image": self.image,
            "shippingCharges": self.shipping_charges,
        }


class OrderStatusLog(Base):
    __tablename__ = "order_status_logs"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(128), nullable=False)  # "system", "admin:<name>", "customer:<id>"
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="status_logs")
