"""
Catalog Module - Models
========================
Product record. The cart and orders keep snapshots of it; stock is the only
field the order flow writes back.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, Text,
    DateTime, Index, CheckConstraint,
)
from sqlalchemy.sql import func
from config.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(50), nullable=False)
    image = Column(String, nullable=True)

    price = Column(Numeric(10, 2), nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=True)
    stock = Column(Integer, default=0, nullable=False)
    shipping_charges = Column(Numeric(10, 2), default=0, nullable=False)
    cod_available = Column(Boolean, default=False, nullable=False)

    featured = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock"),
        Index("ix_product_category_created", "category", "created_at"),
    )

    @property
    def effective_price(self):
        """Sale price when it undercuts the regular price."""
        if self.sale_price is not None and 0 < self.sale_price < self.price:
            return self.sale_price
        return self.price

    @property
    def in_stock(self) -> bool:
        return (self.stock or 0) > 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "image": self.image,
            "price": self.price,
            "salePrice": self.sale_price,
            "effectivePrice": self.effective_price,
            "stock": self.stock,
            "inStock": self.in_stock,
            "shipping_charges": self.shipping_charges,
            "cod_available": self.cod_available,
            "featured": self.featured,
            "active": self.active,
        }

    def __repr__(self):
        return f"<Product {self.name} (stock={self.stock})>"
