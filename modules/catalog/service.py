"""
Catalog Service
================
Product lookups, stock updates, and checkout line resolution.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy import desc, update

from common.exceptions import NotFoundError, ValidationError, InsufficientStockError
from modules.catalog.models import Product
from modules.cart.ledger import CartLine

logger = logging.getLogger("loopcraft.catalog")


class CatalogService:

    # ------------------------------------------
    # Queries
    # ------------------------------------------

    def list_products(self, db: Session, category: str = None) -> List[Product]:
        q = db.query(Product).filter(Product.active == True)  # noqa: E712
        if category:
            q = q.filter(Product.category == category)
        return q.order_by(desc(Product.featured), desc(Product.created_at), desc(Product.id)).all()

    def get_product(self, db: Session, product_id: int) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    # ------------------------------------------
    # Admin: inventory
    # ------------------------------------------

    def set_stock(self, db: Session, product_id: int, stock: int) -> Product:
        if stock is None or stock < 0:
            raise ValidationError("Stock must be a non-negative number")
        product = self.get_product(db, product_id)
        if not product:
            raise NotFoundError("Product not found")
        product.stock = stock
        db.flush()
        logger.info(f"Stock for product #{product_id} set to {stock}")
        return product

    # ------------------------------------------
    # Checkout
    # ------------------------------------------

    def resolve_lines(self, db: Session, items) -> List[CartLine]:
        """
        Build checkout lines from the catalog.

        `items` are (product_id, quantity) pairs. Prices, shipping charges
        and COD eligibility come from the product record, never the request.
        Quantities for a repeated product id are combined.
        """
        wanted = {}
        for product_id, quantity in items:
            if quantity is None or quantity < 1:
                raise ValidationError("Item quantity must be at least 1")
            wanted[product_id] = wanted.get(product_id, 0) + quantity

        products = {
            p.id: p for p in db.query(Product).filter(Product.id.in_(list(wanted))).all()
        }

        lines = []
        for product_id, quantity in wanted.items():
            product = products.get(product_id)
            if not product or not product.active:
                raise NotFoundError(f"Product {product_id} not found")
            if (product.stock or 0) < quantity:
                raise InsufficientStockError(product.name, product.stock or 0)
            lines.append(self._line_for(product, quantity))
        return lines

    def snapshot_lines(self, db: Session, items) -> List[CartLine]:
        """
        Like resolve_lines, but for carts: unknown or inactive products are
        dropped and stock is not checked (that happens at checkout).
        """
        items = [(pid, qty) for pid, qty in items if qty and qty > 0]
        if not items:
            return []
        products = {
            p.id: p for p in db.query(Product).filter(
                Product.id.in_(list({pid for pid, _ in items})),
                Product.active == True,  # noqa: E712
            ).all()
        }
        lines = []
        for product_id, quantity in items:
            product = products.get(product_id)
            if product is None:
                logger.info(f"Cart line for unavailable product #{product_id} dropped")
                continue
            lines.append(self._line_for(product, quantity))
        return lines

    def _line_for(self, product: Product, quantity: int) -> CartLine:
        return CartLine(
            id=product.id,
            name=product.name,
            price=product.effective_price,
            quantity=quantity,
            image=product.image,
            shipping_charges=product.shipping_charges or 0,
            cod_available=bool(product.cod_available),
        )

    def decrement_stock(self, db: Session, product_id: int, quantity: int) -> bool:
        """
        Atomic stock decrement (no read-modify-write).
        Returns False when stock was short; stock is then clamped to zero.
        """
        quantity = abs(int(quantity))
        result = db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return True

        clamped = db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=0)
            .execution_options(synchronize_session=False)
        )
        if clamped.rowcount == 0:
            logger.error(f"Stock decrement skipped: product #{product_id} no longer exists")
        else:
            logger.warning(f"Product #{product_id} oversold by an order for {quantity}; stock clamped to 0")
        return False


# Singleton
catalog_service = CatalogService()
