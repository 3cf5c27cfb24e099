"""
Cart Module - Service Layer
==============================
Load a customer's cart into a CartLedger, apply an operation, write it back.
"""

import logging

from sqlalchemy.orm import Session

from modules.cart.ledger import CartLedger, CartLine
from modules.cart.models import Cart, CartItem
from modules.catalog.service import catalog_service

logger = logging.getLogger("loopcraft.cart")


class CartService:

    def get_or_create_cart(self, db: Session, customer_user_id: str) -> Cart:
        cart = db.query(Cart).filter(Cart.customer_user_id == customer_user_id).first()
        if not cart:
            cart = Cart(customer_user_id=customer_user_id)
            db.add(cart)
            db.flush()
        return cart

    def load_ledger(self, db: Session, customer_user_id: str) -> CartLedger:
        cart = db.query(Cart).filter(Cart.customer_user_id == customer_user_id).first()
        if not cart:
            return CartLedger()
        return CartLedger(self._to_line(item) for item in cart.items)

    def save_ledger(self, db: Session, customer_user_id: str, ledger: CartLedger) -> CartLedger:
        """
        Write the ledger back onto the cart rows.
        Existing rows are updated in place so (cart, product) stays unique
        within the flush.
        """
        cart = self.get_or_create_cart(db, customer_user_id)
        wanted = {line.id: line for line in ledger.lines}
        existing = {item.product_id: item for item in cart.items}

        for product_id, item in existing.items():
            if product_id not in wanted:
                cart.items.remove(item)

        for line in ledger.lines:
            item = existing.get(line.id)
            if item is None:
                item = CartItem(product_id=line.id)
                cart.items.append(item)
            item.name = line.name
            item.price = line.price
            item.quantity = line.quantity
            item.image = line.image
            item.shipping_charges = line.shipping_charges
            item.cod_available = line.cod_available

        db.flush()
        return ledger

    # ------------------------------------------
    # Operations
    # ------------------------------------------

    def replace(self, db: Session, customer_user_id: str, items) -> CartLedger:
        """Replace the whole cart with `items` ((product_id, quantity) pairs)."""
        ledger = CartLedger(catalog_service.snapshot_lines(db, items))
        return self.save_ledger(db, customer_user_id, ledger)

    def merge(self, db: Session, customer_user_id: str, items) -> CartLedger:
        """Fold a guest cart into the stored one (quantities add up)."""
        ledger = self.load_ledger(db, customer_user_id)
        guest_lines = catalog_service.snapshot_lines(db, items)
        ledger.merge(guest_lines)
        logger.info(f"Merged {len(guest_lines)} guest line(s) into cart of {customer_user_id}")
        return self.save_ledger(db, customer_user_id, ledger)

    def clear(self, db: Session, customer_user_id: str) -> None:
        cart = db.query(Cart).filter(Cart.customer_user_id == customer_user_id).first()
        if cart:
            cart.items.clear()
            db.flush()

    # ------------------------------------------
    # Presentation
    # ------------------------------------------

    def summary(self, ledger: CartLedger) -> dict:
        totals = ledger.totals()
        return {
            "items": [line.to_dict() for line in ledger.lines],
            "count": ledger.count(),
            "subtotal": totals["subtotal"],
            "shipping": totals["shipping"],
            "grandTotal": totals["grand_total"],
            "codAvailable": ledger.all_items_support_cod(),
        }

    def _to_line(self, item: CartItem) -> CartLine:
        return CartLine.normalize(
            id=item.product_id,
            name=item.name,
            price=item.price,
            quantity=item.quantity,
            image=item.image,
            shipping_charges=item.shipping_charges,
            cod_available=item.cod_available,
        )


cart_service = CartService()
