"""
Cart Routes
=============
Signed-in customer's server cart (JSON).

  GET    /cart        : items + totals + codAvailable
  POST   /cart        : replace the cart with {items}
  DELETE /cart        : empty it
  POST   /cart/merge  : fold the guest (local storage) cart in after sign-in
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_customer
from modules.cart.service import cart_service

router = APIRouter(prefix="/cart", tags=["cart"])


class CartItemInput(BaseModel):
    product_id: int = Field(..., validation_alias=AliasChoices("id", "productId", "product_id"))
    quantity: int = 1


class CartBody(BaseModel):
    items: List[CartItemInput] = []

    def pairs(self):
        return [(item.product_id, item.quantity) for item in self.items]


@router.get("")
async def get_cart(db: Session = Depends(get_db), me=Depends(require_customer)):
    ledger = cart_service.load_ledger(db, me.user_id)
    return {"success": True, "data": cart_service.summary(ledger)}


@router.post("")
async def replace_cart(body: CartBody, db: Session = Depends(get_db), me=Depends(require_customer)):
    try:
        ledger = cart_service.replace(db, me.user_id, body.pairs())
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"success": True, "data": cart_service.summary(ledger)}


@router.delete("")
async def clear_cart(db: Session = Depends(get_db), me=Depends(require_customer)):
    cart_service.clear(db, me.user_id)
    db.commit()
    return {"success": True, "message": "Cart cleared"}


@router.post("/merge")
async def merge_cart(body: CartBody, db: Session = Depends(get_db), me=Depends(require_customer)):
    try:
        ledger = cart_service.merge(db, me.user_id, body.pairs())
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"success": True, "data": cart_service.summary(ledger)}
