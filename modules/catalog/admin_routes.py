"""
Catalog Module - Admin Routes
===============================
Inventory adjustment. Requires an admin token.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_admin
from modules.catalog.service import catalog_service

router = APIRouter(tags=["catalog-admin"])


class InventoryUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(..., alias="id")
    stock: int = Field(..., ge=0)


@router.put("/products/inventory")
async def update_inventory(
    body: InventoryUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    try:
        product = catalog_service.set_stock(db, body.product_id, body.stock)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(product)
    return {"success": True, "data": product.to_dict()}
