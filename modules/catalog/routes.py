"""
Catalog Module - Public Routes
================================
Storefront product listing and detail (JSON).
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import NotFoundError
from modules.catalog.service import catalog_service

router = APIRouter(prefix="/products", tags=["catalog"])


@router.get("")
async def list_products(
    category: str = Query(""),
    db: Session = Depends(get_db),
):
    products = catalog_service.list_products(db, category=category.strip() or None)
    return {"success": True, "data": [p.to_dict() for p in products]}


@router.get("/{product_id}")
async def get_product(product_id: int, db: Session = Depends(get_db)):
    product = catalog_service.get_product(db, product_id)
    if not product or not product.active:
        raise NotFoundError("Product not found")
    return {"success": True, "data": product.to_dict()}
