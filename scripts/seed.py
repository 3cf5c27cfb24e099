"""
Loopcraft - Database Seeder
=============================
Seeds a small catalog and a few coupons for local development.

Usage:
    python scripts/seed.py          # Seed (idempotent)
    python scripts/seed.py --reset  # Drop all data and reseed

Seeded:
  1. Products (handmade crochet and home goods)
  2. Sample coupons (percentage, fixed, capped, expired)
"""

import sys
import os
from datetime import timedelta
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from common.helpers import now_utc
from modules.catalog.models import Product
from modules.cart.models import Cart, CartItem  # noqa: F401
from modules.coupon.models import Coupon, DiscountType
from modules.order.models import Order, OrderItem, OrderStatusLog  # noqa: F401


PRODUCTS = [
    {
        "name": "Sunflower Crochet Tote", "category": "bags",
        "price": "899", "sale_price": "749", "stock": 12,
        "shipping_charges": "60", "cod_available": True, "featured": True,
        "description": "Hand-crocheted cotton tote with sunflower motif.",
    },
    {
        "name": "Amigurumi Bunny", "category": "toys",
        "price": "299", "stock": 25,
        "shipping_charges": "0", "cod_available": True, "featured": True,
        "description": "Soft amigurumi bunny, safety eyes, 18cm.",
    },
    {
        "name": "Macrame Wall Hanging", "category": "home",
        "price": "1299", "stock": 4,
        "shipping_charges": "99", "cod_available": False,
        "description": "Cotton rope wall hanging on driftwood, 60cm.",
    },
    {
        "name": "Granny Square Coasters (set of 4)", "category": "home",
        "price": "150", "stock": 40,
        "shipping_charges": "40", "cod_available": True,
        "description": "Four colourful granny-square coasters.",
    },
    {
        "name": "Chunky Knit Scarf", "category": "wearables",
        "price": "649", "stock": 2,
        "shipping_charges": "50", "cod_available": True,
        "description": "Merino blend chunky scarf, made to order.",
    },
]

COUPONS = [
    {"code": "WELCOME10", "discount_type": DiscountType.PERCENTAGE, "discount_value": "10", "min_order_value": "500"},
    {"code": "FLAT100", "discount_type": DiscountType.FIXED, "discount_value": "100", "min_order_value": "999"},
    {"code": "FIRST50", "discount_type": DiscountType.FIXED, "discount_value": "50", "max_uses": 50},
    {"code": "DIWALI20", "discount_type": DiscountType.PERCENTAGE, "discount_value": "20", "expired": True},
]


def ensure_tables():
    """Create all tables if they don't exist (safe to call multiple times)."""
    print("[0/2] Ensuring all tables exist...")
    Base.metadata.create_all(bind=engine)
    print("  + All tables OK\n")


def seed():
    db = SessionLocal()
    try:
        print("=" * 50)
        print("  Loopcraft - Seeder")
        print("=" * 50)

        ensure_tables()

        # ==========================================
        # 1. Products
        # ==========================================
        print("[1/2] Products")
        for data in PRODUCTS:
            existing = db.query(Product).filter(Product.name == data["name"]).first()
            if existing:
                print(f"  = exists: {data['name']}")
                continue
            db.add(Product(
                name=data["name"],
                description=data["description"],
                category=data["category"],
                price=Decimal(data["price"]),
                sale_price=Decimal(data["sale_price"]) if data.get("sale_price") else None,
                stock=data["stock"],
                shipping_charges=Decimal(data["shipping_charges"]),
                cod_available=data["cod_available"],
                featured=data.get("featured", False),
                active=True,
            ))
            print(f"  + {data['name']} ({data['category']}, stock {data['stock']})")
        db.flush()

        # ==========================================
        # 2. Coupons
        # ==========================================
        print("\n[2/2] Coupons")
        for data in COUPONS:
            if db.query(Coupon).filter(Coupon.code == data["code"]).first():
                print(f"  = exists: {data['code']}")
                continue
            db.add(Coupon(
                code=data["code"],
                discount_type=data["discount_type"].value,
                discount_value=Decimal(data["discount_value"]),
                min_order_value=Decimal(data.get("min_order_value", "0")),
                max_uses=data.get("max_uses"),
                valid_until=now_utc() - timedelta(days=1) if data.get("expired") else None,
                is_active=True,
                usage_count=0,
            ))
            print(f"  + {data['code']}")

        db.commit()
        print("\nDone.")
    except Exception as e:
        db.rollback()
        print(f"\n[ERROR] Seeding failed: {e}")
        raise
    finally:
        db.close()


def reset_and_seed():
    """Drop all tables and recreate + seed."""
    Base.metadata.drop_all(bind=engine)
    print("All tables dropped.\n")
    seed()


if __name__ == "__main__":
    if "--reset" in sys.argv:
        confirm = input("This will DELETE ALL DATA. Type 'yes' to confirm: ")
        if confirm.strip().lower() == "yes":
            reset_and_seed()
        else:
            print("Aborted.")
    else:
        seed()
