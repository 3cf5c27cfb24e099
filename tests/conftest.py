"""Pytest fixtures for the storefront API tests."""

import itertools
import os
from decimal import Decimal
from types import SimpleNamespace

# Settings are read at import time: configure before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "s3cret-pass"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RESEND_API_KEY"] = ""
os.environ["DEBUG"] = "true"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from config.database import Base, SessionLocal, engine  # noqa: E402
from common.email import email_sender  # noqa: E402
from common.security import create_token  # noqa: E402
from main import app  # noqa: E402
from modules.catalog.models import Product  # noqa: E402
from modules.coupon.models import Coupon  # noqa: E402
from modules.payment.gateways import GatewayCreateResult, get_gateway  # noqa: E402

RAZORPAY_TEST_SECRET = "rzp_test_secret"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def schema():
    """Fresh tables and a fresh rate limiter for every test."""
    Base.metadata.create_all(bind=engine)
    app.state.rate_limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Capture outgoing email instead of calling the provider."""
    sent = []

    def fake_send(to, subject, html):
        sent.append({"to": to, "subject": subject, "html": html})
        return True

    monkeypatch.setattr(email_sender, "send", fake_send)
    return sent


@pytest.fixture
def gateway(monkeypatch):
    """Razorpay order creation replaced by a local fake; signatures stay real."""
    gw = get_gateway("razorpay")
    counter = itertools.count(1)
    state = SimpleNamespace(requests=[], fail=False, secret=RAZORPAY_TEST_SECRET)

    def fake_create(req):
        state.requests.append(req)
        if state.fail:
            return GatewayCreateResult(success=False, error_message="Gateway error: Bad request")
        return GatewayCreateResult(
            success=True,
            gateway_order_id=f"order_TEST{next(counter):04d}",
            amount_minor=req.amount_minor,
            currency=req.currency,
        )

    monkeypatch.setattr(gw, "create_payment", fake_create)
    return state


# ==========================================
# Auth
# ==========================================

def bearer(sub: str, role: str = "customer") -> dict:
    return {"Authorization": f"Bearer {create_token({'sub': sub, 'role': role})}"}


@pytest.fixture
def customer_headers():
    return bearer("user_asha")


@pytest.fixture
def other_customer_headers():
    return bearer("user_ravi")


@pytest.fixture
def admin_headers():
    return bearer("admin", role="admin")


# ==========================================
# Data factories
# ==========================================

@pytest.fixture
def make_product(db):
    def _make(**overrides):
        data = {
            "name": "Amigurumi Bunny",
            "description": "",
            "category": "toys",
            "price": Decimal("299"),
            "stock": 10,
            "shipping_charges": Decimal("0"),
            "cod_available": True,
            "active": True,
        }
        data.update(overrides)
        product = Product(**data)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


@pytest.fixture
def make_coupon(db):
    def _make(**overrides):
        data = {
            "code": "SAVE10",
            "discount_type": "percentage",
            "discount_value": Decimal("10"),
            "min_order_value": Decimal("0"),
            "is_active": True,
            "usage_count": 0,
            "max_uses": None,
            "valid_until": None,
        }
        data.update(overrides)
        coupon = Coupon(**data)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon
    return _make


@pytest.fixture
def cart_products(make_product):
    """The two-line cart used throughout: 2 x 299 (free shipping) + 1 x 150 (+40)."""
    bunny = make_product(name="Amigurumi Bunny", price=Decimal("299"), stock=5)
    coasters = make_product(
        name="Granny Square Coasters", category="home",
        price=Decimal("150"), stock=3, shipping_charges=Decimal("40"),
    )
    return bunny, coasters


def checkout_body(items, **extra) -> dict:
    body = {
        "items": items,
        "customer": {
            "name": "Asha Verma",
            "email": "asha@example.com",
            "phone": "9876543210",
            "address": "12 MG Road, Pune",
        },
    }
    body.update(extra)
    return body
