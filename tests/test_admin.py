"""Tests for admin login, order management, inventory and dashboard."""

from decimal import Decimal

import pytest

from conftest import ADMIN_PASSWORD, checkout_body
from common.security import RateLimiter
from main import app
from modules.catalog.models import Product
from modules.order.models import OrderStatusLog


@pytest.fixture
def cod_orders(client, cart_products):
    """Three pending COD orders, oldest first."""
    bunny, coasters = cart_products
    ids = []
    for _ in range(3):
        response = client.post("/orders/create-cod", json=checkout_body([{"id": coasters.id, "quantity": 1}]))
        assert response.status_code == 201
        ids.append(response.json())
    return ids


class TestLogin:
    def test_success(self, client):
        response = client.post("/auth", json={"username": "admin", "password": ADMIN_PASSWORD})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["user"] == {"username": "admin", "role": "admin"}
        assert "auth_token" in response.cookies

        check = client.get("/auth", headers={"Authorization": f"Bearer {body['token']}"})
        assert check.status_code == 200
        assert check.json()["user"]["role"] == "admin"

    def test_issued_token_opens_admin_routes(self, client):
        token = client.post("/auth", json={"username": "admin", "password": ADMIN_PASSWORD}).json()["token"]
        response = client.get("/orders", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200

    @pytest.mark.parametrize("username,password", [
        ("admin", "wrong"),
        ("root", ADMIN_PASSWORD),
        ("", ""),
    ])
    def test_bad_credentials(self, client, username, password):
        response = client.post("/auth", json={"username": username, "password": password})
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid username or password"}

    def test_rate_limited(self, client, monkeypatch):
        monkeypatch.setattr(app.state, "rate_limiter", RateLimiter(max_requests=3, window_seconds=60))
        for _ in range(3):
            client.post("/auth", json={"username": "admin", "password": "guess"})
        response = client.post("/auth", json={"username": "admin", "password": ADMIN_PASSWORD})
        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_verify_without_token(self, client):
        assert client.get("/auth").status_code == 401

    def test_verify_with_garbage_token(self, client):
        response = client.get("/auth", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"


class TestOrderList:
    def test_requires_admin(self, client, customer_headers):
        assert client.get("/orders").status_code == 401
        assert client.get("/orders", headers=customer_headers).status_code == 403

    def test_pagination(self, client, admin_headers, cod_orders):
        first = client.get("/orders", headers=admin_headers, params={"limit": 2}).json()
        assert first["total"] == 3
        assert first["totalPages"] == 2
        assert first["page"] == 1
        assert len(first["data"]) == 2
        # Newest first
        assert first["data"][0]["orderId"] == cod_orders[-1]["orderId"]

        second = client.get("/orders", headers=admin_headers, params={"limit": 2, "page": 2}).json()
        assert len(second["data"]) == 1
        assert second["data"][0]["orderId"] == cod_orders[0]["orderId"]

    def test_status_filter(self, client, admin_headers, cod_orders):
        assert client.get("/orders", headers=admin_headers, params={"status": "pending"}).json()["total"] == 3
        assert client.get("/orders", headers=admin_headers, params={"status": "paid"}).json()["total"] == 0
        assert client.get("/orders", headers=admin_headers, params={"status": "all"}).json()["total"] == 3

    def test_empty(self, client, admin_headers):
        body = client.get("/orders", headers=admin_headers).json()
        assert body["data"] == []
        assert body["total"] == 0
        assert body["totalPages"] == 0


class TestStatusUpdate:
    def test_advance_by_internal_id(self, client, db, admin_headers, cod_orders):
        db_id = cod_orders[0]["dbOrderId"]
        response = client.put("/orders", headers=admin_headers, json={"orderId": db_id, "status": "processing"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "processing"

        log = (
            db.query(OrderStatusLog)
            .filter(OrderStatusLog.order_id == db_id)
            .order_by(OrderStatusLog.id.desc())
            .first()
        )
        assert (log.old_status, log.new_status, log.changed_by) == ("pending", "processing", "admin:admin")

    def test_by_public_order_id(self, client, admin_headers, cod_orders):
        order_id = cod_orders[0]["orderId"]
        response = client.put("/orders", headers=admin_headers, json={"orderId": order_id, "status": "cancelled"})
        assert response.status_code == 200
        assert response.json()["data"]["orderId"] == order_id

    def test_full_fulfilment_chain(self, client, admin_headers, cod_orders):
        db_id = cod_orders[0]["dbOrderId"]
        for status in ("processing", "shipped", "delivered"):
            response = client.put("/orders", headers=admin_headers, json={"orderId": db_id, "status": status})
            assert response.status_code == 200
            assert response.json()["data"]["status"] == status

    def test_skipping_a_step_is_rejected(self, client, admin_headers, cod_orders):
        db_id = cod_orders[0]["dbOrderId"]
        response = client.put("/orders", headers=admin_headers, json={"orderId": db_id, "status": "delivered"})
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot change order status from pending to delivered"

    def test_terminal_state_is_final(self, client, admin_headers, cod_orders):
        db_id = cod_orders[0]["dbOrderId"]
        client.put("/orders", headers=admin_headers, json={"orderId": db_id, "status": "cancelled"})
        response = client.put("/orders", headers=admin_headers, json={"orderId": db_id, "status": "processing"})
        assert response.status_code == 400

    def test_admin_cannot_mark_paid(self, client, admin_headers, cod_orders):
        db_id = cod_orders[0]["dbOrderId"]
        response = client.put("/orders", headers=admin_headers, json={"orderId": db_id, "status": "paid"})
        assert response.status_code == 400

    def test_same_status_is_noop(self, client, db, admin_headers, cod_orders):
        db_id = cod_orders[0]["dbOrderId"]
        response = client.put("/orders", headers=admin_headers, json={"orderId": db_id, "status": "pending"})
        assert response.status_code == 200
        assert db.query(OrderStatusLog).filter(OrderStatusLog.order_id == db_id).count() == 1

    def test_invalid_status(self, client, admin_headers, cod_orders):
        response = client.put(
            "/orders", headers=admin_headers, json={"orderId": cod_orders[0]["dbOrderId"], "status": "teleported"},
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid status. Must be one of:")

    def test_unknown_order(self, client, admin_headers):
        response = client.put("/orders", headers=admin_headers, json={"orderId": 99999, "status": "processing"})
        assert response.status_code == 404

    def test_requires_admin(self, client, customer_headers, cod_orders):
        body = {"orderId": cod_orders[0]["dbOrderId"], "status": "processing"}
        assert client.put("/orders", json=body).status_code == 401
        assert client.put("/orders", headers=customer_headers, json=body).status_code == 403


class TestInventory:
    def test_set_stock(self, client, db, admin_headers, make_product):
        product = make_product(stock=1)
        response = client.put("/products/inventory", headers=admin_headers, json={"id": product.id, "stock": 7})
        assert response.status_code == 200
        assert response.json()["data"]["stock"] == 7
        db.expire_all()
        assert db.get(Product, product.id).stock == 7

    def test_negative_stock(self, client, admin_headers, make_product):
        product = make_product()
        response = client.put("/products/inventory", headers=admin_headers, json={"id": product.id, "stock": -1})
        assert response.status_code == 400

    def test_unknown_product(self, client, admin_headers):
        response = client.put("/products/inventory", headers=admin_headers, json={"id": 404, "stock": 1})
        assert response.status_code == 404

    def test_requires_admin(self, client, customer_headers, make_product):
        product = make_product()
        response = client.put("/products/inventory", headers=customer_headers, json={"id": product.id, "stock": 1})
        assert response.status_code == 403


class TestDashboard:
    def test_stats(self, client, admin_headers, cod_orders, make_coupon):
        make_coupon()
        first = cod_orders[0]["dbOrderId"]
        client.put("/orders", headers=admin_headers, json={"orderId": first, "status": "processing"})

        response = client.get("/admin/dashboard/stats", headers=admin_headers)
        assert response.status_code == 200
        assert response.headers["Cache-Control"].startswith("no-cache")
        data = response.json()["data"]

        assert data["orders"]["total"] == 3
        assert data["orders"]["byStatus"]["pending"] == 2
        assert data["orders"]["byStatus"]["processing"] == 1
        # Pending COD orders are not revenue yet: one processing order of 150 + 40
        assert Decimal(str(data["revenue"]["total"])) == Decimal("190")
        assert data["coupons"] == {"total": 1, "active": 1, "redemptions": 0}
        # Coasters started at 3 and three orders took one each
        assert {"name": "Granny Square Coasters", "stock": 0} in [
            {"name": p["name"], "stock": p["stock"]} for p in data["lowStock"]
        ]

    def test_requires_admin(self, client, customer_headers):
        assert client.get("/admin/dashboard/stats", headers=customer_headers).status_code == 403
