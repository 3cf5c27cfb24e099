"""Tests for Cash on Delivery checkout and placement side effects."""

from decimal import Decimal

from sqlalchemy.exc import OperationalError

import modules.notification.service as notification_module
from common.email import email_sender
from conftest import checkout_body
from modules.catalog.models import Product
from modules.coupon.models import Coupon
from modules.order.models import Order, OrderStatusLog
from modules.order.service import order_service


def items_for(bunny, coasters):
    return [{"id": bunny.id, "quantity": 2}, {"id": coasters.id, "quantity": 1}]


class TestCreateCodOrder:
    def test_places_pending_order(self, client, db, cart_products, sent_emails):
        bunny, coasters = cart_products
        response = client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters)))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["orderId"].startswith("COD_")

        order = db.query(Order).filter(Order.order_id == body["orderId"]).one()
        assert order.id == body["dbOrderId"]
        assert order.status == "pending"
        assert order.payment_method == "cod"
        assert order.amount == Decimal("788.00")
        assert order.subtotal == Decimal("748.00")
        assert order.shipping_charges == Decimal("40.00")
        assert order.coupon_code is None
        assert order.effects_applied is True
        assert [(i.name, i.quantity) for i in order.items] == [
            ("Amigurumi Bunny", 2), ("Granny Square Coasters", 1),
        ]

    def test_decrements_stock(self, client, db, cart_products):
        bunny, coasters = cart_products
        client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters)))
        db.expire_all()
        assert db.get(Product, bunny.id).stock == 3
        assert db.get(Product, coasters.id).stock == 2

    def test_sends_confirmation(self, client, cart_products, sent_emails):
        bunny, coasters = cart_products
        body = client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters))).json()
        assert len(sent_emails) == 1
        assert sent_emails[0]["to"] == "asha@example.com"
        assert sent_emails[0]["subject"].startswith("Order Confirmed!")
        assert body["orderId"] in sent_emails[0]["html"]
        assert "Amigurumi Bunny" in sent_emails[0]["html"]
        assert "Granny Square Coasters" in sent_emails[0]["html"]

    def test_no_email_address_skips_confirmation(self, client, cart_products, sent_emails):
        bunny, coasters = cart_products
        body = checkout_body(items_for(bunny, coasters))
        body["customer"]["email"] = ""
        assert client.post("/orders/create-cod", json=body).status_code == 201
        assert sent_emails == []

    def test_client_amount_is_not_trusted(self, client, db, cart_products):
        bunny, coasters = cart_products
        body = checkout_body(items_for(bunny, coasters), amount=1, discountAmount=500)
        order_id = client.post("/orders/create-cod", json=body).json()["orderId"]
        order = db.query(Order).filter(Order.order_id == order_id).one()
        assert order.amount == Decimal("788.00")
        assert order.discount_amount is None

    def test_with_coupon(self, client, db, cart_products, make_coupon):
        bunny, coasters = cart_products
        coupon = make_coupon(min_order_value=Decimal("500"))
        body = checkout_body(items_for(bunny, coasters), couponCode="save10")
        order_id = client.post("/orders/create-cod", json=body).json()["orderId"]

        db.expire_all()
        order = db.query(Order).filter(Order.order_id == order_id).one()
        assert order.amount == Decimal("714.00")
        assert order.discount_amount == Decimal("74.00")
        assert order.coupon_code == "SAVE10"
        assert db.get(Coupon, coupon.id).usage_count == 1

    def test_records_status_log(self, client, db, cart_products):
        bunny, coasters = cart_products
        order_id = client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters))).json()["orderId"]
        order = db.query(Order).filter(Order.order_id == order_id).one()
        logs = db.query(OrderStatusLog).filter(OrderStatusLog.order_id == order.id).all()
        assert [(log.old_status, log.new_status, log.changed_by) for log in logs] == [(None, "pending", "system")]


class TestCodRejections:
    def test_missing_phone(self, client, db, cart_products):
        bunny, coasters = cart_products
        body = checkout_body(items_for(bunny, coasters))
        body["customer"]["phone"] = "   "
        response = client.post("/orders/create-cod", json=body)
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Phone and address are required"}
        assert db.query(Order).count() == 0

    def test_missing_address(self, client, db, cart_products):
        bunny, coasters = cart_products
        body = checkout_body(items_for(bunny, coasters))
        del body["customer"]["address"]
        assert client.post("/orders/create-cod", json=body).status_code == 400
        assert db.query(Order).count() == 0

    def test_empty_cart(self, client):
        response = client.post("/orders/create-cod", json=checkout_body([]))
        assert response.status_code == 400
        assert response.json()["message"] == "Cart is empty"

    def test_product_without_cod(self, client, db, make_product):
        hanging = make_product(name="Macrame Wall Hanging", cod_available=False, stock=4)
        response = client.post("/orders/create-cod", json=checkout_body([{"id": hanging.id, "quantity": 1}]))
        assert response.status_code == 400
        assert "Macrame Wall Hanging" in response.json()["message"]
        assert db.query(Order).count() == 0
        db.expire_all()
        assert db.get(Product, hanging.id).stock == 4

    def test_insufficient_stock(self, client, db, make_product):
        scarf = make_product(name="Chunky Knit Scarf", stock=1)
        response = client.post("/orders/create-cod", json=checkout_body([{"id": scarf.id, "quantity": 2}]))
        assert response.status_code == 400
        assert response.json()["message"] == "Only 1 left in stock for Chunky Knit Scarf"
        assert db.query(Order).count() == 0

    def test_unknown_product(self, client):
        response = client.post("/orders/create-cod", json=checkout_body([{"id": 4040, "quantity": 1}]))
        assert response.status_code == 404

    def test_invalid_coupon_rejects_checkout(self, client, db, cart_products):
        bunny, coasters = cart_products
        body = checkout_body(items_for(bunny, coasters), couponCode="NOPE")
        response = client.post("/orders/create-cod", json=body)
        assert response.status_code == 404
        assert db.query(Order).count() == 0

    def test_malformed_email(self, client, cart_products):
        bunny, coasters = cart_products
        body = checkout_body(items_for(bunny, coasters))
        body["customer"]["email"] = "not-an-email"
        response = client.post("/orders/create-cod", json=body)
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestPlacementEffects:
    def test_applied_once(self, client, db, cart_products, make_coupon):
        bunny, coasters = cart_products
        coupon = make_coupon()
        body = checkout_body(items_for(bunny, coasters), couponCode="SAVE10")
        order_id = client.post("/orders/create-cod", json=body).json()["orderId"]

        order = db.query(Order).filter(Order.order_id == order_id).one()
        assert order_service.apply_placement_effects(db, order) is False

        db.expire_all()
        assert db.get(Product, bunny.id).stock == 3
        assert db.get(Coupon, coupon.id).usage_count == 1

    def test_order_snapshot_survives_price_change(self, client, db, cart_products):
        bunny, coasters = cart_products
        order_id = client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters))).json()["orderId"]

        product = db.get(Product, bunny.id)
        product.price = Decimal("999")
        db.commit()

        db.expire_all()
        order = db.query(Order).filter(Order.order_id == order_id).one()
        assert order.items[0].price == Decimal("299.00")


class TestAfterCommitFailures:
    def test_email_send_error_keeps_order(self, client, db, cart_products, monkeypatch):
        def broken_send(to, subject, html):
            raise RuntimeError("mail provider down")

        monkeypatch.setattr(email_sender, "send", broken_send)
        bunny, coasters = cart_products
        response = client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters)))
        assert response.status_code == 201

        db.expire_all()
        order = db.query(Order).filter(Order.order_id == response.json()["orderId"]).one()
        assert order.status == "pending"
        assert db.get(Product, bunny.id).stock == 3

    def test_template_error_keeps_order(self, client, db, cart_products, sent_emails, monkeypatch):
        def broken_render(name, **context):
            raise RuntimeError("template missing")

        monkeypatch.setattr(notification_module, "render_template", broken_render)
        bunny, coasters = cart_products
        response = client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters)))
        assert response.status_code == 201
        assert sent_emails == []
        order = db.query(Order).filter(Order.order_id == response.json()["orderId"]).one()
        assert order.status == "pending"

    def test_effects_claim_error_still_answers(self, client, db, cart_products, sent_emails, monkeypatch):
        def broken_claim(db, order_db_id):
            raise OperationalError("UPDATE orders", {}, Exception("database is locked"))

        monkeypatch.setattr(order_service, "_claim_effects", broken_claim)
        bunny, coasters = cart_products
        response = client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters)))
        assert response.status_code == 201

        db.expire_all()
        order = db.query(Order).filter(Order.order_id == response.json()["orderId"]).one()
        assert order.status == "pending"
        assert order.effects_applied is False
        assert db.get(Product, bunny.id).stock == 5
        assert len(sent_emails) == 1

    def test_unreadable_order_skips_email(self, client, db, cart_products, sent_emails, monkeypatch):
        def broken_snapshot(order):
            raise OperationalError("SELECT order_items", {}, Exception("connection reset"))

        monkeypatch.setattr(notification_module, "order_snapshot", broken_snapshot)
        bunny, coasters = cart_products
        response = client.post("/orders/create-cod", json=checkout_body(items_for(bunny, coasters)))
        assert response.status_code == 201
        assert sent_emails == []


class TestMyOrders:
    def test_lists_only_own_orders(self, client, cart_products, customer_headers, other_customer_headers):
        bunny, coasters = cart_products
        mine = client.post(
            "/orders/create-cod", headers=customer_headers,
            json=checkout_body([{"id": bunny.id, "quantity": 1}]),
        ).json()["orderId"]
        client.post(
            "/orders/create-cod", headers=other_customer_headers,
            json=checkout_body([{"id": coasters.id, "quantity": 1}]),
        )

        response = client.get("/orders/user", headers=customer_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert [o["orderId"] for o in data] == [mine]
        assert data[0]["customer"]["userId"] == "user_asha"
        assert data[0]["status"] == "pending"

    def test_requires_sign_in(self, client):
        assert client.get("/orders/user").status_code == 401

    def test_guest_checkout_has_no_owner(self, client, db, cart_products):
        bunny, _ = cart_products
        order_id = client.post(
            "/orders/create-cod", json=checkout_body([{"id": bunny.id, "quantity": 1}]),
        ).json()["orderId"]
        order = db.query(Order).filter(Order.order_id == order_id).one()
        assert order.customer_user_id is None
