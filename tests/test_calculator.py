"""Tests for order total and coupon discount arithmetic."""

from decimal import Decimal
from types import SimpleNamespace

from modules.cart.ledger import CartLine
from modules.pricing.calculator import calculate_discount, calculate_order_total, to_minor_units


def two_line_cart():
    return [
        CartLine(id=1, name="Bunny", price=Decimal("299"), quantity=2, shipping_charges=Decimal("0")),
        CartLine(id=2, name="Coasters", price=Decimal("150"), quantity=1, shipping_charges=Decimal("40")),
    ]


def coupon(discount_type, value):
    return SimpleNamespace(discount_type=discount_type, discount_value=Decimal(str(value)))


class TestOrderTotal:
    def test_without_coupon(self):
        totals = calculate_order_total(two_line_cart())
        assert totals == {
            "subtotal": Decimal("748.00"),
            "shipping": Decimal("40.00"),
            "discount": Decimal("0.00"),
            "grand_total": Decimal("788.00"),
        }

    def test_percentage_coupon_is_floored(self):
        totals = calculate_order_total(two_line_cart(), coupon("percentage", 10))
        assert totals["discount"] == Decimal("74.00")
        assert totals["grand_total"] == Decimal("714.00")

    def test_fixed_coupon(self):
        totals = calculate_order_total(two_line_cart(), coupon("fixed", 100))
        assert totals["discount"] == Decimal("100.00")
        assert totals["grand_total"] == Decimal("688.00")

    def test_fixed_coupon_larger_than_subtotal_leaves_shipping(self):
        totals = calculate_order_total(two_line_cart(), coupon("fixed", 5000))
        assert totals["discount"] == Decimal("748.00")
        assert totals["grand_total"] == Decimal("40.00")

    def test_shipping_charged_once_per_line(self):
        lines = [CartLine(id=1, name="Tote", price=Decimal("100"), quantity=3, shipping_charges=Decimal("60"))]
        totals = calculate_order_total(lines)
        assert totals["shipping"] == Decimal("60.00")
        assert totals["grand_total"] == Decimal("360.00")

    def test_empty_cart(self):
        totals = calculate_order_total([], coupon("fixed", 50))
        assert totals["grand_total"] == Decimal("0.00")
        assert totals["discount"] == Decimal("0.00")

    def test_same_input_same_output(self):
        first = calculate_order_total(two_line_cart(), coupon("percentage", 15))
        second = calculate_order_total(two_line_cart(), coupon("percentage", 15))
        assert first == second


class TestDiscount:
    def test_percentage_never_rounds_up(self):
        # 15% of 99 = 14.85
        assert calculate_discount("percentage", 15, Decimal("99")) == Decimal("14.00")

    def test_percentage_over_hundred_is_clamped(self):
        assert calculate_discount("percentage", 150, Decimal("200")) == Decimal("200.00")

    def test_fixed_is_clamped_to_order_value(self):
        assert calculate_discount("fixed", 300, Decimal("250")) == Decimal("250.00")

    def test_negative_value_gives_zero(self):
        assert calculate_discount("fixed", -20, Decimal("250")) == Decimal("0.00")

    def test_zero_order_value(self):
        assert calculate_discount("percentage", 10, 0) == Decimal("0")


class TestMinorUnits:
    def test_rupees_to_paise(self):
        assert to_minor_units(Decimal("714.00")) == 71400

    def test_rounds_half_up(self):
        assert to_minor_units("12.345") == 1235
