"""
Pricing Module - Calculator
=============================
Order total and coupon discount arithmetic.
The same functions price the cart preview and the authoritative charge, so
what the customer sees is what the gateway is asked to collect.
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP

PERCENTAGE = "percentage"
FIXED = "fixed"

_CENT = Decimal("0.01")


def D(x) -> Decimal:
    return Decimal(str(x)) if x is not None else Decimal("0")


def to_money(x) -> Decimal:
    """Round to 2 places (paise)."""
    return D(x).quantize(_CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Rupees -> paise, as expected by the payment gateway."""
    return int((D(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_discount(discount_type: str, discount_value, order_value) -> Decimal:
    """
    Discount granted by a coupon on `order_value`.

    percentage: floor(order_value * value / 100) to a whole rupee, never rounded up.
    fixed: the flat value.
    Either way the result is clamped to [0, order_value].
    """
    d_order = D(order_value)
    if d_order <= 0:
        return Decimal("0")

    d_value = D(discount_value)
    if discount_type == PERCENTAGE:
        raw = (d_order * d_value / D(100)).quantize(Decimal("1"), rounding=ROUND_FLOOR)
    else:
        raw = d_value

    if raw < 0:
        raw = Decimal("0")
    if raw > d_order:
        raw = d_order
    return to_money(raw)


def calculate_order_total(items, coupon=None) -> dict:
    """
    Combine line items and an optional coupon into the payable total.

    Args:
        items: iterable of objects with price, quantity, shipping_charges
        coupon: object with discount_type and discount_value, or None

    Returns:
        dict with: subtotal, shipping, discount, grand_total (Decimal, 2 places)
    """
    subtotal = Decimal("0")
    shipping = Decimal("0")
    for item in items:
        subtotal += D(item.price) * D(item.quantity)
        # Shipping is charged once per line, whatever the quantity
        shipping += D(item.shipping_charges)

    discount = Decimal("0")
    if coupon is not None:
        discount = calculate_discount(coupon.discount_type, coupon.discount_value, subtotal)

    # The coupon may have been validated against an older subtotal
    if discount > subtotal:
        discount = subtotal
    if discount < 0:
        discount = Decimal("0")

    grand_total = subtotal - discount + shipping
    if grand_total < 0:
        grand_total = Decimal("0")

    return {
        "subtotal": to_money(subtotal),
        "shipping": to_money(shipping),
        "discount": to_money(discount),
        "grand_total": to_money(grand_total),
    }
