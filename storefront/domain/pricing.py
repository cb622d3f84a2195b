# storefront/domain/pricing.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

TAX_RATE = Decimal("0.08")
FREE_SHIPPING_THRESHOLD = Decimal("100")
FLAT_SHIPPING_FEE = Decimal("10")

MONEY = Decimal("0.01")
ZERO = Decimal("0.00")


def D(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def round_money(value) -> Decimal:
    return D(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """25.00 -> 2500"""
    return int((D(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return round_money(Decimal(amount) / 100)


def line_subtotal(lines: Iterable) -> Decimal:
    return round_money(sum((D(line.price) * line.quantity for line in lines), Decimal("0")))


def recalc(cart):
    """
    Recompute the derived totals of a cart in place and return it.

      subtotal = sum(price * quantity)
      tax      = subtotal * 8%
      shipping = 0 for an empty cart, from 100 upwards or with a free-shipping
                 coupon; 10 otherwise
      total    = max(0, subtotal + tax + shipping - discount)

    This is the only place the derived fields are written.
    """
    subtotal = line_subtotal(cart.items)
    tax = round_money(subtotal * TAX_RATE)

    if not cart.items or cart.free_shipping or subtotal >= FREE_SHIPPING_THRESHOLD:
        shipping = ZERO
    else:
        shipping = round_money(FLAT_SHIPPING_FEE)

    discount = round_money(cart.discount)
    total = round_money(max(Decimal("0"), subtotal + tax + shipping - discount))

    cart.subtotal = subtotal
    cart.tax = tax
    cart.shipping = shipping
    cart.discount = discount
    cart.total = total
    return cart
