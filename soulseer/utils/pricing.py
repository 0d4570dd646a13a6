"""
Money helpers

Cart totals and revenue splits. Everything is Decimal, rounded half-up to
cents only where a figure is reported.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from soulseer.models.product import DiscountType

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value) -> Decimal:
    """Decimal rounded half-up to cents"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class CartTotals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    item_count: int


def coupon_discount(subtotal: Decimal, discount_type: Optional[str], value) -> Decimal:
    """
    PERCENTAGE -> percent of the subtotal
    FIXED      -> fixed amount, never more than the subtotal
    """
    if discount_type is None or value is None or subtotal <= ZERO:
        return ZERO

    value = Decimal(str(value))
    if discount_type == DiscountType.PERCENTAGE:
        percent = min(max(value, ZERO), Decimal("100"))
        return to_money(subtotal * percent / Decimal("100"))
    return to_money(min(max(value, ZERO), subtotal))


def calculate_cart_totals(
    lines: Iterable[Tuple[Decimal, int]],
    tax_rate: Decimal,
    discount_type: Optional[str] = None,
    discount_value=None,
) -> CartTotals:
    """
    total = sum(price * qty) - discount + tax
    tax   = tax_rate * (subtotal - discount)

    Args:
        lines: (unit price, quantity) per cart item
    """
    subtotal = ZERO
    item_count = 0
    for price, quantity in lines:
        subtotal += Decimal(str(price)) * quantity
        item_count += quantity

    subtotal = to_money(subtotal)
    discount = coupon_discount(subtotal, discount_type, discount_value)
    tax = to_money((subtotal - discount) * Decimal(str(tax_rate)))
    total = to_money(subtotal - discount + tax)

    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=total,
        item_count=item_count,
    )


def coupon_is_usable(coupon, now: datetime) -> bool:
    if coupon is None or not coupon.is_active or coupon.is_deleted:
        return False
    return coupon.expires_at is None or coupon.expires_at > now


def split_revenue(amount: Decimal, reader_share: Decimal) -> Tuple[Decimal, Decimal]:
    """(reader earnings, platform revenue); the platform keeps the rounding remainder"""
    amount = to_money(amount)
    reader = to_money(amount * Decimal(str(reader_share)))
    return reader, amount - reader


def billed_minutes(started_at: datetime, ended_at: datetime) -> int:
    """Elapsed minutes rounded up, never less than one"""
    seconds = max((ended_at - started_at).total_seconds(), 0)
    return max(1, math.ceil(seconds / 60))


def gift_earnings(total_value: int, rate: Decimal) -> int:
    """Coins credited to a gift recipient, rounded down"""
    return int((Decimal(total_value) * Decimal(str(rate))).to_integral_value(rounding=ROUND_FLOOR))
