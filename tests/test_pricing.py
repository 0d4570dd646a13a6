"""Tests for cart math and revenue splits."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

from soulseer.models.product import DiscountType
from soulseer.utils.pricing import (billed_minutes, calculate_cart_totals,
                                    coupon_is_usable, gift_earnings,
                                    split_revenue, to_money)

TAX = Decimal("0.08")
LINES = [(Decimal("10.00"), 2), (Decimal("5.50"), 1)]


def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money(1) == Decimal("1.00")


def test_cart_totals_without_coupon():
    totals = calculate_cart_totals(LINES, TAX)
    assert totals.subtotal == Decimal("25.50")
    assert totals.discount == Decimal("0")
    assert totals.tax == Decimal("2.04")
    assert totals.total == Decimal("27.54")
    assert totals.item_count == 3


def test_percentage_coupon_is_taken_before_tax():
    totals = calculate_cart_totals(LINES, TAX, DiscountType.PERCENTAGE, Decimal("10"))
    assert totals.discount == Decimal("2.55")
    assert totals.tax == Decimal("1.84")
    assert totals.total == Decimal("24.79")


def test_fixed_coupon_is_capped_at_subtotal():
    totals = calculate_cart_totals(LINES, TAX, DiscountType.FIXED, Decimal("50"))
    assert totals.discount == Decimal("25.50")
    assert totals.tax == Decimal("0.00")
    assert totals.total == Decimal("0.00")


def test_empty_cart_totals_are_zero():
    totals = calculate_cart_totals([], TAX, DiscountType.FIXED, Decimal("5"))
    assert totals.total == Decimal("0.00")
    assert totals.item_count == 0


def test_coupon_usability():
    now = datetime(2024, 3, 4, 12, 0)
    coupon = SimpleNamespace(is_active=True, is_deleted=False, expires_at=None)
    assert coupon_is_usable(coupon, now)

    coupon.expires_at = now - timedelta(seconds=1)
    assert not coupon_is_usable(coupon, now)

    coupon.expires_at = None
    coupon.is_active = False
    assert not coupon_is_usable(coupon, now)
    assert not coupon_is_usable(None, now)


def test_split_revenue_keeps_remainder_on_platform():
    reader, platform = split_revenue(Decimal("10.01"), Decimal("0.70"))
    assert reader == Decimal("7.01")
    assert platform == Decimal("3.00")
    assert reader + platform == Decimal("10.01")


def test_billed_minutes_rounds_up_with_one_minute_floor():
    start = datetime(2024, 3, 4, 9, 0)
    assert billed_minutes(start, start) == 1
    assert billed_minutes(start, start + timedelta(seconds=61)) == 2
    assert billed_minutes(start, start + timedelta(minutes=30)) == 30


def test_gift_earnings_round_down():
    assert gift_earnings(25, Decimal("0.70")) == 17
    assert gift_earnings(1000, Decimal("0.70")) == 700
