"""Tests for freightfee/services/fee_calculation.py"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from freightfee.models.enums import Party
from freightfee.services.fee_calculation import (
    calculate_dual_party_fee_preview,
    calculate_fee_preview,
    calculate_fees_from_corridor,
    calculate_party_fee,
    resolve_party_pricing,
    to_decimal,
)


def _corridor(**kwargs):
    defaults = dict(
        distance_km=Decimal("100"),
        shipper_price_per_km=None,
        shipper_promo_flag=False,
        shipper_promo_pct=None,
        carrier_price_per_km=None,
        carrier_promo_flag=False,
        carrier_promo_pct=None,
        price_per_km=None,
        promo_flag=False,
        promo_discount_pct=None,
    )
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


# ── Single party ───────────────────────────────────────────────────────────────

class TestCalculatePartyFee:
    def test_distance_times_rate(self):
        fee = calculate_party_fee(100, 5)
        assert fee.base_fee == Decimal("500.00")
        assert fee.promo_discount == Decimal("0.00")
        assert fee.final_fee == Decimal("500.00")
        assert fee.promo_applied is False
        assert fee.promo_discount_pct is None

    def test_rounds_half_up_to_cents(self):
        fee = calculate_party_fee(Decimal("100.333"), Decimal("2.5"))
        assert fee.base_fee == Decimal("250.83")
        assert fee.final_fee == Decimal("250.83")

    def test_promo_discount(self):
        fee = calculate_party_fee(100, 5, promo_flag=True, promo_pct=10)
        assert fee.promo_discount == Decimal("50.00")
        assert fee.final_fee == Decimal("450.00")
        assert fee.promo_applied is True
        assert fee.promo_discount_pct == Decimal("10")

    def test_final_fee_rounded_from_unrounded_amount(self):
        # 111.1 * 3 = 333.3, 15% = 49.995
        fee = calculate_party_fee(Decimal("111.1"), 3, promo_flag=True, promo_pct=15)
        assert fee.base_fee == Decimal("333.30")
        assert fee.promo_discount == Decimal("50.00")
        assert fee.final_fee == Decimal("283.31")

    def test_promo_flag_off_ignores_pct(self):
        fee = calculate_party_fee(100, 5, promo_flag=False, promo_pct=50)
        assert fee.final_fee == Decimal("500.00")
        assert fee.promo_applied is False

    @pytest.mark.parametrize("pct", [None, 0, -5, "abc"])
    def test_unusable_promo_pct_is_ignored(self, pct):
        fee = calculate_party_fee(100, 5, promo_flag=True, promo_pct=pct)
        assert fee.final_fee == Decimal("500.00")
        assert fee.promo_applied is False

    def test_promo_pct_capped_at_100(self):
        fee = calculate_party_fee(100, 5, promo_flag=True, promo_pct=150)
        assert fee.promo_discount_pct == Decimal("100")
        assert fee.promo_discount == Decimal("500.00")
        assert fee.final_fee == Decimal("0.00")

    @pytest.mark.parametrize(
        "distance,rate",
        [
            (0, 5),
            (-10, 5),
            (100, 0),
            (100, -1),
            (float("nan"), 5),
            (float("inf"), 5),
            (100, float("nan")),
            (None, 5),
            ("not-a-number", 5),
            ("1e30", 5),
            (5, "1e30"),
            ("9e999999", "9e999999"),
        ],
    )
    def test_invalid_inputs_give_zero_fee(self, distance, rate):
        fee = calculate_party_fee(distance, rate)
        assert fee.base_fee == Decimal("0.00")
        assert fee.promo_discount == Decimal("0.00")
        assert fee.final_fee == Decimal("0.00")
        assert fee.price_per_km == Decimal("0.00")

    def test_final_never_exceeds_base(self):
        for pct in (1, 12.5, 33.333, 99.99):
            fee = calculate_party_fee(Decimal("87.65"), Decimal("4.321"), True, pct)
            assert Decimal("0") <= fee.final_fee <= fee.base_fee


def test_fee_preview_shape():
    preview = calculate_fee_preview(200, Decimal("1.25"), True, 20)
    assert preview.base_fee == Decimal("250.00")
    assert preview.discount == Decimal("50.00")
    assert preview.final_fee == Decimal("200.00")


def test_fee_preview_out_of_range_distance_is_zero():
    preview = calculate_fee_preview("1e30", "5")
    assert preview.base_fee == Decimal("0.00")
    assert preview.discount == Decimal("0.00")
    assert preview.final_fee == Decimal("0.00")


def test_to_decimal_rejects_non_finite_and_bool():
    assert to_decimal(float("nan")) is None
    assert to_decimal("Infinity") is None
    assert to_decimal(True) is None
    assert to_decimal(" 12.5 ") == Decimal("12.5")


# ── Dual party ─────────────────────────────────────────────────────────────────

def test_dual_party_fees_are_independent():
    fees = calculate_dual_party_fee_preview(100, 5, False, None, 3, False, None)
    assert fees.shipper.final_fee == Decimal("500.00")
    assert fees.carrier.final_fee == Decimal("300.00")
    assert fees.total_platform_fee == Decimal("800.00")


def test_dual_party_promo_applies_to_one_side_only():
    fees = calculate_dual_party_fee_preview(100, 5, True, 10, 3, False, 10)
    assert fees.shipper.final_fee == Decimal("450.00")
    assert fees.carrier.final_fee == Decimal("300.00")
    assert fees.total_platform_fee == Decimal("750.00")


def test_dual_party_total_out_of_range_is_zero():
    fees = calculate_dual_party_fee_preview("9e25", 1, False, None, 1, False, None)
    assert fees.shipper.final_fee == Decimal("0.00")
    assert fees.carrier.final_fee == Decimal("0.00")
    assert fees.total_platform_fee == Decimal("0.00")


# ── Corridor pricing ───────────────────────────────────────────────────────────

def test_shipper_uses_dual_pricing_when_set():
    corridor = _corridor(shipper_price_per_km=Decimal("5"), price_per_km=Decimal("9"))
    pricing = resolve_party_pricing(corridor, Party.SHIPPER)
    assert pricing.price_per_km == Decimal("5")


def test_shipper_falls_back_to_legacy_pricing():
    corridor = _corridor(price_per_km=Decimal("4"), promo_flag=True, promo_discount_pct=Decimal("25"))
    fees = calculate_fees_from_corridor(corridor)
    assert fees.shipper.base_fee == Decimal("400.00")
    assert fees.shipper.final_fee == Decimal("300.00")


def test_carrier_has_no_legacy_fallback():
    corridor = _corridor(price_per_km=Decimal("4"))
    fees = calculate_fees_from_corridor(corridor)
    assert fees.carrier.final_fee == Decimal("0.00")
    assert fees.total_platform_fee == Decimal("400.00")


def test_explicit_distance_overrides_corridor_distance():
    corridor = _corridor(shipper_price_per_km=Decimal("2"), carrier_price_per_km=Decimal("1"))
    fees = calculate_fees_from_corridor(corridor, Decimal("250"))
    assert fees.shipper.final_fee == Decimal("500.00")
    assert fees.carrier.final_fee == Decimal("250.00")
    assert fees.total_platform_fee == Decimal("750.00")
