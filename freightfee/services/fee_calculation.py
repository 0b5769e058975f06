"""Service fee arithmetic.

Pure functions: distance x rate, less an optional promo percentage, rounded
half-up to the cent.  Nothing here touches the database or raises; garbage
input (None, NaN, infinity, unparsable strings, non-positive distance or
rate, products too large to quantize to the cent) degrades to an all-zero
fee, which callers treat as waived.

Rounding:
- base_fee       = round2(distance * rate)
- promo_discount = round2(distance * rate * pct / 100)
- final_fee      = round2(distance * rate * (1 - pct / 100))

final_fee is rounded once from the unrounded product, so in rare half-cent
cases it can differ by 0.01 from base_fee - promo_discount.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, Overflow, ROUND_HALF_UP
from typing import Any

from freightfee.core.config import settings
from freightfee.models.enums import Party

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


@dataclass
class PartyFee:
    base_fee: Decimal
    promo_discount: Decimal
    final_fee: Decimal
    promo_applied: bool
    promo_discount_pct: Decimal | None
    price_per_km: Decimal


@dataclass
class FeePreview:
    base_fee: Decimal
    discount: Decimal
    final_fee: Decimal


@dataclass
class DualPartyFees:
    shipper: PartyFee
    carrier: PartyFee
    total_platform_fee: Decimal


@dataclass
class PartyPricing:
    price_per_km: Decimal
    promo_flag: bool
    promo_pct: Decimal | None


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal | None:
    """Finite Decimal for value, or None when it cannot be one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def _zero_fee() -> PartyFee:
    return PartyFee(
        base_fee=ZERO,
        promo_discount=ZERO,
        final_fee=ZERO,
        promo_applied=False,
        promo_discount_pct=None,
        price_per_km=ZERO,
    )


def _effective_promo_pct(promo_flag: Any, promo_pct: Any) -> Decimal | None:
    if not promo_flag:
        return None
    pct = to_decimal(promo_pct)
    if pct is None or pct <= 0:
        return None
    ceiling = to_decimal(settings.MAX_PROMO_DISCOUNT_PCT) or HUNDRED
    return min(pct, ceiling, HUNDRED)


def calculate_party_fee(
    distance_km: Any,
    price_per_km: Any,
    promo_flag: Any = False,
    promo_pct: Any = None,
) -> PartyFee:
    distance = to_decimal(distance_km)
    rate = to_decimal(price_per_km)
    if distance is None or rate is None or distance <= 0 or rate <= 0:
        return _zero_fee()

    pct = _effective_promo_pct(promo_flag, promo_pct)
    try:
        raw_base = distance * rate
        raw_discount = raw_base * pct / HUNDRED if pct is not None else Decimal("0")
        return PartyFee(
            base_fee=_money(raw_base),
            promo_discount=_money(raw_discount),
            final_fee=_money(raw_base - raw_discount),
            promo_applied=pct is not None,
            promo_discount_pct=pct,
            price_per_km=rate,
        )
    except (InvalidOperation, Overflow):
        # Too large to express in cents at the context precision.
        logger.warning("fees: amount out of range distance_km=%s price_per_km=%s", distance, rate)
        return _zero_fee()


def calculate_fee_preview(
    distance_km: Any,
    price_per_km: Any,
    promo_flag: Any = False,
    promo_pct: Any = None,
) -> FeePreview:
    fee = calculate_party_fee(distance_km, price_per_km, promo_flag, promo_pct)
    return FeePreview(base_fee=fee.base_fee, discount=fee.promo_discount, final_fee=fee.final_fee)


def calculate_dual_party_fee_preview(
    distance_km: Any,
    shipper_price_per_km: Any,
    shipper_promo_flag: Any,
    shipper_promo_pct: Any,
    carrier_price_per_km: Any,
    carrier_promo_flag: Any,
    carrier_promo_pct: Any,
) -> DualPartyFees:
    shipper = calculate_party_fee(distance_km, shipper_price_per_km, shipper_promo_flag, shipper_promo_pct)
    carrier = calculate_party_fee(distance_km, carrier_price_per_km, carrier_promo_flag, carrier_promo_pct)
    try:
        total = _money(shipper.final_fee + carrier.final_fee)
    except (InvalidOperation, Overflow):
        logger.warning("fees: combined fee out of range distance_km=%s", distance_km)
        return DualPartyFees(shipper=_zero_fee(), carrier=_zero_fee(), total_platform_fee=ZERO)
    return DualPartyFees(shipper=shipper, carrier=carrier, total_platform_fee=total)


# ── Corridor pricing ───────────────────────────────────────────────────────────

def resolve_party_pricing(corridor: Any, party: Party) -> PartyPricing:
    """
    Shipper: shipper_* fields, falling back to the legacy single-party
    price_per_km / promo_flag / promo_discount_pct only when
    shipper_price_per_km is NULL.  Carrier: carrier_* fields only.
    """
    if party == Party.SHIPPER:
        if getattr(corridor, "shipper_price_per_km", None) is not None:
            return PartyPricing(
                price_per_km=to_decimal(corridor.shipper_price_per_km) or ZERO,
                promo_flag=bool(corridor.shipper_promo_flag),
                promo_pct=to_decimal(corridor.shipper_promo_pct),
            )
        return PartyPricing(
            price_per_km=to_decimal(getattr(corridor, "price_per_km", None)) or ZERO,
            promo_flag=bool(getattr(corridor, "promo_flag", False)),
            promo_pct=to_decimal(getattr(corridor, "promo_discount_pct", None)),
        )

    return PartyPricing(
        price_per_km=to_decimal(getattr(corridor, "carrier_price_per_km", None)) or ZERO,
        promo_flag=bool(getattr(corridor, "carrier_promo_flag", False)),
        promo_pct=to_decimal(getattr(corridor, "carrier_promo_pct", None)),
    )


def calculate_fees_from_corridor(corridor: Any, distance_km: Any = None) -> DualPartyFees:
    distance = distance_km if distance_km is not None else corridor.distance_km
    shipper = resolve_party_pricing(corridor, Party.SHIPPER)
    carrier = resolve_party_pricing(corridor, Party.CARRIER)
    return calculate_dual_party_fee_preview(
        distance,
        shipper.price_per_km,
        shipper.promo_flag,
        shipper.promo_pct,
        carrier.price_per_km,
        carrier.promo_flag,
        carrier.promo_pct,
    )
