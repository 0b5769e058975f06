from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from freightfee.dependencies.auth import Actor, require_capability
from freightfee.services.fee_calculation import calculate_dual_party_fee_preview, calculate_fee_preview
from freightfee.services.permissions import Capability

router = APIRouter(prefix="/api/fees", tags=["fees"])


class FeePreviewRequest(BaseModel):
    distance_km: Decimal
    price_per_km: Decimal
    promo_flag: bool = False
    promo_pct: Decimal | None = None


class DualFeePreviewRequest(BaseModel):
    distance_km: Decimal
    shipper_price_per_km: Decimal
    shipper_promo_flag: bool = False
    shipper_promo_pct: Decimal | None = None
    carrier_price_per_km: Decimal
    carrier_promo_flag: bool = False
    carrier_promo_pct: Decimal | None = None


@router.post("/preview")
def preview_fee(
    payload: FeePreviewRequest,
    actor: Actor = Depends(require_capability(Capability.PREVIEW_FEES)),
):
    return calculate_fee_preview(
        payload.distance_km,
        payload.price_per_km,
        payload.promo_flag,
        payload.promo_pct,
    )


@router.post("/preview/dual")
def preview_dual_fee(
    payload: DualFeePreviewRequest,
    actor: Actor = Depends(require_capability(Capability.PREVIEW_FEES)),
):
    return calculate_dual_party_fee_preview(
        payload.distance_km,
        payload.shipper_price_per_km,
        payload.shipper_promo_flag,
        payload.shipper_promo_pct,
        payload.carrier_price_per_km,
        payload.carrier_promo_flag,
        payload.carrier_promo_pct,
    )
