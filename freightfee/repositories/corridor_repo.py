"""
Corridor repository: reads for matching, upsert for seeding.
"""
import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy.orm import Session

from freightfee.models.corridor import Corridor

logger = logging.getLogger(__name__)


_PRICING_FIELDS = (
    "distance_km",
    "is_active",
    "shipper_price_per_km",
    "shipper_promo_flag",
    "shipper_promo_pct",
    "carrier_price_per_km",
    "carrier_promo_flag",
    "carrier_promo_pct",
    "price_per_km",
    "promo_flag",
    "promo_discount_pct",
)


def get_corridor(db: Session, corridor_id: int) -> Corridor | None:
    return db.query(Corridor).filter(Corridor.id == corridor_id).first()


def first_active_corridor(
    db: Session,
    origin_region: str,
    destination_region: str,
    directions: Iterable[str] | None = None,
) -> Corridor | None:
    query = db.query(Corridor).filter(
        Corridor.origin_region == origin_region,
        Corridor.destination_region == destination_region,
        Corridor.is_active.is_(True),
    )
    if directions is not None:
        query = query.filter(Corridor.direction.in_(list(directions)))
    return query.order_by(Corridor.id).first()


def upsert_corridor(db: Session, data: dict[str, Any]) -> tuple[Corridor, bool]:
    """
    Insert or update the corridor keyed on (origin, destination, direction).
    Returns (corridor, created). Caller commits.
    """
    direction = data.get("direction") or "ONE_WAY"
    existing = (
        db.query(Corridor)
        .filter(
            Corridor.origin_region == data["origin_region"],
            Corridor.destination_region == data["destination_region"],
            Corridor.direction == direction,
        )
        .order_by(Corridor.id)
        .first()
    )
    if existing is not None:
        existing.name = data.get("name") or existing.name
        for field in _PRICING_FIELDS:
            if field in data:
                setattr(existing, field, data[field])
        return existing, False

    corridor = Corridor(
        name=data.get("name") or f"{data['origin_region']} - {data['destination_region']}",
        origin_region=data["origin_region"],
        destination_region=data["destination_region"],
        direction=direction,
        **{field: data[field] for field in _PRICING_FIELDS if field in data},
    )
    db.add(corridor)
    db.flush()
    logger.info(
        "corridor_repo: created corridor id=%s %s -> %s (%s)",
        corridor.id, corridor.origin_region, corridor.destination_region, direction,
    )
    return corridor, True
