from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func

from freightfee.database import Base


class Corridor(Base):
    __tablename__ = "corridors"

    id                 = Column(Integer, primary_key=True, index=True)
    name               = Column(String(100), nullable=False)
    origin_region      = Column(String(100), nullable=False, index=True)
    destination_region = Column(String(100), nullable=False, index=True)
    direction          = Column(String(20), nullable=False, default="ONE_WAY")
    distance_km        = Column(Numeric(10, 2), nullable=False)
    is_active          = Column(Boolean, nullable=False, default=True, index=True)

    shipper_price_per_km = Column(Numeric(10, 4), nullable=True)
    shipper_promo_flag   = Column(Boolean, nullable=False, default=False)
    shipper_promo_pct    = Column(Numeric(5, 2), nullable=True)

    carrier_price_per_km = Column(Numeric(10, 4), nullable=True)
    carrier_promo_flag   = Column(Boolean, nullable=False, default=False)
    carrier_promo_pct    = Column(Numeric(5, 2), nullable=True)

    # Single-party pricing predating the shipper/carrier split.
    price_per_km       = Column(Numeric(10, 4), nullable=True)
    promo_flag         = Column(Boolean, nullable=False, default=False)
    promo_discount_pct = Column(Numeric(5, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
