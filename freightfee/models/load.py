from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from freightfee.database import Base


class Load(Base):
    __tablename__ = "loads"

    id = Column(Integer, primary_key=True, index=True)
    shipper_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    carrier_id = Column(Integer, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True)
    assigned_truck_id = Column(String(64), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)

    pickup_city = Column(String(100), nullable=True)
    delivery_city = Column(String(100), nullable=True)
    pickup_region = Column(String(100), nullable=True)
    delivery_region = Column(String(100), nullable=True)

    corridor_id = Column(Integer, ForeignKey("corridors.id", ondelete="SET NULL"), nullable=True, index=True)
    actual_trip_km = Column(Numeric(10, 2), nullable=True)      # GPS-computed
    estimated_trip_km = Column(Numeric(10, 2), nullable=True)   # map estimate
    trip_km = Column(Numeric(10, 2), nullable=True)             # legacy

    shipper_service_fee = Column(Numeric(14, 2), nullable=True)
    shipper_fee_status = Column(String(20), nullable=False, default="PENDING", index=True)
    shipper_fee_deducted_at = Column(DateTime(timezone=True), nullable=True)
    carrier_service_fee = Column(Numeric(14, 2), nullable=True)
    carrier_fee_status = Column(String(20), nullable=False, default="PENDING", index=True)
    carrier_fee_deducted_at = Column(DateTime(timezone=True), nullable=True)
    # Legacy total: sum of the party fees actually deducted.
    service_fee_etb = Column(Numeric(14, 2), nullable=True)
    service_fee_refunded_at = Column(DateTime(timezone=True), nullable=True)

    settlement_status = Column(String(20), nullable=False, default="PENDING", index=True)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    dispute_reason = Column(Text, nullable=True)

    pod_submitted = Column(Boolean, nullable=False, default=False)
    pod_submitted_at = Column(DateTime(timezone=True), nullable=True)
    pod_verified = Column(Boolean, nullable=False, default=False)
    pod_verified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    corridor = relationship("Corridor")
